"""Request pacing for the MELCloud Home integration.

Every outbound request goes through one :class:`RequestPacer`. Tasks are
handed to a single consumer over an :class:`asyncio.Queue`, admitted in FIFO
order and started no closer than ``min_interval`` seconds apart.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .const import DEFAULT_MIN_REQUEST_INTERVAL

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

SleepCallable = Callable[[float], Awaitable[Any]]
MonotonicCallable = Callable[[], float]
TaskFactory = Callable[[], Awaitable[Any]]


class RequestPacer:
    """Serialize tasks and enforce a minimum gap between their starts."""

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_REQUEST_INTERVAL,
        *,
        monotonic: MonotonicCallable = time.monotonic,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        """Initialize the pacer.

        Args:
            min_interval: Minimum number of seconds between task starts.
            monotonic: Clock used to measure the gap.
            sleep: Coroutine used to wait for the next slot.

        """
        self.min_interval = min_interval
        self._monotonic = monotonic
        self._sleep = sleep
        self._queue: asyncio.Queue[tuple[TaskFactory, asyncio.Future[Any]]] = (
            asyncio.Queue()
        )
        self._consumer: asyncio.Task[None] | None = None
        self._last_start: float | None = None

    @property
    def last_start(self) -> float | None:
        """Return the clock reading taken when the last task was admitted."""
        return self._last_start

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Queue ``task`` behind every earlier task and return its outcome.

        Args:
            task: Zero-argument callable returning an awaitable.

        Returns:
            Whatever ``task`` returns. Exceptions raised by ``task`` are
            re-raised here and nowhere else.

        """
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((task, future))
        self._ensure_consumer()
        return await future

    def _ensure_consumer(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.get_running_loop().create_task(
                self._async_consume()
            )

    def _delay(self) -> float:
        if self._last_start is None:
            return 0.0
        elapsed = self._monotonic() - self._last_start
        return max(0.0, self.min_interval - elapsed)

    async def _async_consume(self) -> None:
        while True:
            task, future = await self._queue.get()
            try:
                await self._async_admit(task, future)
            except asyncio.CancelledError:
                future.cancel()
                raise
            finally:
                self._queue.task_done()

    async def _async_admit(
        self, task: TaskFactory, future: asyncio.Future[Any]
    ) -> None:
        if future.done():
            # Caller stopped waiting before its turn.
            return
        delay = self._delay()
        if delay > 0:
            _LOGGER.debug("Pacing next request by %.3fs", delay)
            await self._sleep(delay)
        if future.done():
            return

        self._last_start = self._monotonic()
        try:
            result = await task()
        except Exception as err:  # noqa: BLE001
            if not future.done():
                future.set_exception(err)
        else:
            if not future.done():
                future.set_result(result)

    async def async_close(self) -> None:
        """Stop the consumer and cancel every task still waiting."""
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None

        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            future.cancel()
            self._queue.task_done()
