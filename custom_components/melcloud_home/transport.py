"""Paced, cookie-carrying HTTP transport for the MELCloud Home cloud.

The login flow has to inspect every redirect hop, so redirects are never
followed by httpx itself. Session cookies live in an explicit
:class:`CookieJar` owned by :class:`PacedHttpClient`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

import httpx
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import DEFAULT_MAX_REDIRECTS, USER_AGENT
from .exceptions import TooManyRedirectsError
from .models import HttpResponse

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .pacer import RequestPacer

_LOGGER = logging.getLogger(__name__)

_EXPIRES = "expires="


class CookieJar:
    """In-memory session cookies (name to value, no expiry tracking)."""

    def __init__(self, cookies: Mapping[str, str] | None = None) -> None:
        self._cookies: dict[str, str] = dict(cookies or {})

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __getitem__(self, name: str) -> str:
        return self._cookies[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def as_dict(self) -> dict[str, str]:
        """Return a copy of the stored cookies."""
        return dict(self._cookies)

    def set_cookie_values(self, values: Iterable[str]) -> None:
        """Store cookies from individual ``Set-Cookie`` strings.

        Attributes after the first ``;`` are ignored. Strings without a
        ``name=value`` pair are skipped.
        """
        for cookie in values:
            name_value = cookie.split(";", 1)[0]
            name, sep, value = name_value.partition("=")
            name = name.strip()
            if not sep or not name:
                continue
            self._cookies[name] = value.strip()

    def as_header(self) -> str:
        """Return the value of a ``Cookie`` request header."""
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def clear(self) -> None:
        """Forget every cookie."""
        self._cookies.clear()


def split_set_cookie_header(header: str) -> list[str]:
    """Split a combined ``Set-Cookie`` header into individual cookies.

    Commas separate cookies, except inside an ``Expires=`` attribute where
    the comma following the weekday name is part of the date, for example
    ``Expires=Wed, 21 Oct 2026 07:28:00 GMT``. ``Expires=`` only counts as
    an attribute after a ``;``, never as a cookie name.

    Args:
        header: Header value with several cookies joined by commas.

    Returns:
        Individual cookie strings, stripped, without empty entries.

    """
    cookies: list[str] = []
    start = 0
    in_expires = False
    expires_start = 0
    index = 0

    while index < len(header):
        char = header[index]

        if in_expires:
            if char == ";":
                in_expires = False
            elif char == ",":
                if header[expires_start:index].strip().isalpha():
                    index += 1
                    continue
                in_expires = False
            else:
                index += 1
                continue

        if char == ",":
            cookie = header[start:index].strip()
            if cookie:
                cookies.append(cookie)
            start = index + 1
        elif (
            header[index : index + len(_EXPIRES)].lower() == _EXPIRES
            and header[start:index].rstrip().endswith(";")
        ):
            in_expires = True
            index += len(_EXPIRES)
            expires_start = index
            continue

        index += 1

    cookie = header[start:].strip()
    if cookie:
        cookies.append(cookie)
    return cookies


def _set_cookie_values(headers: Any) -> list[str]:  # noqa: ANN401
    get_list = getattr(headers, "get_list", None)
    if get_list is not None:
        return list(get_list("set-cookie"))
    header = headers.get("set-cookie")
    return split_set_cookie_header(header) if header else []


def is_redirect(response: HttpResponse) -> bool:
    """Return True for a 3xx response carrying a ``Location`` header."""
    return 300 <= response.status < 400 and bool(response.headers.get("location"))


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the MELCloud Home cloud.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=10.0)
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


class PacedHttpClient:
    """Issue HTTP requests through a shared pacer with session cookies."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        pacer: RequestPacer,
        *,
        user_agent: str = USER_AGENT,
        cookie_jar: CookieJar | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Underlying httpx client.
            pacer: Pacer shared by every caller of this account.
            user_agent: Default ``User-Agent`` header.
            cookie_jar: Session cookie store, a fresh one when omitted.

        """
        self._session = session
        self._pacer = pacer
        self._user_agent = user_agent
        self.cookie_jar = cookie_jar if cookie_jar is not None else CookieJar()

    def clear_cookies(self) -> None:
        """Drop the session, used before a fresh login."""
        self.cookie_jar.clear()

    async def async_request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        content: str | bytes | None = None,
    ) -> HttpResponse:
        """Perform one paced request without following redirects.

        Args:
            method: HTTP method.
            url: Absolute URL.
            headers: Headers merged over the defaults.
            content: Optional request body.

        Returns:
            The response with lower-cased header names and the body text.

        Raises:
            httpx.HTTPError: If the request could not be completed.

        """

        async def _send() -> HttpResponse:
            request_headers = {"User-Agent": self._user_agent, **(headers or {})}
            cookie_header = self.cookie_jar.as_header()
            if cookie_header:
                request_headers["Cookie"] = cookie_header

            _LOGGER.debug("HTTP %s %s", method, url)
            response = await self._session.request(
                method,
                url,
                headers=request_headers,
                content=content,
                follow_redirects=False,
            )
            self.cookie_jar.set_cookie_values(_set_cookie_values(response.headers))
            # The jar above is the only session store.
            self._session.cookies.clear()

            _LOGGER.debug("HTTP %s %s -> %s", method, url, response.status_code)
            return HttpResponse(
                status=response.status_code,
                headers={key.lower(): value for key, value in response.headers.items()},
                text=response.text,
            )

        return await self._pacer.run(_send)

    async def async_follow_redirects(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        content: str | bytes | None = None,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
    ) -> HttpResponse:
        """Perform a request and follow its redirect chain hop by hop.

        Every hop after the first is a GET without body. ``Location`` values
        are resolved against the URL of the hop that returned them.

        Returns:
            The first non-redirect response, with ``resolved_url`` set.

        Raises:
            TooManyRedirectsError: If ``max_redirects`` requests all redirect.

        """
        current_url = url
        current_method = method
        current_content = content

        for _ in range(max_redirects):
            response = await self.async_request(
                current_method,
                current_url,
                headers=headers,
                content=current_content,
            )
            if is_redirect(response):
                current_url = urljoin(current_url, response.headers["location"])
                current_method = "GET"
                current_content = None
                _LOGGER.debug("Following redirect to %s", current_url)
                continue

            return replace(response, resolved_url=current_url)

        raise TooManyRedirectsError(max_redirects)
