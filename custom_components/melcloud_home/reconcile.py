"""Reconcile discovered units against the registered accessories.

Each poll hands the freshly fetched unit list to :class:`UnitReconciler`,
which decides what to create, update and remove. Reconciliation is
synchronous, so a poll either reconciles completely or (when the fetch
failed earlier) not at all.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from .const import DOMAIN
from .models import MelCloudUnit, UnitType

_LOGGER = logging.getLogger(__name__)

_IDENTITY_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, f"https://{DOMAIN}")


def unit_identity(unit_id: str) -> str:
    """Return the stable accessory identity of a unit id."""
    return str(uuid.uuid5(_IDENTITY_NAMESPACE, unit_id))


class UnitHandler(Protocol):
    """Accessory-side object bound to one unit for its whole lifetime."""

    @property
    def unit_type(self) -> UnitType:
        """Return the unit type the handler was created for."""

    def update_unit(self, unit: MelCloudUnit) -> None:
        """Receive a fresh snapshot of the bound unit."""


class AccessoryLayer(Protocol):
    """Callbacks into the presentation layer."""

    def create_accessory(self, identity: str, unit: MelCloudUnit) -> UnitHandler:
        """Create a new accessory for a newly discovered unit."""

    def bind_accessory(self, identity: str, unit: MelCloudUnit) -> UnitHandler:
        """Bind a handler to an accessory that already exists."""

    def remove_accessory(self, identity: str) -> None:
        """Remove the accessory of a unit the cloud no longer reports."""


@dataclass
class ReconcileResult:
    """Identities touched by one reconciliation."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


class UnitReconciler:
    """Keep the accessory registry in line with the discovered units."""

    def __init__(
        self,
        layer: AccessoryLayer,
        known_identities: Iterable[str] = (),
    ) -> None:
        """Initialize the reconciler.

        Args:
            layer: Presentation layer receiving create/bind/remove calls.
            known_identities: Identities the presentation layer already
                holds from an earlier run; handlers are bound on first sight.

        """
        self._layer = layer
        self._registry: dict[str, UnitHandler | None] = dict.fromkeys(
            known_identities
        )

    @property
    def registry(self) -> Mapping[str, UnitHandler | None]:
        """Return the registered identities and their bound handlers."""
        return self._registry

    def reconcile(self, units: Iterable[MelCloudUnit]) -> ReconcileResult:
        """Apply one poll worth of units to the registry.

        Args:
            units: Every unit reported by the latest successful fetch.

        Returns:
            The identities created, updated and removed.

        """
        result = ReconcileResult()
        unmatched = set(self._registry)

        for unit in units:
            identity = unit_identity(unit.id)

            if identity in self._registry:
                unmatched.discard(identity)
                handler = self._registry[identity]
                if handler is None:
                    self._registry[identity] = self._layer.bind_accessory(
                        identity, unit
                    )
                elif handler.unit_type != unit.type:
                    _LOGGER.warning(
                        "Unit %s changed type from %s to %s; keeping handler",
                        unit.id,
                        handler.unit_type,
                        unit.type,
                    )
                    continue
                else:
                    handler.update_unit(unit)
                if identity not in result.created:
                    result.updated.append(identity)
                continue

            _LOGGER.info("Registering new unit: %s", unit.name)
            self._registry[identity] = self._layer.create_accessory(identity, unit)
            result.created.append(identity)

        for identity in unmatched:
            _LOGGER.info("Removing unit: %s", identity)
            self._layer.remove_accessory(identity)
            del self._registry[identity]
            result.removed.append(identity)

        return result
