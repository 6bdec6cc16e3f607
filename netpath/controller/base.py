"""Abstract base inventory source."""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self

from netpath.controller.models import ClientRecord, DeviceRecord, NetworkRecord


class BaseInventorySource(ABC):
    """Abstract base class for controller inventory access.

    The path analysis core only ever reads three flat lists from a source.
    Implementations own authentication, sessions and retries.
    """

    def connect(self) -> None:
        """Establish a session (no-op for offline sources)."""

    def disconnect(self) -> None:
        """Release the session (no-op for offline sources)."""

    @abstractmethod
    def list_devices(self) -> list[DeviceRecord]:
        """Return all infrastructure devices (gateways, switches, APs)."""

    @abstractmethod
    def list_clients(self) -> list[ClientRecord]:
        """Return all currently connected clients."""

    @abstractmethod
    def list_networks(self) -> list[NetworkRecord]:
        """Return all network/VLAN configurations."""

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        self.disconnect()
