"""Controller inventory access: UniFi REST and offline JSON sources."""

from netpath.controller.base import BaseInventorySource
from netpath.controller.exceptions import APIError, AuthenticationError, ControllerError, InventoryError
from netpath.controller.factory import create_source, list_sources
from netpath.controller.snapshot import JsonInventorySource  # noqa: F401  # registers "json"
from netpath.controller.unifi import UniFiRESTTransport  # noqa: F401  # registers "unifi"

__all__ = [
    "create_source",
    "list_sources",
    "BaseInventorySource",
    "JsonInventorySource",
    "UniFiRESTTransport",
    "ControllerError",
    "AuthenticationError",
    "APIError",
    "InventoryError",
]
