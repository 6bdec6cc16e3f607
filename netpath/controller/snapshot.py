"""Offline inventory source backed by a JSON dump of controller data."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from netpath.controller.base import BaseInventorySource
from netpath.controller.exceptions import InventoryError
from netpath.controller.factory import register_source
from netpath.controller.models import ClientRecord, DeviceRecord, NetworkRecord, parse_records


@register_source("json")
class JsonInventorySource(BaseInventorySource):
    """Read devices, clients and networks from a JSON file.

    The file holds an object with ``devices``, ``clients`` and ``networks``
    arrays in the raw shape the controller returns from ``stat/device``,
    ``stat/sta`` and ``rest/networkconf``.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: dict[str, Any] | None = None

    def connect(self) -> None:
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise InventoryError(f"Cannot read inventory file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise InventoryError(f"Inventory file {self.path} must contain a JSON object")
        self._data = data
        logger.debug(
            f"Loaded inventory from {self.path}: {len(data.get('devices') or [])} devices, "
            f"{len(data.get('clients') or [])} clients, {len(data.get('networks') or [])} networks"
        )

    def disconnect(self) -> None:
        self._data = None

    def _section(self, key: str) -> list[dict[str, Any]]:
        if self._data is None:
            self.connect()
        assert self._data is not None
        section = self._data.get(key) or []
        if not isinstance(section, list):
            raise InventoryError(f"Inventory section '{key}' must be a list")
        return section

    def list_devices(self) -> list[DeviceRecord]:
        return parse_records(DeviceRecord, self._section("devices"), "device")

    def list_clients(self) -> list[ClientRecord]:
        return parse_records(ClientRecord, self._section("clients"), "client")

    def list_networks(self) -> list[NetworkRecord]:
        return parse_records(NetworkRecord, self._section("networks"), "network", require_mac=False)
