"""Flat inventory records returned by a controller.

The records mirror what the controller reports, normalized just enough that the
core can consume them without knowing any controller-specific JSON layout.
``from_unifi`` classmethods map raw UniFi Network Application payloads.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from netpath.controller.exceptions import InventoryError


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        return None


def _int_or_zero(value: Any) -> int:
    return _int_or_none(value) or 0


class PortRecord(BaseModel):
    port_idx: int
    name: str = ""
    speed: int = 0  # negotiated Mbps
    up: bool = False
    media: str = ""

    @classmethod
    def from_unifi(cls, raw: dict[str, Any]) -> PortRecord:
        return cls(
            port_idx=_int_or_zero(raw.get("port_idx")),
            name=raw.get("name") or "",
            speed=_int_or_zero(raw.get("speed")),
            up=bool(raw.get("up", False)),
            media=raw.get("media") or "",
        )


class DeviceRecord(BaseModel):
    mac: str
    name: str = ""
    type: str = ""  # controller type code: ugw, udm, usw, uap, umbb ...
    model: str = ""
    model_display: str = ""
    ip: str = ""
    uplink_mac: str = ""
    uplink_port: Optional[int] = None
    uplink_type: str = ""  # "wire" or "wireless"
    uplink_speed: int = 0  # Mbps
    uplink_tx_rate: int = 0  # kbps, wireless uplinks only
    uplink_rx_rate: int = 0  # kbps, wireless uplinks only
    uplink_radio: str = ""
    uplink_channel: Optional[int] = None
    uplink_signal: Optional[int] = None
    port_table: list[PortRecord] = Field(default_factory=list)

    @classmethod
    def from_unifi(cls, raw: dict[str, Any]) -> DeviceRecord:
        uplink = raw.get("uplink") or {}
        return cls(
            mac=raw.get("mac") or "",
            name=raw.get("name") or "",
            type=raw.get("type") or "",
            model=raw.get("model") or "",
            model_display=raw.get("model_display") or raw.get("shortname") or "",
            ip=raw.get("ip") or "",
            uplink_mac=uplink.get("uplink_mac") or "",
            uplink_port=_int_or_none(uplink.get("uplink_remote_port")),
            uplink_type=uplink.get("type") or "",
            uplink_speed=_int_or_zero(uplink.get("speed")),
            uplink_tx_rate=_int_or_zero(uplink.get("tx_rate")),
            uplink_rx_rate=_int_or_zero(uplink.get("rx_rate")),
            uplink_radio=uplink.get("radio") or "",
            uplink_channel=_int_or_none(uplink.get("channel")),
            uplink_signal=_int_or_none(uplink.get("signal")),
            port_table=[PortRecord.from_unifi(p) for p in raw.get("port_table") or []],
        )


class ClientRecord(BaseModel):
    mac: str
    hostname: str = ""
    name: str = ""
    ip: str = ""
    is_wired: bool = True
    attached_mac: str = ""  # switch MAC when wired, AP MAC when wireless
    attached_port: Optional[int] = None  # wired only
    network_id: str = ""
    network: str = ""
    tx_rate: int = 0  # kbps, wireless only
    rx_rate: int = 0  # kbps, wireless only
    radio: str = ""
    radio_proto: str = ""
    channel: Optional[int] = None
    signal: Optional[int] = None

    @classmethod
    def from_unifi(cls, raw: dict[str, Any]) -> ClientRecord:
        is_wired = bool(raw.get("is_wired", False))
        return cls(
            mac=raw.get("mac") or "",
            hostname=raw.get("hostname") or "",
            name=raw.get("name") or "",
            ip=raw.get("ip") or raw.get("last_ip") or "",
            is_wired=is_wired,
            attached_mac=(raw.get("sw_mac") if is_wired else raw.get("ap_mac")) or "",
            attached_port=_int_or_none(raw.get("sw_port")) if is_wired else None,
            network_id=raw.get("network_id") or "",
            network=raw.get("network") or "",
            tx_rate=_int_or_zero(raw.get("tx_rate")),
            rx_rate=_int_or_zero(raw.get("rx_rate")),
            radio=raw.get("radio") or "",
            radio_proto=raw.get("radio_proto") or "",
            channel=_int_or_none(raw.get("channel")),
            signal=_int_or_none(raw.get("signal")),
        )


class NetworkRecord(BaseModel):
    id: str
    name: str = ""
    vlan: Optional[int] = None
    ip_subnet: str = ""  # CIDR, e.g. "192.168.10.1/24"
    enabled: bool = True
    purpose: str = ""

    @classmethod
    def from_unifi(cls, raw: dict[str, Any]) -> NetworkRecord:
        vlan = _int_or_none(raw.get("vlan"))
        if raw.get("vlan_enabled") is False:
            vlan = None
        return cls(
            id=raw.get("_id") or raw.get("id") or "",
            name=raw.get("name") or "",
            vlan=vlan,
            ip_subnet=raw.get("ip_subnet") or "",
            enabled=bool(raw.get("enabled", True)),
            purpose=raw.get("purpose") or "",
        )


def parse_records(record_cls: Any, items: list[Any], kind: str, require_mac: bool = True) -> list[Any]:
    """Map raw controller objects with ``record_cls.from_unifi``.

    Entries without a MAC are skipped when ``require_mac`` is set; entries that are
    not objects or carry wrongly typed fields raise :class:`InventoryError`.
    """
    records = []
    for raw in items:
        if not isinstance(raw, dict):
            raise InventoryError(f"Malformed {kind} entry: expected an object, got {type(raw).__name__}")
        if require_mac and not raw.get("mac"):
            continue
        try:
            records.append(record_cls.from_unifi(raw))
        except (ValidationError, AttributeError, TypeError) as e:
            ident = raw.get("mac") or raw.get("_id") or "?"
            raise InventoryError(f"Malformed {kind} record {ident}: {e}") from e
    return records
