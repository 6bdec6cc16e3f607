"""Topology snapshot assembly and MAC-keyed lookups.

``build_topology`` turns the flat controller records into an immutable
:class:`Topology`; :class:`TopologyIndex` derives the parent/child relations
and per-port tables the tracer walks. Devices form a forest rooted at the
gateway(s); nothing here follows uplinks transitively.
"""

from __future__ import annotations

from typing import Iterable, Optional

from loguru import logger

from netpath.controller.models import ClientRecord, DeviceRecord, NetworkRecord
from netpath.pathtrace._util import ip_in_subnet, normalize_mac
from netpath.pathtrace.models import (
    Client,
    Device,
    DeviceRole,
    Network,
    PortInfo,
    Topology,
    UplinkMedium,
)

# Controller type codes -> role
DEVICE_TYPE_ROLES: dict[str, DeviceRole] = {
    "uap": DeviceRole.ACCESS_POINT,
    "usw": DeviceRole.SWITCH,
    "udm": DeviceRole.GATEWAY,
    "ugw": DeviceRole.GATEWAY,
    "uxg": DeviceRole.GATEWAY,
    "ucg": DeviceRole.GATEWAY,
    "umbb": DeviceRole.CELLULAR_MODEM,
}


def role_for_type(type_code: str) -> DeviceRole:
    return DEVICE_TYPE_ROLES.get((type_code or "").lower(), DeviceRole.CLIENT_ADJACENT)


def _device_from_record(rec: DeviceRecord) -> Device:
    uplink_mac = normalize_mac(rec.uplink_mac) or None
    medium = UplinkMedium.WIRELESS if rec.uplink_type.lower() == "wireless" else UplinkMedium.WIRE
    return Device(
        mac=normalize_mac(rec.mac),
        name=rec.name,
        model=rec.model,
        model_display=rec.model_display,
        ip=rec.ip,
        role=role_for_type(rec.type),
        uplink_mac=uplink_mac,
        uplink_port=rec.uplink_port if uplink_mac else None,
        uplink_medium=medium,
        uplink_speed=rec.uplink_speed,
        uplink_tx_rate_kbps=rec.uplink_tx_rate,
        uplink_rx_rate_kbps=rec.uplink_rx_rate,
        uplink_radio=rec.uplink_radio,
        uplink_channel=rec.uplink_channel,
        uplink_signal=rec.uplink_signal,
        ports={
            p.port_idx: PortInfo(port_idx=p.port_idx, name=p.name, speed=p.speed, up=p.up) for p in rec.port_table
        },
    )


def _client_from_record(rec: ClientRecord, networks: list[Network]) -> Client:
    network = next((n for n in networks if rec.network_id and n.id == rec.network_id), None)
    if network is None and rec.network:
        network = next((n for n in networks if n.name == rec.network), None)
    if network is None and rec.ip:
        network = next((n for n in networks if ip_in_subnet(rec.ip, n.ip_subnet)), None)

    return Client(
        mac=normalize_mac(rec.mac),
        name=rec.name,
        hostname=rec.hostname,
        ip=rec.ip,
        is_wired=rec.is_wired,
        attached_mac=normalize_mac(rec.attached_mac) or None,
        attached_port=rec.attached_port,
        network_id=rec.network_id or (network.id if network else ""),
        network_name=rec.network or (network.name if network else ""),
        vlan=network.vlan if network else None,
        tx_rate_kbps=rec.tx_rate,
        rx_rate_kbps=rec.rx_rate,
        radio=rec.radio,
        radio_proto=rec.radio_proto,
        channel=rec.channel,
        signal=rec.signal,
    )


def build_topology(
    devices: Iterable[DeviceRecord],
    clients: Iterable[ClientRecord],
    networks: Iterable[NetworkRecord],
) -> Topology:
    """Assemble an immutable topology snapshot from controller records."""
    nets = [
        Network(id=n.id, name=n.name, vlan=n.vlan, ip_subnet=n.ip_subnet, enabled=n.enabled, purpose=n.purpose)
        for n in networks
    ]
    devs = [_device_from_record(d) for d in devices if d.mac]
    clis = [_client_from_record(c, nets) for c in clients if c.mac]
    logger.debug(f"Built topology: {len(devs)} devices, {len(clis)} clients, {len(nets)} networks")
    return Topology(devices=devs, clients=clis, networks=nets)


class TopologyIndex:
    """Read-only lookup view over a :class:`Topology`."""

    def __init__(self, topology: Topology):
        self.topology = topology
        self.devices: dict[str, Device] = {d.mac: d for d in topology.devices}

    def device(self, mac: Optional[str]) -> Optional[Device]:
        return self.devices.get(normalize_mac(mac)) if mac else None

    def parent(self, mac: Optional[str]) -> Optional[Device]:
        dev = self.device(mac)
        return self.device(dev.uplink_mac) if dev else None

    @property
    def gateways(self) -> list[Device]:
        return [d for d in self.topology.devices if d.role == DeviceRole.GATEWAY]

    @property
    def gateway(self) -> Optional[Device]:
        gws = self.gateways
        return gws[0] if gws else None

    def port(self, mac: Optional[str], port_idx: Optional[int]) -> Optional[PortInfo]:
        dev = self.device(mac)
        if dev is None or port_idx is None:
            return None
        return dev.ports.get(port_idx)

    def port_speed(self, mac: Optional[str], port_idx: Optional[int]) -> int:
        """Negotiated speed of a device port in Mbps, 0 if unknown."""
        port = self.port(mac, port_idx)
        return port.speed if port else 0

    def port_name(self, mac: Optional[str], port_idx: Optional[int]) -> str:
        if port_idx is None:
            return ""
        port = self.port(mac, port_idx)
        if port and port.name:
            return port.name
        return f"Port {port_idx}"

    def network_for_ip(self, ip: str) -> Optional[Network]:
        return next((n for n in self.topology.networks if n.enabled and ip_in_subnet(ip, n.ip_subnet)), None)

    def find_device(self, text: str) -> Optional[Device]:
        """Exact match on IP, name or MAC (case-insensitive)."""
        needle = text.strip().lower()
        mac = normalize_mac(needle)
        for dev in self.topology.devices:
            if dev.ip.lower() == needle or dev.name.lower() == needle or dev.mac == mac:
                return dev
        return None

    def find_client(self, text: str) -> Optional[Client]:
        """Exact match on IP, name, hostname or MAC (case-insensitive)."""
        needle = text.strip().lower()
        mac = normalize_mac(needle)
        for cli in self.topology.clients:
            if (
                cli.ip.lower() == needle
                or (cli.name and cli.name.lower() == needle)
                or (cli.hostname and cli.hostname.lower() == needle)
                or cli.mac == mac
            ):
                return cli
        return None
