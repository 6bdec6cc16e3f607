"""Hop tracer: turn a topology plus (server, target) into an ordered hop list.

The walk starts at the target and follows uplinks toward the gateway. The
server's own uplink chain is built independently; where the two meet the
trace descends the server chain instead of climbing further, unless the
endpoints sit in different VLANs, in which case traffic has to reach the
gateway first and comes back down the server chain afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from loguru import logger

from netpath.pathtrace._util import slash24_prefix
from netpath.pathtrace.bottleneck import calculate_bottleneck
from netpath.pathtrace.models import (
    ClientMatch,
    Device,
    DeviceMatch,
    DeviceRole,
    Hop,
    HopType,
    NetworkPath,
    NotFound,
    ServerPosition,
    Topology,
)
from netpath.pathtrace.resolver import DnsLookup, resolve_hostname, resolve_target
from netpath.pathtrace.topology import TopologyIndex

# Ceiling on uplink walks; malformed or cyclic uplink data is truncated here
MAX_HOPS = 10

# Known L3 forwarding ceilings (Mbps) by gateway model
GATEWAY_ROUTING_LIMITS: dict[str, int] = {
    "UCG-Fiber": 9800,
    "UniFi Cloud Gateway Fiber": 9800,
}

MESH_PORT_NAME = "wireless mesh"
WIFI_PORT_NAME = "Wi-Fi"

_ROLE_HOP_TYPES: dict[DeviceRole, HopType] = {
    DeviceRole.GATEWAY: HopType.GATEWAY,
    DeviceRole.SWITCH: HopType.SWITCH,
    DeviceRole.ACCESS_POINT: HopType.ACCESS_POINT,
}


def hop_type_for(device: Device) -> HopType:
    return _ROLE_HOP_TYPES.get(device.role, HopType.CLIENT)


@dataclass(frozen=True)
class ChainEntry:
    """One device on the server's uplink chain and the link below it."""

    device: Device
    down_port: Optional[int]  # port on this device toward the server
    down_wireless: bool = False
    down_rate: int = 0  # Mbps, wireless links only
    down_label: str = ""


@dataclass
class _TraceState:
    hops: list[Hop] = field(default_factory=list)
    current_mac: Optional[str] = None
    current_port: Optional[int] = None
    next_order: int = 0
    # link on which traffic arrives at current_mac
    arrived_wireless: bool = False
    arrived_rate: int = 0
    arrived_label: str = ""

    def append(self, hop: Hop) -> Hop:
        hop.order = self.next_order
        self.next_order += 1
        self.hops.append(hop)
        return hop

    def arrive_via_uplink(self, device: Device) -> None:
        self.current_mac = device.uplink_mac
        self.current_port = device.uplink_port
        self.arrived_wireless = device.has_wireless_uplink
        self.arrived_rate = device.wireless_uplink_mbps if device.has_wireless_uplink else 0
        self.arrived_label = MESH_PORT_NAME if device.has_wireless_uplink else ""


def requires_inter_vlan_routing(
    source_vlan: Optional[int],
    destination_vlan: Optional[int],
    source_network: str = "",
    destination_network: str = "",
    source_ip: str = "",
    destination_ip: str = "",
) -> bool:
    """Decide whether traffic between two endpoints has to cross the gateway.

    Any one of differing VLAN IDs, differing network names or differing /24
    prefixes is enough. Unknown values never count as a difference.
    """
    if source_vlan is not None and destination_vlan is not None and source_vlan != destination_vlan:
        return True
    if source_network and destination_network and source_network.casefold() != destination_network.casefold():
        return True
    src_prefix, dst_prefix = slash24_prefix(source_ip), slash24_prefix(destination_ip)
    return bool(src_prefix and dst_prefix and src_prefix != dst_prefix)


def build_server_chain(index: TopologyIndex, server: ServerPosition) -> list[ChainEntry]:
    """Follow uplinks from the server's attachment device toward the gateway."""
    chain: list[ChainEntry] = []
    mac, port = server.switch_mac, server.switch_port
    wireless = not server.is_wired
    rate = server.tx_rate_kbps // 1000 if wireless else 0
    label = WIFI_PORT_NAME if wireless else ""

    while mac and len(chain) < MAX_HOPS:
        device = index.device(mac)
        if device is None:
            break
        chain.append(
            ChainEntry(device=device, down_port=port, down_wireless=wireless, down_rate=rate, down_label=label)
        )
        wireless = device.has_wireless_uplink
        rate = device.wireless_uplink_mbps if wireless else 0
        label = MESH_PORT_NAME if wireless else ""
        mac, port = device.uplink_mac, device.uplink_port
    return chain


# ── hop construction helpers ─────────────────────────────────────────


def _device_hop(device: Device, **fields: Any) -> Hop:
    return Hop(
        order=0,
        type=hop_type_for(device),
        device_mac=device.mac,
        device_name=device.label,
        device_model=device.display_model,
        device_ip=device.ip,
        **fields,
    )


def _apply_mesh_radio(hop: Hop, device: Device) -> None:
    hop.wireless_band = device.uplink_radio
    hop.wireless_channel = device.uplink_channel
    hop.wireless_signal_dbm = device.uplink_signal
    hop.wireless_tx_rate_mbps = device.uplink_tx_rate_kbps // 1000
    hop.wireless_rx_rate_mbps = device.uplink_rx_rate_kbps // 1000


def _parent_port_name(index: TopologyIndex, device: Device) -> str:
    """Name of the parent-side port of a wired uplink, prefixed with the parent's name."""
    name = index.port_name(device.uplink_mac, device.uplink_port)
    parent = index.parent(device.mac)
    if parent is None or not name:
        return name
    return f"{parent.label} {name}"


def _uplink_link(index: TopologyIndex, device: Device) -> tuple[Optional[int], str, int, bool]:
    """(port, port name, speed, wireless) of a device's link to its parent.

    Wired uplinks are identified by the parent's port, so the name carries the parent.
    """
    if device.has_wireless_uplink:
        return None, MESH_PORT_NAME, device.wireless_uplink_mbps, True
    if not device.uplink_mac:
        return None, "", 0, False
    return (
        device.uplink_port,
        _parent_port_name(index, device),
        index.port_speed(device.uplink_mac, device.uplink_port),
        False,
    )


def _down_link(index: TopologyIndex, entry: ChainEntry) -> tuple[Optional[int], str, int, bool]:
    """(port, port name, speed, wireless) of a chain device's link toward the server."""
    if entry.down_wireless:
        return None, entry.down_label, entry.down_rate, True
    return (
        entry.down_port,
        index.port_name(entry.device.mac, entry.down_port),
        index.port_speed(entry.device.mac, entry.down_port),
        False,
    )


def _set_egress(hop: Hop, link: tuple[Optional[int], str, int, bool]) -> None:
    hop.egress_port, hop.egress_port_name, hop.egress_speed_mbps, hop.is_wireless_egress = link


def _set_ingress(hop: Hop, link: tuple[Optional[int], str, int, bool]) -> None:
    hop.ingress_port, hop.ingress_port_name, hop.ingress_speed_mbps, hop.is_wireless_ingress = link


def _arrival_link(index: TopologyIndex, state: _TraceState) -> tuple[Optional[int], str, int, bool]:
    if state.arrived_wireless:
        return None, state.arrived_label or WIFI_PORT_NAME, state.arrived_rate, True
    return (
        state.current_port,
        index.port_name(state.current_mac, state.current_port),
        index.port_speed(state.current_mac, state.current_port),
        False,
    )


def _walked_hop(index: TopologyIndex, state: _TraceState, device: Device) -> Hop:
    """Hop for a device reached on the upward walk, ingress from the arrival link."""
    hop = _device_hop(device)
    _set_ingress(hop, _arrival_link(index, state))
    return hop


def _return_hop(index: TopologyIndex, entry: ChainEntry, server: ServerPosition) -> Hop:
    """Hop for a device on the way back down the server's chain."""
    device = entry.device
    hop = _device_hop(device)
    _set_ingress(hop, _uplink_link(index, device))
    _set_egress(hop, _down_link(index, entry))
    if device.has_wireless_uplink:
        hop.notes = "Wireless mesh uplink"
        _apply_mesh_radio(hop, device)
    if device.mac == server.switch_mac:
        hop.notes = "Server's switch"
    return hop


def _descend(state: _TraceState, index: TopologyIndex, chain: list[ChainEntry], server: ServerPosition) -> None:
    """Append the server chain from the gateway end down, skipping gateways."""
    for entry in reversed(chain):
        if entry.device.role == DeviceRole.GATEWAY:
            continue
        state.append(_return_hop(index, entry, server))


def _routing_hop(hop: Hop, device: Device) -> None:
    hop.notes = "L3 routing (inter-VLAN)"
    limit = GATEWAY_ROUTING_LIMITS.get(device.model_display) or GATEWAY_ROUTING_LIMITS.get(device.model)
    if limit:
        hop.ingress_speed_mbps = min(hop.ingress_speed_mbps, limit) if hop.ingress_speed_mbps else limit
        hop.egress_speed_mbps = min(hop.egress_speed_mbps, limit) if hop.egress_speed_mbps else limit
        hop.notes = f"L3 routing (inter-VLAN) - {limit / 1000:.1f} Gbps routing capacity"


# ── seeding ──────────────────────────────────────────────────────────


def _seed_device(state: _TraceState, index: TopologyIndex, device: Device) -> Hop:
    hop = _device_hop(device, notes="Target device")
    if device.has_wireless_uplink:
        speed = device.wireless_uplink_mbps
        hop.ingress_port_name = hop.egress_port_name = MESH_PORT_NAME
        hop.ingress_speed_mbps = hop.egress_speed_mbps = speed
        hop.is_wireless_ingress = hop.is_wireless_egress = True
        _apply_mesh_radio(hop, device)
    elif device.uplink_mac:
        speed = index.port_speed(device.uplink_mac, device.uplink_port)
        name = _parent_port_name(index, device)
        hop.ingress_port = hop.egress_port = device.uplink_port
        hop.ingress_port_name = hop.egress_port_name = name
        hop.ingress_speed_mbps = hop.egress_speed_mbps = speed
    state.arrive_via_uplink(device)
    return state.append(hop)


def _seed_client(state: _TraceState, index: TopologyIndex, match: ClientMatch) -> Hop:
    client = match.client
    hop = Hop(
        order=0,
        type=HopType.CLIENT if client.is_wired else HopType.WIRELESS_CLIENT,
        device_mac=client.mac,
        device_name=client.label,
        device_ip=client.ip,
    )
    state.current_mac, state.current_port = client.attached_mac, client.attached_port
    if client.is_wired:
        hop.notes = "Target client (wired)"
        if client.attached_mac and client.attached_port is not None:
            name = index.port_name(client.attached_mac, client.attached_port)
            speed = index.port_speed(client.attached_mac, client.attached_port)
            hop.ingress_port = hop.egress_port = client.attached_port
            hop.ingress_port_name = hop.egress_port_name = name
            hop.ingress_speed_mbps = hop.egress_speed_mbps = speed
    else:
        rate = client.tx_rate_kbps // 1000
        proto = client.radio_proto or client.radio
        hop.notes = f"Target client (wireless {proto})" if proto else "Target client (wireless)"
        hop.egress_port_name = WIFI_PORT_NAME
        hop.egress_speed_mbps = rate
        hop.is_wireless_egress = True
        hop.wireless_band = client.radio
        hop.wireless_channel = client.channel
        hop.wireless_signal_dbm = client.signal
        hop.wireless_tx_rate_mbps = rate
        hop.wireless_rx_rate_mbps = client.rx_rate_kbps // 1000
        state.arrived_wireless = True
        state.arrived_rate = rate
        state.arrived_label = WIFI_PORT_NAME
    return state.append(hop)


def _server_hop(index: TopologyIndex, server: ServerPosition) -> Hop:
    hop = Hop(
        order=0,
        type=HopType.SERVER,
        device_mac=server.mac,
        device_name=server.name or server.ip,
        device_ip=server.ip,
        notes="Speed test server",
    )
    if server.is_wired:
        hop.ingress_port = server.switch_port
        hop.ingress_port_name = index.port_name(server.switch_mac, server.switch_port)
        hop.ingress_speed_mbps = index.port_speed(server.switch_mac, server.switch_port)
    else:
        hop.ingress_port_name = WIFI_PORT_NAME
        hop.ingress_speed_mbps = server.tx_rate_kbps // 1000
        hop.is_wireless_ingress = True
    return hop


# ── main algorithm ───────────────────────────────────────────────────


def build_hop_list(
    path: NetworkPath,
    server: ServerPosition,
    match: Union[DeviceMatch, ClientMatch],
    index: TopologyIndex,
) -> None:
    """Fill ``path.hops`` for ``match`` as seen from ``server``.

    Uses ``path.requires_routing``, which must already be decided.
    """
    state = _TraceState()
    routing = path.requires_routing
    chain = build_server_chain(index, server)
    chain_pos = {entry.device.mac: i for i, entry in enumerate(chain)}

    if isinstance(match, DeviceMatch):
        target = match.device
        seed = _seed_device(state, index, target)
        pos = chain_pos.get(target.mac)

        if target.role == DeviceRole.GATEWAY:
            logger.debug(f"Target {target.label} is the gateway, descending server chain")
            if pos is not None:
                _set_ingress(seed, (None, "", 0, False))
                _set_egress(seed, _down_link(index, chain[pos]))
            _descend(state, index, chain, server)
            _finish(state, index, server, path)
            return

        if pos is not None and not routing:
            logger.debug(f"Target {target.label} is on the server's uplink chain")
            down = _down_link(index, chain[pos])
            _set_ingress(seed, down)
            _set_egress(seed, down)
            for entry in reversed(chain[:pos]):
                state.append(_return_hop(index, entry, server))
            _finish(state, index, server, path)
            return
    else:
        _seed_client(state, index, match)

    if state.current_mac and state.current_mac == server.switch_mac and not routing:
        device = index.device(state.current_mac)
        if device is not None:
            hop = _walked_hop(index, state, device)
            _set_egress(hop, _down_link(index, chain[0]) if chain else (server.switch_port, "", 0, False))
            hop.notes = "Same switch (direct L2 path)"
            state.append(hop)
        _finish(state, index, server, path)
        return

    steps = 0
    while state.current_mac and steps < MAX_HOPS:
        steps += 1
        device = index.device(state.current_mac)
        if device is None:
            logger.debug(f"Uplink {state.current_mac} not in inventory, ending trace")
            break

        hop = _walked_hop(index, state, device)
        pos = chain_pos.get(device.mac)

        if pos is not None and not routing:
            _set_egress(hop, _down_link(index, chain[pos]))
            if pos == 0:
                hop.notes = "Server's switch"
            state.append(hop)
            for entry in reversed(chain[:pos]):
                state.append(_return_hop(index, entry, server))
            break

        if device.role == DeviceRole.GATEWAY:
            if pos is not None:
                _set_egress(hop, _down_link(index, chain[pos]))
            if routing:
                _routing_hop(hop, device)
            state.append(hop)
            _descend(state, index, chain, server)
            break

        _set_egress(hop, _uplink_link(index, device))
        if device.has_wireless_uplink:
            hop.notes = "Wireless mesh uplink"
            _apply_mesh_radio(hop, device)
        state.append(hop)
        state.arrive_via_uplink(device)
    else:
        if state.current_mac:
            logger.warning(f"Uplink walk exceeded {MAX_HOPS} hops, path truncated")

    _finish(state, index, server, path)


def _finish(state: _TraceState, index: TopologyIndex, server: ServerPosition, path: NetworkPath) -> None:
    state.append(_server_hop(index, server))
    path.hops = sorted(state.hops, key=lambda h: h.order)


def compute_path(
    topology: Topology,
    server: ServerPosition,
    target: Union[str, DeviceMatch, ClientMatch, NotFound],
    dns_lookup: DnsLookup = resolve_hostname,
) -> NetworkPath:
    """Trace the path from ``server`` to ``target`` and compute its bottleneck.

    Never raises for unresolved targets; the returned path is marked invalid
    with the resolver's reason instead.
    """
    path = NetworkPath(
        source_host=server.name or server.ip,
        source_mac=server.mac,
        source_vlan=server.vlan,
        source_network=server.network_name,
    )

    match = resolve_target(topology, target, dns_lookup=dns_lookup) if isinstance(target, str) else target
    if isinstance(match, NotFound):
        path.is_valid = False
        path.error_message = match.reason
        path.destination_host = target if isinstance(target, str) else ""
        logger.warning(f"Target not resolved: {match.reason}")
        return path

    index = TopologyIndex(topology)
    source_ip = server.ip
    if isinstance(match, DeviceMatch):
        device = match.device
        # management address decides the L3 endpoint, not a .1 alias
        destination_ip = device.ip or match.resolved_ip
        network = index.network_for_ip(device.ip)
        path.destination_host = device.label
        path.destination_mac = device.mac
        path.destination_vlan = network.vlan if network else None
        path.destination_network = network.name if network else ""
        path.target_is_device = True
        path.target_is_gateway = device.role == DeviceRole.GATEWAY
        path.target_is_access_point = device.role == DeviceRole.ACCESS_POINT
    else:
        client = match.client
        destination_ip = client.ip
        path.destination_host = client.label
        path.destination_mac = client.mac
        path.destination_vlan = client.vlan
        path.destination_network = client.network_name

    path.requires_routing = requires_inter_vlan_routing(
        path.source_vlan,
        path.destination_vlan,
        path.source_network,
        path.destination_network,
        source_ip,
        destination_ip,
    )

    build_hop_list(path, server, match, index)

    gateway_hop = next((h for h in path.hops if h.type == HopType.GATEWAY), None)
    if gateway_hop is not None:
        gateway = index.device(gateway_hop.device_mac)
    else:
        gateway = index.gateway if path.requires_routing else None
    if gateway is not None:
        path.gateway_device = gateway.label
        path.gateway_model = gateway.display_model

    calculate_bottleneck(path)
    logger.info(
        f"Path {path.source_host} -> {path.destination_host}: {len(path.hops)} hops, "
        f"routing={path.requires_routing}, theoretical {path.theoretical_max_mbps} Mbps"
    )
    return path
