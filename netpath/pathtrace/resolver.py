"""Map a user-supplied host string to a device or client in the topology."""

from __future__ import annotations

import socket
from typing import Callable, Optional, Union

from loguru import logger

from netpath.pathtrace._util import _validate_ip
from netpath.pathtrace.models import ClientMatch, DeviceMatch, DeviceRole, NotFound, Topology
from netpath.pathtrace.topology import TopologyIndex

# Tried in order after the bare name
DNS_SUFFIXES = (".local", ".lan", ".home", ".localdomain")

DnsLookup = Callable[[str], Optional[str]]


def resolve_hostname(name: str) -> Optional[str]:
    """Resolve ``name`` to an IPv4 address, trying common LAN suffixes."""
    for candidate in (name, *(f"{name}{suffix}" for suffix in DNS_SUFFIXES)):
        try:
            infos = socket.getaddrinfo(candidate, None, socket.AF_INET, socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError, OSError):
            continue
        for info in infos:
            ip = str(info[4][0])
            if _validate_ip(ip):
                logger.debug(f"Resolved {name} via {candidate} -> {ip}")
                return ip
    return None


def match_gateway_secondary_address(topology: Topology, target: str) -> Optional[DeviceMatch]:
    """Treat an unmatched ``x.y.z.1`` address as the gateway's LAN-side address.

    Multi-homed gateways report a single management IP, so their per-VLAN
    interface addresses are not in the inventory. A non-gateway host can
    hold a ``.1`` address too, which is why this only runs after the exact
    matches failed and only when exactly one gateway is known.
    """
    if not _validate_ip(target) or not target.endswith(".1"):
        return None
    gateways = [d for d in topology.devices if d.role == DeviceRole.GATEWAY]
    if len(gateways) != 1:
        return None
    logger.debug(f"{target} assumed to be a LAN address of gateway {gateways[0].label}")
    return DeviceMatch(device=gateways[0], resolved_ip=target)


def _match_exact(index: TopologyIndex, text: str) -> Optional[Union[DeviceMatch, ClientMatch]]:
    device = index.find_device(text)
    if device is not None:
        return DeviceMatch(device=device, resolved_ip=device.ip)
    client = index.find_client(text)
    if client is not None:
        return ClientMatch(client=client, resolved_ip=client.ip)
    return None


def resolve_target(
    topology: Topology,
    target: str,
    dns_lookup: DnsLookup = resolve_hostname,
) -> Union[DeviceMatch, ClientMatch, NotFound]:
    """Resolve ``target`` (IP, hostname, MAC or display name).

    Devices win over clients; a DNS lookup is only attempted once every
    inventory match has failed, and its result is matched the same way.
    """
    target = (target or "").strip()
    if not target:
        return NotFound(reason="Empty target")

    index = TopologyIndex(topology)
    match = _match_exact(index, target)
    if match is not None:
        return match

    gateway = match_gateway_secondary_address(topology, target)
    if gateway is not None:
        return gateway

    if _validate_ip(target):
        return NotFound(reason=f"No device or client with IP {target}")

    resolved = dns_lookup(target)
    if resolved is None:
        return NotFound(reason=f"Could not resolve {target} to a device, client or IP address")

    match = _match_exact(index, resolved)
    if match is not None:
        return match.model_copy(update={"resolved_ip": resolved})
    return NotFound(reason=f"{target} resolved to {resolved}, which is not in the controller inventory")
