"""Bottleneck scan and theoretical-to-realistic throughput conversion."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from netpath.pathtrace._util import format_speed
from netpath.pathtrace.models import Hop, HopType, NetworkPath

# Measured TCP throughput (Mbps) per negotiated wired link speed
REALISTIC_MAX_BY_LINK_SPEED: dict[int, int] = {
    100: 94,
    1000: 960,
    2500: 2390,
    5000: 4850,
    10000: 9910,
}

WIRED_OVERHEAD_FACTOR = 0.94
WIRELESS_EFFICIENCY_FACTOR = 0.60

# Assumed when no hop reports any speed
DEFAULT_LINK_SPEED_MBPS = 1000


def realistic_max_mbps(theoretical: int, wireless: bool = False) -> int:
    """Convert a PHY/link speed to the throughput a TCP test can realistically reach."""
    if theoretical <= 0:
        return 0
    if wireless:
        return round(theoretical * WIRELESS_EFFICIENCY_FACTOR)
    return REALISTIC_MAX_BY_LINK_SPEED.get(theoretical, round(theoretical * WIRED_OVERHEAD_FACTOR))


def _port_label(port: Optional[int], name: str) -> str:
    if name:
        return name
    if port is not None:
        return f"port {port}"
    return "Wi-Fi"


def calculate_bottleneck(path: NetworkPath) -> None:
    """Set theoretical/realistic maximum and flag the slowest hop of ``path``.

    A hop is only flagged when the path has faster links elsewhere; a path
    that is uniformly slow has a cap, not a bottleneck.
    """
    for hop in path.hops:
        hop.is_bottleneck = False
    path.has_real_bottleneck = False
    path.bottleneck_description = ""
    path.bottleneck_is_wireless = False

    if not path.hops:
        path.theoretical_max_mbps = 0
        path.realistic_max_mbps = 0
        return

    min_speed: Optional[int] = None
    max_speed = 0
    slowest: Optional[Hop] = None
    slowest_label = ""

    for hop in path.hops:
        directions = (
            (hop.ingress_speed_mbps, hop.ingress_port, hop.ingress_port_name, hop.is_wireless_ingress),
            (
                hop.egress_speed_mbps,
                hop.egress_port,
                hop.egress_port_name,
                hop.is_wireless_egress or hop.type == HopType.WIRELESS_CLIENT,
            ),
        )
        for speed, port, name, wireless in directions:
            if speed <= 0:
                continue
            max_speed = max(max_speed, speed)
            if min_speed is None or speed < min_speed:
                min_speed = speed
                slowest = hop
                slowest_label = _port_label(port, name)
                path.bottleneck_is_wireless = wireless

    if min_speed is None or slowest is None:
        path.theoretical_max_mbps = DEFAULT_LINK_SPEED_MBPS
        path.realistic_max_mbps = realistic_max_mbps(DEFAULT_LINK_SPEED_MBPS)
        logger.debug("No link speeds reported on path, assuming 1 GbE")
        return

    path.theoretical_max_mbps = min_speed
    path.realistic_max_mbps = realistic_max_mbps(min_speed, wireless=path.bottleneck_is_wireless)
    path.has_real_bottleneck = min_speed < max_speed

    if path.has_real_bottleneck:
        slowest.is_bottleneck = True
        path.bottleneck_description = f"{format_speed(min_speed)} link at {slowest.device_name} ({slowest_label})"
        logger.debug(f"Bottleneck: {path.bottleneck_description}")
