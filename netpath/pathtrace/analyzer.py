"""Orchestrates inventory retrieval, caching, path tracing and grading."""

from __future__ import annotations

import concurrent.futures
from typing import Optional, Union

from loguru import logger

from netpath.controller.base import BaseInventorySource
from netpath.controller.exceptions import ControllerError
from netpath.pathtrace.cache import TTLCache
from netpath.pathtrace.grading import grade_result
from netpath.pathtrace.models import (
    NetworkPath,
    NotFound,
    PathAnalysisResult,
    RetransmitCounters,
    ServerPosition,
    Topology,
)
from netpath.pathtrace.resolver import DnsLookup, resolve_hostname
from netpath.pathtrace.server import get_local_ipv4_addresses, resolve_server_position
from netpath.pathtrace.topology import build_topology
from netpath.pathtrace.tracer import compute_path

TOPOLOGY_CACHE_KEY = "topology"
SERVER_POSITION_CACHE_KEY = "server_position"
TOPOLOGY_TTL_SECONDS = 5 * 60
SERVER_POSITION_TTL_SECONDS = 10 * 60


class NetworkPathAnalyzer:
    """Trace and grade paths between this machine and hosts on the LAN.

    Args:
        source: Inventory source (UniFi controller or JSON snapshot).
        local_ips: Server addresses; enumerated from local interfaces if omitted.
        cache: Shared cache; a private one is created if omitted.
        dns_lookup: Hostname resolver used for targets not in the inventory.
    """

    def __init__(
        self,
        source: BaseInventorySource,
        local_ips: Optional[list[str]] = None,
        cache: Optional[TTLCache] = None,
        dns_lookup: DnsLookup = resolve_hostname,
    ):
        self.source = source
        self.local_ips = local_ips
        self.cache = cache or TTLCache()
        self.dns_lookup = dns_lookup

    def fetch_topology(self) -> Topology:
        """Read devices, clients and networks concurrently and build a snapshot."""
        with concurrent.futures.ThreadPoolExecutor(max_workers=3) as pool:
            futures = {
                "devices": pool.submit(self.source.list_devices),
                "clients": pool.submit(self.source.list_clients),
                "networks": pool.submit(self.source.list_networks),
            }
            try:
                results = {name: future.result() for name, future in futures.items()}
            except BaseException:
                for future in futures.values():
                    future.cancel()
                raise

        if not results["devices"]:
            raise ControllerError("Controller returned no devices")
        return build_topology(results["devices"], results["clients"], results["networks"])

    def get_topology(self) -> Topology:
        return self.cache.get_or_load(TOPOLOGY_CACHE_KEY, self.fetch_topology, TOPOLOGY_TTL_SECONDS)

    def discover_server_position(self) -> Union[ServerPosition, NotFound]:
        """Locate this machine in the topology; successful results are cached."""
        cached = self.cache.get(SERVER_POSITION_CACHE_KEY)
        if cached is not None:
            return cached

        topology = self.get_topology()
        local_ips = self.local_ips or get_local_ipv4_addresses()
        position = resolve_server_position(topology, local_ips)
        if isinstance(position, ServerPosition):
            self.cache.set(SERVER_POSITION_CACHE_KEY, position, SERVER_POSITION_TTL_SECONDS)
        else:
            logger.warning(position.reason)
        return position

    def calculate_path(self, target: str) -> NetworkPath:
        """Trace the path to ``target``.

        Controller failures and resolution failures yield an invalid path
        carrying the error message instead of raising.
        """
        try:
            topology = self.get_topology()
            position = self.discover_server_position()
        except ControllerError as e:
            logger.warning(f"Controller data unavailable: {e}")
            return NetworkPath(
                destination_host=target, is_valid=False, error_message=f"Controller data unavailable: {e}"
            )

        if isinstance(position, NotFound):
            return NetworkPath(destination_host=target, is_valid=False, error_message=position.reason)

        return compute_path(topology, position, target, dns_lookup=self.dns_lookup)

    def analyze_speed_test(
        self,
        path: NetworkPath,
        from_mbps: float,
        to_mbps: float,
        retransmits: Optional[RetransmitCounters] = None,
    ) -> PathAnalysisResult:
        result = grade_result(path, from_mbps, to_mbps, retransmits)
        logger.info(
            f"Graded {path.destination_host}: from={result.from_device_efficiency_percent:.0f}% "
            f"to={result.to_device_efficiency_percent:.0f}%, "
            f"{len(result.insights)} insight(s), {len(result.recommendations)} recommendation(s)"
        )
        return result

    def invalidate(self) -> None:
        """Forget cached topology and server position."""
        self.cache.invalidate()
