"""Network path tracing subpackage.

Builds a topology snapshot from controller inventory, locates the speed test
server, resolves targets, traces the hop-by-hop L2/L3 path, finds the
bottleneck link and grades measured throughput against it.
"""

from netpath.pathtrace.analyzer import NetworkPathAnalyzer
from netpath.pathtrace.bottleneck import calculate_bottleneck, realistic_max_mbps
from netpath.pathtrace.grading import grade_for_efficiency, grade_result
from netpath.pathtrace.models import (
    Client,
    ClientMatch,
    Device,
    DeviceMatch,
    DeviceRole,
    Hop,
    HopType,
    Network,
    NetworkPath,
    NotFound,
    PathAnalysisResult,
    PerformanceGrade,
    RetransmitCounters,
    ServerPosition,
    Topology,
    UplinkMedium,
)
from netpath.pathtrace.resolver import resolve_target
from netpath.pathtrace.server import get_local_ipv4_addresses, resolve_server_position
from netpath.pathtrace.topology import TopologyIndex, build_topology
from netpath.pathtrace.tracer import build_hop_list, compute_path, requires_inter_vlan_routing

__all__ = [
    "NetworkPathAnalyzer",
    "build_topology",
    "TopologyIndex",
    "get_local_ipv4_addresses",
    "resolve_server_position",
    "resolve_target",
    "compute_path",
    "build_hop_list",
    "requires_inter_vlan_routing",
    "calculate_bottleneck",
    "realistic_max_mbps",
    "grade_result",
    "grade_for_efficiency",
    "Client",
    "ClientMatch",
    "Device",
    "DeviceMatch",
    "DeviceRole",
    "Hop",
    "HopType",
    "Network",
    "NetworkPath",
    "NotFound",
    "PathAnalysisResult",
    "PerformanceGrade",
    "RetransmitCounters",
    "ServerPosition",
    "Topology",
    "UplinkMedium",
]
