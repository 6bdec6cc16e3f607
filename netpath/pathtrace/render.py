"""Text renderings of a traced path and its grade: table, JSON, Mermaid."""

from __future__ import annotations

import json
from typing import Optional

from tabulate import tabulate

from netpath.pathtrace._util import format_speed
from netpath.pathtrace.models import Hop, HopType, NetworkPath, PathAnalysisResult

FORMATS = ("table", "json", "mermaid")

# Mermaid node shapes per hop type
_NODE_SHAPES: dict[HopType, tuple[str, str]] = {
    HopType.GATEWAY: ("{{", "}}"),
    HopType.SWITCH: ("[", "]"),
    HopType.ACCESS_POINT: ("([", "])"),
    HopType.SERVER: ("[(", ")]"),
}


def _speed(mbps: int) -> str:
    return format_speed(mbps) if mbps > 0 else "-"


def _port(port: Optional[int], name: str) -> str:
    if name:
        return name
    return str(port) if port is not None else ""


def render_table(path: NetworkPath, result: Optional[PathAnalysisResult] = None) -> str:
    """Human-readable summary with a hop table (tabulate)."""
    lines = [f"Path: {path.source_host or '?'} -> {path.destination_host or '?'}"]
    if not path.is_valid:
        lines.append(f"INVALID: {path.error_message}")
        return "\n".join(lines)

    src_vlan = path.source_vlan if path.source_vlan is not None else "-"
    dst_vlan = path.destination_vlan if path.destination_vlan is not None else "-"
    src_net = path.source_network or "-"
    dst_net = path.destination_network or "-"
    lines.append(f"Networks: {src_net} (VLAN {src_vlan}) -> {dst_net} (VLAN {dst_vlan})")
    if path.requires_routing:
        lines.append(f"Inter-VLAN routing via {path.gateway_device or 'gateway'}")

    rows = []
    for hop in path.hops:
        rows.append(
            [
                hop.order,
                hop.type.value,
                hop.device_name,
                hop.device_model,
                _port(hop.ingress_port, hop.ingress_port_name),
                _speed(hop.ingress_speed_mbps),
                _port(hop.egress_port, hop.egress_port_name),
                _speed(hop.egress_speed_mbps),
                "*" if hop.is_bottleneck else "",
                hop.notes,
            ]
        )
    lines.append("")
    lines.append(
        tabulate(
            rows,
            headers=["#", "Type", "Device", "Model", "In port", "In", "Out port", "Out", "BN", "Notes"],
            tablefmt="simple",
        )
    )
    lines.append("")
    lines.append(
        f"Theoretical max: {_speed(path.theoretical_max_mbps)}, realistic max: {_speed(path.realistic_max_mbps)}"
    )
    if path.has_real_bottleneck:
        lines.append(f"Bottleneck: {path.bottleneck_description}")

    if result is not None:
        lines.append("")
        grade_rows = [
            [
                "from device",
                f"{result.measured_from_device_mbps:.0f} Mbps",
                f"{result.from_device_efficiency_percent:.1f}%",
                result.from_device_grade.value if result.from_device_grade else "-",
            ],
            [
                "to device",
                f"{result.measured_to_device_mbps:.0f} Mbps",
                f"{result.to_device_efficiency_percent:.1f}%",
                result.to_device_grade.value if result.to_device_grade else "-",
            ],
        ]
        lines.append(tabulate(grade_rows, headers=["Direction", "Measured", "Efficiency", "Grade"], tablefmt="simple"))
        for insight in result.insights:
            lines.append(f"  - {insight}")
        for rec in result.recommendations:
            lines.append(f"  > {rec}")

    return "\n".join(lines)


def render_json(path: NetworkPath, result: Optional[PathAnalysisResult] = None) -> str:
    if result is not None:
        return result.model_dump_json(indent=2)
    return json.dumps({"path": path.model_dump(mode="json")}, indent=2)


def _sanitize(text: str) -> str:
    """Sanitize text for Mermaid labels."""
    return text.replace('"', "'").replace("<", "&lt;").replace(">", "&gt;")


def _node(node_id: str, hop: Hop) -> str:
    left, right = _NODE_SHAPES.get(hop.type, ("[", "]"))
    parts = [_sanitize(hop.device_name or hop.device_mac or hop.type.value)]
    if hop.device_model:
        parts.append(_sanitize(hop.device_model))
    if hop.notes:
        parts.append(_sanitize(hop.notes))
    return f'    {node_id}{left}"{"<br/>".join(parts)}"{right}'


def _edge_speed(a: Hop, b: Hop) -> int:
    if a.egress_speed_mbps and b.ingress_speed_mbps:
        return min(a.egress_speed_mbps, b.ingress_speed_mbps)
    return a.egress_speed_mbps or b.ingress_speed_mbps


def render_mermaid(path: NetworkPath, result: Optional[PathAnalysisResult] = None) -> str:
    """Mermaid flowchart of the hop chain; the bottleneck hop is highlighted."""
    lines = ["```mermaid", "flowchart LR"]
    ids = [f"h{hop.order}" for hop in path.hops]
    for node_id, hop in zip(ids, path.hops):
        lines.append(_node(node_id, hop))
    for i in range(len(path.hops) - 1):
        a, b = path.hops[i], path.hops[i + 1]
        speed = _edge_speed(a, b)
        wireless = a.is_wireless_egress or b.is_wireless_ingress
        arrow = "-.->" if wireless else "-->"
        label = _speed(speed) if speed else ""
        lines.append(f'    {ids[i]} {arrow}|"{label}"| {ids[i + 1]}' if label else f"    {ids[i]} {arrow} {ids[i + 1]}")
    bottlenecks = [node_id for node_id, hop in zip(ids, path.hops) if hop.is_bottleneck]
    if bottlenecks:
        lines.append("    classDef bottleneck stroke:#d33,stroke-width:3px")
        lines.append(f"    class {','.join(bottlenecks)} bottleneck")
    lines.append("```")
    if result is not None and result.insights:
        lines.append("")
        lines.extend(f"- {insight}" for insight in result.insights)
    return "\n".join(lines)


def render(path: NetworkPath, result: Optional[PathAnalysisResult] = None, fmt: str = "table") -> str:
    if fmt == "json":
        return render_json(path, result)
    if fmt == "mermaid":
        return render_mermaid(path, result)
    return render_table(path, result)
