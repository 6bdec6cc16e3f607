"""Locate the measurement server inside the controller topology."""

from __future__ import annotations

import re
import socket
from typing import Iterable, Union

from loguru import logger

from netpath.pathtrace._util import _run_cmd, _validate_ip
from netpath.pathtrace.models import NotFound, ServerPosition, Topology
from netpath.pathtrace.topology import TopologyIndex


def get_local_ipv4_addresses() -> list[str]:
    """Return this machine's non-loopback IPv4 addresses on interfaces that are up."""
    ips: list[str] = []
    output = _run_cmd(["ip", "-4", "-o", "addr", "show", "up"])
    for line in output.splitlines():
        m = re.search(r"^\d+:\s+(\S+)\s+inet (\d+\.\d+\.\d+\.\d+)/\d+", line)
        if not m or m.group(1) == "lo":
            continue
        ip = m.group(2)
        if not ip.startswith("127.") and ip not in ips:
            ips.append(ip)

    if not ips:
        # no iproute2 (macOS, containers): fall back to resolver view of our hostname
        try:
            _, _, addrs = socket.gethostbyname_ex(socket.gethostname())
        except OSError as e:
            logger.debug(f"Hostname lookup failed: {e}")
            addrs = []
        ips = [a for a in addrs if _validate_ip(a) and not a.startswith("127.")]

    logger.debug(f"Local IPv4 addresses: {ips}")
    return ips


def resolve_server_position(topology: Topology, local_ips: Iterable[str]) -> Union[ServerPosition, NotFound]:
    """Find the client entry that carries one of our local IPs.

    The matched client's attachment device supplies the switch name and
    model when it is known to the controller.
    """
    wanted = [ip for ip in local_ips if ip]
    if not wanted:
        return NotFound(reason="No local IPv4 addresses to match against the client inventory")

    index = TopologyIndex(topology)
    client = next((c for c in topology.clients if c.ip and c.ip in wanted), None)
    if client is None:
        return NotFound(reason=f"Server not found in client inventory (local IPs: {', '.join(wanted)})")

    switch = index.device(client.attached_mac)
    position = ServerPosition(
        ip=client.ip,
        mac=client.mac,
        name=client.label,
        switch_mac=client.attached_mac,
        switch_port=client.attached_port,
        switch_name=switch.label if switch else "",
        switch_model=switch.display_model if switch else "",
        network_name=client.network_name,
        vlan=client.vlan,
        is_wired=client.is_wired,
        tx_rate_kbps=client.tx_rate_kbps,
        radio=client.radio,
    )
    logger.info(
        f"Server {position.ip} attached to {position.switch_name or position.switch_mac or 'unknown device'}"
        f" port {position.switch_port}"
    )
    return position
