"""Shared helper functions for path tracing."""

from __future__ import annotations

import ipaddress
import re
import subprocess
from typing import Optional

from loguru import logger

_MAC_SEPARATORS = re.compile(r"[-.]")


def normalize_mac(mac: Optional[str]) -> str:
    """Lower-case a MAC address and use colons as separators."""
    if not mac:
        return ""
    mac = mac.strip().lower()
    if _MAC_SEPARATORS.search(mac) and ":" not in mac:
        raw = _MAC_SEPARATORS.sub("", mac)
        if len(raw) == 12:
            return ":".join(raw[i : i + 2] for i in range(0, 12, 2))
    return mac


def _validate_ip(ip: str) -> bool:
    """Validate IPv4 address string."""
    try:
        ipaddress.IPv4Address(ip)
        return True
    except ValueError:
        return False


def slash24_prefix(ip: str) -> str:
    """Return the first three octets of an IPv4 address, or "" if invalid."""
    if not _validate_ip(ip):
        return ""
    return ip.rsplit(".", 1)[0]


def ip_in_subnet(ip: str, cidr: str) -> bool:
    """Check whether ``ip`` falls inside ``cidr`` (host bits allowed in cidr)."""
    if not ip or not cidr:
        return False
    try:
        return ipaddress.ip_address(ip) in ipaddress.ip_network(cidr, strict=False)
    except ValueError:
        return False


def format_speed(mbps: int) -> str:
    """Render a link speed: "100 Mbps", "2.5 Gbps", "10 Gbps"."""
    if mbps < 1000:
        return f"{mbps} Mbps"
    gbps = mbps / 1000
    text = f"{gbps:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return f"{text} Gbps"


def _run_cmd(cmd: list[str], timeout: int = 30) -> str:
    """Run a subprocess command and return stdout."""
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        return result.stdout
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug(f"Command {cmd[0]} failed: {e}")
        return ""
