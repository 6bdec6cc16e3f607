"""CLI entry point for path tracing and speed-test grading.

Examples:
  # Trace against a UniFi OS console, credentials from the environment
  NETPATH_CONTROLLER=192.168.1.1 NETPATH_USERNAME=admin NETPATH_PASSWORD=<PW> \\
      netpath trace nas.lan

  # Grade an iperf3 result against the traced path
  netpath trace 192.168.20.15 --controller 192.168.1.1 --password <PW> \\
      --from-mbps 912 --to-mbps 640 --to-retransmits 3400 --to-bytes 800000000

  # Offline, from a JSON dump of stat/device, stat/sta and rest/networkconf
  netpath trace office-ap --source json --inventory site.json \\
      --server-ip 192.168.1.50 --format mermaid -o path.md
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from loguru import logger

from netpath.controller import ControllerError, create_source, list_sources
from netpath.controller.base import BaseInventorySource
from netpath.pathtrace.analyzer import NetworkPathAnalyzer
from netpath.pathtrace.models import PathAnalysisResult, RetransmitCounters
from netpath.pathtrace.render import FORMATS, render


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Build argparse parser for path tracing."""
    parser = argparse.ArgumentParser(
        prog="netpath trace",
        description="Trace the L2/L3 path to a host and grade a measured throughput sample",
    )
    parser.add_argument("target", help="Target IP, hostname, MAC, or device/client name")

    source = parser.add_argument_group("inventory source")
    source.add_argument("--source", choices=list_sources(), default="unifi", help="Inventory source (default: unifi)")
    source.add_argument(
        "--controller",
        default=os.getenv("NETPATH_CONTROLLER", ""),
        help="Controller host or https:// URL (env: NETPATH_CONTROLLER)",
    )
    source.add_argument(
        "--username",
        default=os.getenv("NETPATH_USERNAME", "admin"),
        help="Controller username (env: NETPATH_USERNAME, default: admin)",
    )
    source.add_argument(
        "--password",
        default=os.getenv("NETPATH_PASSWORD", ""),
        help="Controller password (env: NETPATH_PASSWORD)",
    )
    source.add_argument(
        "--site",
        default=os.getenv("NETPATH_SITE", "default"),
        help="Controller site name (env: NETPATH_SITE, default: default)",
    )
    source.add_argument("--verify-ssl", action="store_true", help="Verify SSL certificates")
    source.add_argument("--inventory", help="JSON inventory file (with --source json)")

    server = parser.add_argument_group("server")
    server.add_argument(
        "--server-ip",
        action="append",
        help="Speed test server IP (repeatable; default: local interface addresses)",
    )

    grading = parser.add_argument_group("grading")
    grading.add_argument("--from-mbps", type=float, help="Measured throughput from the target (Mbps)")
    grading.add_argument("--to-mbps", type=float, help="Measured throughput to the target (Mbps)")
    grading.add_argument("--from-retransmits", type=int, default=0, help="TCP retransmits, target -> server")
    grading.add_argument("--to-retransmits", type=int, default=0, help="TCP retransmits, server -> target")
    grading.add_argument("--from-bytes", type=int, default=0, help="Bytes transferred, target -> server")
    grading.add_argument("--to-bytes", type=int, default=0, help="Bytes transferred, server -> target")

    parser.add_argument("--format", choices=FORMATS, default="table", help="Output format (default: table)")
    parser.add_argument("-o", "--output", help="Write output to file instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser.parse_args(args)


def _build_source(parsed: argparse.Namespace) -> BaseInventorySource:
    if parsed.source == "json":
        if not parsed.inventory:
            raise ValueError("--inventory is required with --source json")
        return create_source("json", path=parsed.inventory)
    if not parsed.controller:
        raise ValueError("--controller (or NETPATH_CONTROLLER) is required with --source unifi")
    return create_source(
        parsed.source,
        host=parsed.controller,
        username=parsed.username,
        password=parsed.password,
        site=parsed.site,
        verify_ssl=parsed.verify_ssl,
    )


def main(args: list[str] | None = None) -> None:
    """Main entry point for the trace CLI."""
    parsed = parse_args(args)

    if not parsed.verbose:
        logger.remove()
        logger.add(sys.stderr, level="INFO")

    try:
        source = _build_source(parsed)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        with source:
            analyzer = NetworkPathAnalyzer(source, local_ips=parsed.server_ip)
            path = analyzer.calculate_path(parsed.target)
            result: PathAnalysisResult | None = None
            if parsed.from_mbps is not None or parsed.to_mbps is not None:
                counters = RetransmitCounters(
                    from_device_retransmits=parsed.from_retransmits,
                    to_device_retransmits=parsed.to_retransmits,
                    from_device_bytes=parsed.from_bytes,
                    to_device_bytes=parsed.to_bytes,
                )
                result = analyzer.analyze_speed_test(path, parsed.from_mbps or 0.0, parsed.to_mbps or 0.0, counters)
    except ControllerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)

    output = render(path, result, parsed.format)
    if parsed.output:
        Path(parsed.output).write_text(output + "\n")
        logger.info(f"Output written to {parsed.output}")
    else:
        print(output)

    if not path.is_valid:
        sys.exit(1)


if __name__ == "__main__":
    main()
