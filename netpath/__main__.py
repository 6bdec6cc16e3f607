"""Orchestrator CLI: dispatches to sub-CLIs.

Sub-commands:
  trace       Trace the path to a host and grade a speed test against it

Examples:
  netpath trace nas.lan --controller 192.168.1.1 --password <PW>

  netpath trace 192.168.20.15 --source json --inventory site.json \\
      --server-ip 192.168.1.50 --from-mbps 912 --to-mbps 640
"""

from __future__ import annotations

import os
import sys

from tabulate import tabulate

from netpath import __version__, configure_logging
from netpath import glogger

COMMANDS = {
    "trace": ("netpath.pathtrace.cli", "Trace and grade the network path to a host"),
}


def _print_usage() -> None:
    print("usage: netpath <command> [options]\n")
    print("Available commands:")
    for cmd, (_, desc) in COMMANDS.items():
        print(f"  {cmd:14s}  {desc}")
    print("\nRun 'netpath <command> --help' for command-specific options.")


def _print_startup_banner() -> None:
    startup_rows = [
        ["version", __version__],
        ["controller", os.environ.get("NETPATH_CONTROLLER") or "-"],
        ["site", os.environ.get("NETPATH_SITE") or "default"],
    ]

    for var in ("GITHUB_REF", "GITHUB_SHA", "BUILDTIME"):
        val = os.environ.get(var)
        if val and not val.endswith("_is_undefined"):
            startup_rows.append([var, val])

    table_str = tabulate(startup_rows, tablefmt="mixed_grid")
    lines = table_str.split("\n")
    table_width = len(lines[0])
    title = "netpath starting up"
    title_border = "┍" + "━" * (table_width - 2) + "┑"
    title_row = "│ " + title.center(table_width - 4) + " │"
    separator = lines[0].replace("┍", "┝").replace("┑", "┥").replace("┯", "┿")

    glogger.opt(raw=True).info(
        "\n{}\n", title_border + "\n" + title_row + "\n" + separator + "\n" + "\n".join(lines[1:])
    )


def main() -> None:
    """Main entry point: dispatch to sub-CLI."""
    configure_logging()
    _print_startup_banner()

    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        _print_usage()
        sys.exit(0 if len(sys.argv) >= 2 else 1)

    command = sys.argv[1]
    if command not in COMMANDS:
        print(f"netpath: unknown command '{command}'\n", file=sys.stderr)
        _print_usage()
        sys.exit(1)

    module_path, _ = COMMANDS[command]

    from importlib import import_module

    module = import_module(module_path)
    module.main(sys.argv[2:])


if __name__ == "__main__":
    main()
