"""Network path analysis for controller-managed LANs.

Discovers where the measurement server sits in the controller-reported
topology, traces the L2/L3 path to any device or client, and grades measured
throughput against the path's theoretical and realistic capacity.
"""

__version__ = "0.1.0"

import os
import sys
from typing import Any, Callable, Dict

from loguru import logger as glogger

glogger.disable(__name__)


def _loguru_skiplog_filter(record: dict) -> bool:  # type: ignore[type-arg]
    """Filter function to hide records with ``extra['skiplog']`` set."""
    return not record.get("extra", {}).get("skiplog", False)


def configure_logging(
    loguru_filter: Callable[[Dict[str, Any]], bool] = _loguru_skiplog_filter,
) -> None:
    """Configure a default ``loguru`` sink with a convenient format and filter."""
    os.environ["LOGURU_LEVEL"] = os.getenv("LOGURU_LEVEL", "DEBUG")
    glogger.remove()
    logger_fmt: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>::<cyan>{extra[classname]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    glogger.add(sys.stderr, level=os.getenv("LOGURU_LEVEL"), format=logger_fmt, filter=loguru_filter)  # type: ignore[arg-type]
    glogger.configure(extra={"classname": "None", "skiplog": False})
    glogger.enable(__name__)


from netpath.controller.exceptions import (  # noqa: E402
    APIError,
    AuthenticationError,
    ControllerError,
    InventoryError,
)
from netpath.pathtrace.analyzer import NetworkPathAnalyzer  # noqa: E402
from netpath.pathtrace.grading import grade_result  # noqa: E402
from netpath.pathtrace.server import resolve_server_position  # noqa: E402
from netpath.pathtrace.tracer import compute_path  # noqa: E402

__all__ = [
    "glogger",
    "configure_logging",
    "NetworkPathAnalyzer",
    "compute_path",
    "grade_result",
    "resolve_server_position",
    "ControllerError",
    "AuthenticationError",
    "APIError",
    "InventoryError",
]
