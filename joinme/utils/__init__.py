"""Utility functions and helpers package."""

from .helpers import ensure_timezone_aware, get_timezone_aware_now, parse_iso_datetime, with_timeout
from .logging import get_logger, setup_logging
from .network import ConnectivityMonitor, SocketConnectivityMonitor, StaticConnectivityMonitor

__all__ = [
    "ConnectivityMonitor",
    "SocketConnectivityMonitor",
    "StaticConnectivityMonitor",
    "ensure_timezone_aware",
    "get_logger",
    "get_timezone_aware_now",
    "parse_iso_datetime",
    "setup_logging",
    "with_timeout",
]
