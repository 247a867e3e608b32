"""
DNS Router Logging Module

This module provides structured logging (structlog over the standard library)
for the router, its resolver and the transport.
"""

from .logger import StructuredLogger, get_logger, log_exception, setup_logging

__all__ = [
    "StructuredLogger",
    "setup_logging",
    "get_logger",
    "log_exception",
]
