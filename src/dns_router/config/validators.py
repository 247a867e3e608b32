"""
Configuration Validators

This module provides validation functions for DNS router configuration parameters.
"""

import ipaddress
import re
from pathlib import Path
from typing import Any

_SUFFIX_RE = re.compile(r"^[a-zA-Z0-9_*-]+(\.[a-zA-Z0-9_-]+)*\.?$")


def validate_bind_address(address: str) -> bool:
    """Validate bind address format."""
    if not address or not isinstance(address, str):
        return False

    try:
        ipaddress.ip_address(address)
        return True
    except ValueError:
        return False


def validate_boolean(value: Any) -> bool:
    """Validate boolean value."""
    return isinstance(value, bool)


def validate_file_path(path: str) -> bool:
    """Validate file path format."""
    if not path:
        return False

    try:
        Path(path)
        return True
    except (TypeError, ValueError):
        return False


def validate_log_level(level: str) -> bool:
    """Validate log level."""
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    return isinstance(level, str) and level.upper() in valid_levels


def validate_positive_int(value: Any) -> bool:
    """Validate positive integer."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_port(port: Any) -> bool:
    """Validate port number."""
    return validate_positive_int(port) and port <= 65535


def validate_domain_suffix(suffix: Any) -> bool:
    """Validate a zone suffix such as ``example.com`` or ``local.example``."""
    return isinstance(suffix, str) and bool(_SUFFIX_RE.match(suffix))
