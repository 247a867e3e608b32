"""
DNS Router Configuration Schema

Listener, upstream, routing and logging settings. Every section validates
itself in ``__post_init__``; upstreams and route patterns are compiled here so
that mistakes surface before the router starts serving.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..core.matcher import compile_pattern
from ..core.resolver import DEFAULT_TIMEOUT_MS
from ..core.upstream import Node, parse_topology
from .validators import (
    validate_bind_address,
    validate_boolean,
    validate_domain_suffix,
    validate_file_path,
    validate_log_level,
    validate_port,
    validate_positive_int,
)


def parse_pattern(value: Any) -> Any:
    """Turn configuration data into a pattern; ``/.../`` strings are regexes"""
    if isinstance(value, str) and len(value) > 1 and value[0] == value[-1] == "/":
        try:
            return re.compile(value[1:-1])
        except re.error as e:
            raise ValueError(f"Invalid regular expression {value}: {e}") from None
    if isinstance(value, (list, tuple)):
        return [parse_pattern(v) for v in value]
    if isinstance(value, dict):
        return {key: parse_pattern(v) for key, v in value.items()}
    return value


@dataclass
class ServerConfig:
    """Listener configuration section."""

    bind_address: str = "127.0.0.1"
    port: int = 5353
    enable_udp: bool = True
    enable_tcp: bool = True

    def __post_init__(self) -> None:
        """Validate listener configuration."""
        if not validate_bind_address(self.bind_address):
            raise ValueError(f"Invalid bind address: {self.bind_address}")

        if not validate_port(self.port):
            raise ValueError(f"Invalid DNS port: {self.port}")

        if not validate_boolean(self.enable_udp):
            raise ValueError(f"Enable UDP must be boolean: {self.enable_udp}")

        if not validate_boolean(self.enable_tcp):
            raise ValueError(f"Enable TCP must be boolean: {self.enable_tcp}")

        if not (self.enable_udp or self.enable_tcp):
            raise ValueError("At least one of UDP and TCP must be enabled")


@dataclass
class LoggingConfig:
    """Logging configuration section."""

    level: str = "INFO"
    format: str = "console"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        if not validate_log_level(self.level):
            raise ValueError(f"Invalid log level: {self.level}")

        if self.format not in ["console", "json"]:
            raise ValueError(f"Invalid log format: {self.format}")

        if self.file is not None and not validate_file_path(self.file):
            raise ValueError(f"Invalid log file path: {self.file}")

        if not validate_positive_int(self.max_size_mb):
            raise ValueError(f"Max size MB must be positive: {self.max_size_mb}")

        if not validate_positive_int(self.backup_count):
            raise ValueError(f"Backup count must be positive: {self.backup_count}")


@dataclass
class AliasConfig:
    """One zone alias: names under ``fake`` are answered from ``real``."""

    fake: str
    real: str

    def __post_init__(self) -> None:
        if not validate_domain_suffix(self.fake):
            raise ValueError(f"Invalid alias suffix: {self.fake}")

        if not validate_domain_suffix(self.real):
            raise ValueError(f"Invalid alias target: {self.real}")


@dataclass
class RouterConfig:
    """Main DNS router configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    upstream: Any = field(default_factory=list)
    timeout: int = DEFAULT_TIMEOUT_MS
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    aliases: List[AliasConfig] = field(default_factory=list)
    proxy: List[Any] = field(default_factory=list)
    topology: Node = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate the configuration and compile upstreams and routes."""
        if not validate_positive_int(self.timeout):
            raise ValueError(f"Timeout must be a positive number of ms: {self.timeout}")

        # TopologyError is a ValueError naming the bad entry
        self.topology = parse_topology(self.upstream)

        self.aliases = [
            a if isinstance(a, AliasConfig) else AliasConfig(**a) for a in self.aliases
        ]

        if not isinstance(self.proxy, list):
            self.proxy = [self.proxy]
        self.proxy = [parse_pattern(p) for p in self.proxy]
        for pattern in self.proxy:
            compile_pattern(pattern)


def create_default_config() -> RouterConfig:
    """Create a default configuration instance."""
    return RouterConfig()
