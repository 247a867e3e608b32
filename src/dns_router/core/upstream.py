"""
Upstream Topology

Upstream servers form a tree: leaves are server endpoints, internal nodes are
ordered groups whose children are raced for the first successful answer.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Any, Iterator, Tuple, Union

from .errors import TopologyError

DEFAULT_PORT = 53

_HOSTNAME_RE = re.compile(r"^[a-zA-Z0-9.-]+$")


@dataclass(frozen=True)
class Endpoint:
    """A single upstream DNS server"""

    address: str
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if not 1 <= self.port <= 65535:
            raise TopologyError(f"Invalid upstream port: {self.port}")

    def __str__(self) -> str:
        if ":" in self.address:
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class Group:
    """Servers (or nested groups) raced for the first success"""

    children: Tuple["Node", ...] = ()

    def endpoints(self) -> Iterator[Endpoint]:
        for child in self.children:
            if isinstance(child, Endpoint):
                yield child
            else:
                yield from child.endpoints()

    def __str__(self) -> str:
        return "[" + ", ".join(str(c) for c in self.children) + "]"


Node = Union[Endpoint, Group]


def _valid_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return bool(_HOSTNAME_RE.match(host))


def parse_endpoint(text: str) -> Endpoint:
    """Parse ``host``, ``host:port``, ``[v6]:port`` or a bare IPv6 address"""
    text = text.strip()
    host, port = text, DEFAULT_PORT

    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep:
            raise TopologyError(f"Invalid upstream server: {text}")
        if rest:
            if not rest.startswith(":"):
                raise TopologyError(f"Invalid upstream server: {text}")
            port = rest[1:]
    elif text.count(":") == 1:
        host, port = text.split(":")

    try:
        port = int(port)
    except ValueError:
        raise TopologyError(f"Invalid upstream port in {text!r}") from None

    if not host or not _valid_host(host):
        raise TopologyError(f"Invalid upstream server: {text}")

    return Endpoint(address=host, port=port)


def parse_topology(value: Any) -> "Node":
    """Build a topology node from configuration data.

    Strings and ``{address, port}`` mappings are endpoints; lists (nested to any
    depth) are racing groups.

    Raises:
        TopologyError: If an entry cannot be parsed
    """
    if isinstance(value, (Endpoint, Group)):
        return value
    if isinstance(value, str):
        return parse_endpoint(value)
    if isinstance(value, dict):
        if "address" not in value:
            raise TopologyError(f"Upstream mapping needs an address: {value}")
        try:
            port = int(value.get("port", DEFAULT_PORT))
        except (TypeError, ValueError):
            raise TopologyError(f"Invalid upstream port in {value}") from None
        endpoint = parse_endpoint(str(value["address"]))
        return Endpoint(address=endpoint.address, port=port)
    if isinstance(value, (list, tuple)):
        return Group(tuple(parse_topology(child) for child in value))
    raise TopologyError(f"Invalid upstream entry: {value!r}")
