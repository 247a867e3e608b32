"""
DNS Router Errors

Configuration errors are raised eagerly while patterns and upstreams are
compiled; resolution errors are raised per query and handled by the
built-in handlers.
"""

from typing import Any, List, Optional


class DNSRouterError(Exception):
    """Base class for all router errors"""


class UnknownSymbolError(DNSRouterError, ValueError):
    """A symbolic record type/class that has no numeric code"""

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Unknown {field} {value!r}")


class IllegalMultivalueError(DNSRouterError, ValueError):
    """A field that must carry one value was given several"""

    def __init__(self, field: str, values: Optional[List[Any]] = None):
        self.field = field
        self.values = values or []
        super().__init__(f"Illegal multivalue for {field}: {self.values!r}")


class PatternError(DNSRouterError, TypeError):
    """A pattern that cannot be compiled into a matcher"""


class TopologyError(DNSRouterError, ValueError):
    """An upstream entry that cannot be parsed"""


class UpstreamError(DNSRouterError):
    """A single upstream server failed to answer"""

    def __init__(self, server: str, message: str):
        self.server = server
        super().__init__(f"{server}: {message}")


class UpstreamExhaustedError(UpstreamError):
    """Every upstream in a racing group failed"""

    def __init__(self, server: str, errors: List[BaseException]):
        self.errors = list(errors)
        if self.errors:
            detail = "; ".join(str(e) for e in self.errors)
            message = f"all {len(self.errors)} upstreams failed ({detail})"
        else:
            message = "no upstream servers configured"
        super().__init__(server, message)


class ResponseAlreadySentError(DNSRouterError, RuntimeError):
    """Response.send() was called more than once"""
