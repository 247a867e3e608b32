"""
DNS Router Core Module

This module exports the request-routing components: matchers, the upstream
resolver, answer merging, zone aliasing and the UDP/TCP transport.
"""

from .alias import Alias, make_alias
from .dispatcher import HookDispatcher
from .errors import (
    DNSRouterError,
    IllegalMultivalueError,
    PatternError,
    ResponseAlreadySentError,
    TopologyError,
    UnknownSymbolError,
    UpstreamError,
    UpstreamExhaustedError,
)
from .matcher import compile_pattern, suffix_pattern
from .merger import merge_answer
from .message import Question, Request, ResourceRecord, Response, request_from_wire
from .records import finalize_record, make_question, normalize_record
from .resolver import UpstreamResolver, udp_exchange
from .router import DNSRouter
from .server import DNSServer
from .upstream import Endpoint, Group, parse_topology

__all__ = [
    # Router and transport
    "DNSRouter",
    "DNSServer",
    "HookDispatcher",
    # Resolution
    "UpstreamResolver",
    "udp_exchange",
    "merge_answer",
    "Endpoint",
    "Group",
    "parse_topology",
    # Aliasing
    "Alias",
    "make_alias",
    # Patterns and records
    "compile_pattern",
    "suffix_pattern",
    "normalize_record",
    "finalize_record",
    "make_question",
    # Message model
    "Question",
    "ResourceRecord",
    "Request",
    "Response",
    "request_from_wire",
    # Errors
    "DNSRouterError",
    "UnknownSymbolError",
    "IllegalMultivalueError",
    "PatternError",
    "TopologyError",
    "UpstreamError",
    "UpstreamExhaustedError",
    "ResponseAlreadySentError",
]
