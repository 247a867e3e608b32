"""
DNS Message Model

This module defines the router's view of a DNS exchange:
- Question and ResourceRecord values (names without the trailing dot)
- Request (one inbound query) and Response (records sent back exactly once)
- Thin adapters to and from dnspython wire messages
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional, Tuple

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from .errors import ResponseAlreadySentError

logger = logging.getLogger(__name__)

SECTIONS = ("answer", "authority", "additional")

# Pattern field names mapped onto Question attributes
QUESTION_FIELDS = {"name": "name", "type": "qtype", "class": "qclass"}


def name_to_text(name: dns.name.Name) -> str:
    """Render a dnspython name the way handlers see it: no trailing dot"""
    return name.to_text(omit_final_dot=True)


@dataclass(frozen=True)
class Question:
    """DNS Question Section"""

    name: str
    qtype: int = int(dns.rdatatype.A)
    qclass: int = int(dns.rdataclass.IN)

    def field(self, key: str) -> Any:
        """Value of a pattern field (name, type, class); None if unknown"""
        attr = QUESTION_FIELDS.get(key)
        return getattr(self, attr) if attr else None

    def with_name(self, name: str) -> "Question":
        return replace(self, name=name)

    def __str__(self) -> str:
        return (
            f"{self.name}/{dns.rdatatype.to_text(self.qtype)}"
            f"/{dns.rdataclass.to_text(self.qclass)}"
        )


@dataclass(frozen=True)
class ResourceRecord:
    """DNS Resource Record; rdata is an opaque dnspython Rdata"""

    name: str
    rtype: int
    rclass: int
    ttl: int
    rdata: Any

    def with_name(self, name: str) -> "ResourceRecord":
        return replace(self, name=name)

    def to_rrset(self) -> dns.rrset.RRset:
        rrset = dns.rrset.RRset(dns.name.from_text(self.name), self.rclass, self.rtype)
        rrset.add(self.rdata, self.ttl)
        return rrset

    def get_readable_rdata(self) -> str:
        """Get human-readable representation of rdata"""
        return self.rdata.to_text() if self.rdata is not None else ""


@dataclass
class Request:
    """One inbound DNS query"""

    questions: List[Question]
    message: Optional[dns.message.Message] = None
    client: Optional[Tuple[str, int]] = None
    protocol: str = "UDP"

    @property
    def client_ip(self) -> str:
        return self.client[0] if self.client else "unknown"


@dataclass
class Response:
    """Records collected for one request, sent back exactly once"""

    answer: List[ResourceRecord] = field(default_factory=list)
    authority: List[ResourceRecord] = field(default_factory=list)
    additional: List[ResourceRecord] = field(default_factory=list)
    rcode: int = dns.rcode.NOERROR
    responder: Optional[Callable[["Response"], None]] = field(
        default=None, repr=False, compare=False
    )
    sent: bool = field(default=False, compare=False)

    def send(self) -> None:
        """Hand the response to the transport; only the first call is allowed"""
        if self.sent:
            raise ResponseAlreadySentError("Response has already been sent")
        self.sent = True
        if self.responder is not None:
            self.responder(self)

    def to_message(self, query: dns.message.Message) -> dns.message.Message:
        """Build a reply to ``query``; its question section is echoed as-is"""
        reply = dns.message.make_response(query)
        reply.set_rcode(self.rcode)
        for section in SECTIONS:
            target = getattr(reply, section)
            for record in getattr(self, section):
                target.append(record.to_rrset())
        return reply

    def to_wire(self, query: dns.message.Message, max_size: int = 65535) -> bytes:
        """Encode the reply; if it does not fit, send an empty truncated one"""
        try:
            return self.to_message(query).to_wire(max_size=max_size)
        except dns.exception.TooBig:
            logger.debug(f"Reply exceeds {max_size} bytes, setting TC")
            reply = dns.message.make_response(query)
            reply.set_rcode(self.rcode)
            reply.flags |= dns.flags.TC
            return reply.to_wire()


def request_from_wire(
    data: bytes, client: Optional[Tuple[str, int]] = None, protocol: str = "UDP"
) -> Request:
    """Decode a raw query; dnspython raises on malformed packets"""
    message = dns.message.from_wire(data)
    questions = [
        Question(name_to_text(rrset.name), int(rrset.rdtype), int(rrset.rdclass))
        for rrset in message.question
    ]
    return Request(
        questions=questions, message=message, client=client, protocol=protocol
    )


def make_query(question: Question) -> dns.message.Message:
    """Create an upstream query message (recursion desired)"""
    return dns.message.make_query(
        question.name or ".", question.qtype, question.qclass
    )


def records_from_message(message: dns.message.Message) -> Response:
    """Collect every section of an upstream reply into a partial Response"""
    partial = Response(rcode=int(message.rcode()))
    for section in SECTIONS:
        records = getattr(partial, section)
        for rrset in getattr(message, section):
            name = name_to_text(rrset.name)
            for rdata in rrset:
                records.append(
                    ResourceRecord(
                        name=name,
                        rtype=int(rrset.rdtype),
                        rclass=int(rrset.rdclass),
                        ttl=rrset.ttl,
                        rdata=rdata,
                    )
                )
    return partial


def udp_payload_size(query: dns.message.Message) -> int:
    """Largest UDP reply the client accepts"""
    if query.edns >= 0:
        return max(512, query.payload)
    return 512


def is_truncated(message: dns.message.Message) -> bool:
    return bool(message.flags & dns.flags.TC)


def format_error_reply(data: bytes) -> Optional[bytes]:
    """Minimal FORMERR reply for a packet we could not decode"""
    if len(data) < 2:
        return None
    reply = dns.message.Message(id=int.from_bytes(data[:2], "big"))
    reply.flags |= dns.flags.QR
    reply.set_rcode(dns.rcode.FORMERR)
    return reply.to_wire()
