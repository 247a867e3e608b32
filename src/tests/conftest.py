"""Shared helpers for the router tests: reply builders and a scripted upstream."""

import asyncio
from typing import Awaitable, Callable, Dict, List

import dns.message
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from dns_router.core.message import Question, Request, ResourceRecord
from dns_router.core.upstream import Endpoint


def make_reply(question: Question, *addresses: str, rcode: int = 0) -> dns.message.Message:
    """Upstream reply answering ``question`` with A records"""
    query = dns.message.make_query(question.name, question.qtype, question.qclass)
    reply = dns.message.make_response(query)
    for address in addresses:
        reply.answer.append(
            dns.rrset.from_text(question.name + ".", 300, "IN", "A", address)
        )
    reply.set_rcode(rcode)
    return reply


def a_record(name: str, address: str, ttl: int = 300) -> ResourceRecord:
    return ResourceRecord(
        name=name,
        rtype=int(dns.rdatatype.A),
        rclass=int(dns.rdataclass.IN),
        ttl=ttl,
        rdata=dns.rdata.from_text("IN", "A", address),
    )


def make_request(*names: str, qtype: int = 1, qclass: int = 1) -> Request:
    return Request(questions=[Question(name, qtype, qclass) for name in names])


class ScriptedUpstreams:
    """Exchange stand-in: each server address maps to an async behaviour"""

    def __init__(self, behaviours: Dict[str, Callable[[Question], Awaitable[List]]]):
        self.behaviours = behaviours
        self.calls: List[tuple] = []
        self.cancelled: List[str] = []

    async def __call__(self, question: Question, endpoint: Endpoint, timeout: float):
        self.calls.append((endpoint.address, question.name))
        try:
            return await self.behaviours[endpoint.address](question)
        except asyncio.CancelledError:
            self.cancelled.append(endpoint.address)
            raise


def answers(*addresses: str, delay: float = 0.0):
    """Behaviour: reply with A records after ``delay`` seconds"""

    async def behaviour(question: Question):
        await asyncio.sleep(delay)
        return [make_reply(question, *addresses)]

    return behaviour


def fails(error: Exception = None, delay: float = 0.0):
    """Behaviour: raise a transport error after ``delay`` seconds"""

    async def behaviour(question: Question):
        await asyncio.sleep(delay)
        raise error or ConnectionRefusedError("connection refused")

    return behaviour
