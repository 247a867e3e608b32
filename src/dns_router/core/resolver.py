"""
Upstream Resolver

This module resolves questions against the configured upstream topology:
- A single server is queried once, bounded by the configured timeout
- Groups of servers are raced; the first successful answer wins
- A group fails only when every server in it has failed
- Multi-question requests are resolved concurrently and merged in question order
"""

import asyncio
import socket
import struct
import time
from typing import Awaitable, Callable, Iterable, List, Mapping, Optional, Union

import dns.message
import dns.rcode
import structlog

from .errors import UpstreamError, UpstreamExhaustedError
from .merger import merge_answer
from .message import (
    Question,
    Request,
    Response,
    is_truncated,
    make_query,
    records_from_message,
)
from .records import make_question
from .upstream import Endpoint, Group, Node, parse_topology

DEFAULT_TIMEOUT_MS = 10000

# (question, endpoint, timeout in seconds) -> every message received
Exchange = Callable[[Question, Endpoint, float], Awaitable[List[dns.message.Message]]]


class _ReplyProtocol(asyncio.DatagramProtocol):
    """Resolves a future with the first datagram answering our query"""

    def __init__(self, query: dns.message.Message, future: asyncio.Future):
        self.query = query
        self.future = future

    def datagram_received(self, data, addr):
        if self.future.done():
            return
        try:
            reply = dns.message.from_wire(data)
        except Exception as e:
            self.future.set_exception(e)
            return
        if self.query.is_response(reply):
            self.future.set_result(reply)

    def error_received(self, exc):
        if not self.future.done():
            self.future.set_exception(exc)

    def connection_lost(self, exc):
        if exc is not None and not self.future.done():
            self.future.set_exception(exc)


async def tcp_exchange(
    query: dns.message.Message, endpoint: Endpoint
) -> dns.message.Message:
    """Send ``query`` over TCP using 2-byte length framing"""
    reader, writer = await asyncio.open_connection(endpoint.address, endpoint.port)
    try:
        data = query.to_wire()
        writer.write(struct.pack("!H", len(data)) + data)
        await writer.drain()

        length = struct.unpack("!H", await reader.readexactly(2))[0]
        reply = dns.message.from_wire(await reader.readexactly(length))
    finally:
        writer.close()
        await writer.wait_closed()

    if not query.is_response(reply):
        raise ValueError(f"Reply from {endpoint} does not match the query")
    return reply


async def udp_exchange(
    question: Question, endpoint: Endpoint, timeout: float
) -> List[dns.message.Message]:
    """Query one server over UDP, switching to TCP once if the reply is truncated"""
    query = make_query(question)
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    family = socket.AF_INET6 if ":" in endpoint.address else socket.AF_INET
    transport, _ = await loop.create_datagram_endpoint(
        lambda: _ReplyProtocol(query, future),
        remote_addr=(endpoint.address, endpoint.port),
        family=family,
    )
    try:
        transport.sendto(query.to_wire())
        reply = await asyncio.wait_for(future, timeout=timeout)
    finally:
        transport.close()

    if is_truncated(reply):
        reply = await tcp_exchange(query, endpoint)
    return [reply]


def _discard(tasks: Iterable[asyncio.Future]) -> None:
    """Cancel unfinished tasks and consume errors of finished ones"""
    for task in tasks:
        if not task.done():
            task.cancel()
        elif not task.cancelled():
            task.exception()


class UpstreamResolver:
    """Resolves questions against an upstream topology"""

    def __init__(
        self,
        topology: Union[Node, list, str, None] = None,
        timeout: int = DEFAULT_TIMEOUT_MS,
        exchange: Optional[Exchange] = None,
        logger=None,
    ):
        self.topology = parse_topology([] if topology is None else topology)
        self.timeout = timeout
        self.exchange = exchange or udp_exchange
        self.logger = logger or structlog.get_logger(__name__)

    async def resolve(
        self,
        question: Question,
        node: Optional[Node] = None,
        timeout: Optional[int] = None,
    ) -> Response:
        """Resolve ``question`` against ``node`` (default: the whole topology).

        Raises:
            UpstreamError: If a single server fails or times out
            UpstreamExhaustedError: If every server of a group fails
        """
        node = self.topology if node is None else node
        timeout = self.timeout if timeout is None else timeout

        if isinstance(node, Group):
            return await self._race(question, node, timeout)
        return await self._query_endpoint(question, node, timeout)

    async def _query_endpoint(
        self, question: Question, endpoint: Endpoint, timeout: int
    ) -> Response:
        seconds = timeout / 1000
        start_time = time.time()

        try:
            messages = await asyncio.wait_for(
                self.exchange(question, endpoint, seconds), timeout=seconds
            )
        except asyncio.TimeoutError:
            self.logger.debug(
                "Upstream timed out",
                upstream=str(endpoint),
                question=str(question),
                timeout_ms=timeout,
            )
            raise UpstreamError(str(endpoint), f"timed out after {timeout}ms") from None
        except UpstreamError:
            raise
        except Exception as e:
            self.logger.debug(
                "Upstream failed",
                upstream=str(endpoint),
                question=str(question),
                error=f"{type(e).__name__}: {e}",
            )
            raise UpstreamError(str(endpoint), f"{type(e).__name__}: {e}") from e

        partial = Response()
        for message in messages:
            reply = records_from_message(message)
            merge_answer(partial, reply)
            partial.rcode = reply.rcode

        self.logger.debug(
            "Upstream answered",
            upstream=str(endpoint),
            question=str(question),
            answer_count=len(partial.answer),
            response_time_ms=round((time.time() - start_time) * 1000, 2),
        )
        return partial

    async def _race(self, question: Question, group: Group, timeout: int) -> Response:
        tasks = [
            asyncio.ensure_future(self.resolve(question, child, timeout))
            for child in group.children
        ]
        pending = set(tasks)

        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in tasks:
                    if task in done and task.exception() is None:
                        return task.result()
        finally:
            _discard(tasks)

        raise UpstreamExhaustedError(str(group), [t.exception() for t in tasks])

    async def lookup(self, question: Union[Question, Mapping]) -> Response:
        """Resolve a question (or question-like mapping) with the configured upstreams"""
        if not isinstance(question, Question):
            question = make_question(question)
        return await self.resolve(question, self.topology, self.timeout)

    async def lookup_into(
        self, question: Union[Question, Mapping], response: Response
    ) -> Response:
        """Resolve a question and append its records to ``response``"""
        return merge_answer(response, await self.lookup(question))

    async def proxy_request(self, request: Request, response: Response) -> Response:
        """Resolve every question of ``request`` and merge them in question order"""
        tasks = [asyncio.ensure_future(self.lookup(q)) for q in request.questions]
        try:
            partials = await asyncio.gather(*tasks)
        finally:
            _discard(tasks)

        merge_answer(response, partials)

        if response.rcode == dns.rcode.NOERROR:
            for partial in partials:
                if partial.rcode != dns.rcode.NOERROR:
                    response.rcode = partial.rcode
                    break
        return response
