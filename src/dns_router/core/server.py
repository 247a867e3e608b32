"""
DNS Server Transport

This module implements the listeners that feed the router:
- Async UDP server using asyncio.DatagramProtocol
- Async TCP server using asyncio.StreamReader/StreamWriter
- Decoding requests, attaching a responder and handing them to the router
- Malformed packet rejection without bringing the server down
"""

import asyncio
import struct
import time
from typing import Callable, Dict, Optional, Set, Tuple

import dns.rcode
import structlog

from .message import (
    Request,
    Response,
    format_error_reply,
    request_from_wire,
    udp_payload_size,
)
from .router import DNSRouter

DEFAULT_BIND_ADDRESS = "127.0.0.1"
DEFAULT_PORT = 5353

# Idle TCP connections are dropped after this many seconds
TCP_IDLE_TIMEOUT = 30


class DNSUDPProtocol(asyncio.DatagramProtocol):
    """Async UDP protocol handler for DNS queries"""

    def __init__(self, server: "DNSServer"):
        self.server = server
        self.transport = None

    def connection_made(self, transport):
        """Called when UDP socket is ready"""
        self.transport = transport
        self.server.logger.info(
            "UDP server listening", address=transport.get_extra_info("sockname")
        )

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        """Handle incoming UDP DNS queries"""
        task = asyncio.create_task(
            self.server.handle_wire(
                data, addr, "UDP", lambda wire: self.transport.sendto(wire, addr)
            )
        )

        # Store task reference to prevent garbage collection
        self.server._background_tasks.add(task)
        task.add_done_callback(self.server._background_tasks.discard)

    def error_received(self, exc):
        """Handle UDP errors"""
        self.server.logger.error("UDP transport error", error=str(exc))

    def connection_lost(self, exc):
        self.server.logger.info("UDP server closed")


class DNSServer:
    """UDP and TCP listeners in front of a DNSRouter"""

    def __init__(self, router: DNSRouter, config=None, logger=None):
        self.router = router
        self.config = config
        self.logger = logger or router.logger or structlog.get_logger(__name__)

        self._udp_transport = None
        self._tcp_server = None
        self._background_tasks = set()
        self._tcp_clients: Dict[asyncio.StreamWriter, asyncio.Task] = {}
        self._busy_clients: Set[asyncio.StreamWriter] = set()
        self._closing = False
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self) -> None:
        """Start the enabled listeners"""
        if self._is_running:
            self.logger.warning("Server is already running")
            return

        self._closing = False
        server_config = getattr(self.config, "server", None)
        bind_address = getattr(server_config, "bind_address", DEFAULT_BIND_ADDRESS)
        port = getattr(server_config, "port", DEFAULT_PORT)

        try:
            if getattr(server_config, "enable_udp", True):
                loop = asyncio.get_running_loop()
                self._udp_transport, _ = await loop.create_datagram_endpoint(
                    lambda: DNSUDPProtocol(self), local_addr=(bind_address, port)
                )

            if getattr(server_config, "enable_tcp", True):
                self._tcp_server = await asyncio.start_server(
                    self._handle_tcp_client, host=bind_address, port=port
                )
                for sock in self._tcp_server.sockets:
                    self.logger.info("TCP server listening", address=sock.getsockname())

            self._is_running = True
            self.logger.info("DNS router started", bind_address=bind_address, port=port)

        except Exception as e:
            self.logger.error("Failed to start DNS router", error=str(e))
            await self._close_listeners()
            raise

    async def stop(self) -> None:
        """Stop the listeners and wait for in-flight requests"""
        if not self._is_running:
            return

        self.logger.info("Stopping DNS router...")
        self._closing = True
        await self._close_listeners()

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

        self._is_running = False
        self.logger.info("DNS router stopped")

    async def _close_listeners(self) -> None:
        if self._udp_transport:
            self._udp_transport.close()
            self._udp_transport = None

        if self._tcp_server:
            self._tcp_server.close()

            # Idle connections are closed now; busy ones finish their request first
            for writer in list(self._tcp_clients):
                if writer not in self._busy_clients:
                    writer.close()
            if self._tcp_clients:
                await asyncio.gather(
                    *self._tcp_clients.values(), return_exceptions=True
                )

            await self._tcp_server.wait_closed()
            self._tcp_server = None
            self.logger.info("TCP server closed")

    async def _handle_tcp_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ):
        """Handle TCP DNS client connection"""
        client = writer.get_extra_info("peername")

        def write(wire: bytes) -> None:
            writer.write(struct.pack("!H", len(wire)) + wire)

        self._tcp_clients[writer] = asyncio.current_task()

        try:
            while not self._closing:
                # Read message length (2 bytes, network byte order)
                length_data = await asyncio.wait_for(
                    reader.readexactly(2), timeout=TCP_IDLE_TIMEOUT
                )
                message_length = struct.unpack("!H", length_data)[0]

                dns_data = await reader.readexactly(message_length)

                self._busy_clients.add(writer)
                try:
                    if not await self.handle_wire(dns_data, client, "TCP", write):
                        break
                    await writer.drain()
                finally:
                    self._busy_clients.discard(writer)

        except asyncio.IncompleteReadError:
            # Client disconnected
            pass
        except asyncio.TimeoutError:
            self.logger.debug("Closing idle TCP client", client=client)
        except Exception as e:
            self.logger.error("TCP client error", client=client, error=str(e))
        finally:
            self._tcp_clients.pop(writer, None)
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    async def handle_wire(
        self,
        data: bytes,
        client: Optional[Tuple[str, int]],
        protocol: str,
        write: Callable[[bytes], None],
    ) -> bool:
        """Decode one raw query, route it and write the reply; False if none was sent"""
        start_time = time.time()

        try:
            request = request_from_wire(data, client, protocol)
        except Exception as e:
            self.logger.warning(
                "Malformed DNS packet",
                client=client,
                protocol=protocol,
                error=f"{type(e).__name__}: {e}",
            )
            reply = format_error_reply(data)
            if reply is None:
                return False
            write(reply)
            return True

        query = request.message
        max_size = udp_payload_size(query) if protocol == "UDP" else 65535

        def respond(response: Response) -> None:
            write(response.to_wire(query, max_size))
            self._log_request(request, response, start_time)

        response = Response(responder=respond)

        try:
            await self.router.handle(request, response)
        except Exception as e:
            self.logger.error(
                "Handler failed",
                client_ip=request.client_ip,
                questions=[str(q) for q in request.questions],
                error=f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            if not response.sent:
                response.rcode = dns.rcode.SERVFAIL
                response.send()

        return response.sent

    def _log_request(self, request: Request, response: Response, start_time: float):
        self.logger.info(
            "DNS request processed",
            client_ip=request.client_ip,
            protocol=request.protocol,
            questions=[str(q) for q in request.questions],
            response_code=dns.rcode.to_text(response.rcode),
            answer_count=len(response.answer),
            response_time_ms=round((time.time() - start_time) * 1000, 2),
        )
