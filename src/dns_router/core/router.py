"""
DNS Router

Ties patterns, handlers and upstream resolution together. The router holds a
hook dispatcher and an upstream resolver and delegates to them; it is handed
to the transport, which calls ``handle`` for every inbound request.
"""

from typing import Any, Mapping, Optional, Union

import dns.rcode
import structlog

from .alias import make_alias
from .dispatcher import Handler, HookDispatcher
from .errors import UpstreamError
from .matcher import compile_pattern, suffix_pattern
from .merger import Source, merge_answer
from .message import Question, Request, Response
from .resolver import DEFAULT_TIMEOUT_MS, UpstreamResolver


class DNSRouter:
    """Routes requests to the first matching handler chain"""

    def __init__(
        self,
        config=None,
        dispatcher: Optional[HookDispatcher] = None,
        resolver: Optional[UpstreamResolver] = None,
        logger=None,
    ):
        self.config = config
        self.logger = logger or structlog.get_logger("dns_router")
        self.dispatcher = dispatcher or HookDispatcher(logger=self.logger)
        self.resolver = resolver or UpstreamResolver(
            getattr(config, "topology", None),
            getattr(config, "timeout", DEFAULT_TIMEOUT_MS),
            logger=self.logger,
        )

    def hook(self, pattern: Any, *handlers: Handler) -> "DNSRouter":
        """Register ``handlers`` behind the matcher compiled from ``pattern``"""
        self.dispatcher.add(compile_pattern(pattern), *handlers)
        return self

    def alias(self, fake: str, real: str) -> "DNSRouter":
        """Answer names under ``fake`` from the upstream data of ``real``"""
        self.logger.info("Registering alias", fake=fake, real=real)
        return self.hook(
            suffix_pattern(fake),
            make_alias(self.resolver, fake, real, logger=self.logger),
        )

    def proxy(self, pattern: Any) -> "DNSRouter":
        """Forward matching requests to the upstream servers"""
        return self.hook(pattern, self.proxy_handler)

    def configure_routes(self) -> "DNSRouter":
        """Register the aliases and proxy routes declared in the configuration"""
        for alias in getattr(self.config, "aliases", None) or []:
            self.alias(alias.fake, alias.real)
        for pattern in getattr(self.config, "proxy", None) or []:
            self.proxy(pattern)
        return self

    async def handle(self, request: Request, response: Response) -> bool:
        return await self.dispatcher.dispatch(request, response)

    async def proxy_handler(self, request: Request, response: Response) -> None:
        try:
            await self.resolver.proxy_request(request, response)
        except UpstreamError as e:
            self.logger.warning(
                "Upstream lookup failed",
                client_ip=request.client_ip,
                questions=[str(q) for q in request.questions],
                error=str(e),
            )
            response.rcode = dns.rcode.SERVFAIL
        response.send()

    async def lookup(self, question: Union[Question, Mapping]) -> Response:
        return await self.resolver.lookup(question)

    async def lookup_into(
        self, question: Union[Question, Mapping], response: Response
    ) -> Response:
        return await self.resolver.lookup_into(question, response)

    async def proxy_request(self, request: Request, response: Response) -> Response:
        return await self.resolver.proxy_request(request, response)

    @staticmethod
    def merge_answer(target: Response, *sources: Source) -> Response:
        return merge_answer(target, *sources)
