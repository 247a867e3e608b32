"""
Zone aliasing: serve one zone (the "fake" one) from another zone's upstream
data (the "real" one), rewriting names on the way in and out.
"""

import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import dns.rcode
import structlog

from .errors import UpstreamError
from .matcher import suffix_pattern
from .message import Request, Response
from .resolver import UpstreamResolver

Handler = Callable[[Request, Response], Awaitable[None]]


@dataclass(frozen=True)
class Alias:
    """A fake/real suffix pair; substitution is literal, never regex-capturing"""

    fake: str
    real: str
    fake_re: re.Pattern = field(init=False, repr=False, compare=False)
    real_re: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.fake or not self.real:
            raise ValueError("Alias needs both a fake and a real suffix")
        object.__setattr__(self, "fake_re", suffix_pattern(self.fake))
        object.__setattr__(self, "real_re", suffix_pattern(self.real))

    def to_real(self, name: str) -> str:
        return self.fake_re.sub(lambda _: self.real, name, count=1)

    def to_fake(self, name: str) -> str:
        return self.real_re.sub(lambda _: self.fake, name, count=1)


def make_alias(resolver: UpstreamResolver, fake: str, real: str, logger=None) -> Handler:
    """Build a handler answering ``fake`` names from the ``real`` zone"""
    alias = Alias(fake, real)
    logger = logger or structlog.get_logger(__name__)

    async def alias_handler(request: Request, response: Response) -> None:
        # Replace, don't mutate: the wire question must still carry the fake name
        request.questions = [q.with_name(alias.to_real(q.name)) for q in request.questions]

        try:
            await resolver.proxy_request(request, response)
        except UpstreamError as e:
            logger.warning(
                "Alias lookup failed",
                fake=alias.fake,
                real=alias.real,
                questions=[str(q) for q in request.questions],
                error=str(e),
            )
            response.rcode = dns.rcode.SERVFAIL

        response.answer = [a.with_name(alias.to_fake(a.name)) for a in response.answer]
        response.send()

    alias_handler.alias = alias
    return alias_handler
