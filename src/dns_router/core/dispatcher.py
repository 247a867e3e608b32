"""
Hook dispatcher: ordered (matcher, handler chain) pairs. The first chain whose
matcher accepts the request runs; a chain that does not send the response lets
the next matching chain have a go.
"""

import inspect
from typing import Any, Awaitable, Callable, List, Tuple, Union

import structlog

from .matcher import Matcher
from .message import Request, Response

Handler = Callable[[Request, Response], Union[Awaitable[Any], Any]]


class HookDispatcher:
    """Runs handler chains in registration order"""

    def __init__(self, logger=None):
        self.logger = logger or structlog.get_logger(__name__)
        self._hooks: List[Tuple[Matcher, Tuple[Handler, ...]]] = []

    def __len__(self) -> int:
        return len(self._hooks)

    def add(self, matcher: Matcher, *handlers: Handler) -> "HookDispatcher":
        if not handlers:
            raise ValueError("A hook needs at least one handler")
        self._hooks.append((matcher, handlers))
        return self

    async def dispatch(self, request: Request, response: Response) -> bool:
        """Run matching chains until one sends; returns whether a reply was sent"""
        for matcher, handlers in self._hooks:
            if not matcher(request):
                continue

            for handler in handlers:
                result = handler(request, response)
                if inspect.isawaitable(result):
                    await result
                if response.sent:
                    return True

        self.logger.warning(
            "No handler answered request",
            client_ip=request.client_ip,
            questions=[str(q) for q in request.questions],
        )
        return False
