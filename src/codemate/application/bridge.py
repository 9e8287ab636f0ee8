"""Confirmation / input bridge between the agent loop and a human.

Two implementations of the ``InteractionBridge`` port:

``CallbackBridge``
    Wraps optional host callbacks.  A missing ``confirm`` callback fails
    closed (the action is treated as rejected); a missing ``ask_user``
    callback answers with an empty string.

``ChannelBridge``
    Suspend/resume over an ``asyncio.Queue``.  Each confirmation or question
    becomes an ``InteractionRequest`` on the channel and the loop awaits its
    future; the host reads requests with ``next_request()`` and answers with
    ``resolve()`` or ``reject()``.  Non-interactive hosts and tests drive it
    without any UI.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str, str], Awaitable[bool]]
AskUserCallback = Callable[[str, Optional[List[str]]], Awaitable[str]]

CONFIRM = "confirm"
ASK = "ask"


class CallbackBridge:
    """Bridge backed by optional async callbacks supplied by the host."""

    def __init__(
        self,
        confirm: Optional[ConfirmCallback] = None,
        ask_user: Optional[AskUserCallback] = None,
    ):
        self._confirm = confirm
        self._ask_user = ask_user

    async def confirm(self, message: str, details: str = "") -> bool:
        if self._confirm is None:
            logger.info("No confirmation callback; rejecting: %s", message)
            return False
        return bool(await self._confirm(message, details))

    async def ask_user(self, question: str, options: Optional[List[str]] = None) -> str:
        if self._ask_user is None:
            logger.info("No ask_user callback; answering with empty string: %s", question)
            return ""
        answer = await self._ask_user(question, options)
        return answer or ""


@dataclass
class InteractionRequest:
    """A pending confirmation or question waiting for the host."""
    id: int
    kind: str  # CONFIRM or ASK
    message: str
    details: str = ""
    options: Optional[List[str]] = None
    future: "asyncio.Future[Any]" = field(default=None, repr=False)  # type: ignore[assignment]


class ChannelBridge:
    """Bridge that parks each request on a queue until the host answers it."""

    def __init__(self, maxsize: int = 0):
        self._queue: "asyncio.Queue[InteractionRequest]" = asyncio.Queue(maxsize=maxsize)
        self._pending: Dict[int, InteractionRequest] = {}
        self._ids = itertools.count(1)

    @property
    def pending(self) -> List[InteractionRequest]:
        return list(self._pending.values())

    async def confirm(self, message: str, details: str = "") -> bool:
        return bool(await self._submit(CONFIRM, message, details=details))

    async def ask_user(self, question: str, options: Optional[List[str]] = None) -> str:
        answer = await self._submit(ASK, question, options=options)
        return answer or ""

    async def next_request(self) -> InteractionRequest:
        """Wait for the next request from the agent loop."""
        return await self._queue.get()

    def resolve(self, request_id: int, value: Any) -> None:
        """Answer a pending request: ``bool`` for confirmations, ``str`` for questions."""
        request = self._pending.pop(request_id, None)
        if request is None:
            raise KeyError(f"No pending interaction request with id {request_id}")
        if not request.future.done():
            request.future.set_result(value)

    def reject(self, request_id: int) -> None:
        """Fail closed: a rejected confirmation is ``False``, a rejected question is ``""``."""
        request = self._pending.get(request_id)
        if request is None:
            raise KeyError(f"No pending interaction request with id {request_id}")
        self.resolve(request_id, False if request.kind == CONFIRM else "")

    async def _submit(
        self,
        kind: str,
        message: str,
        *,
        details: str = "",
        options: Optional[List[str]] = None,
    ) -> Any:
        loop = asyncio.get_running_loop()
        request = InteractionRequest(
            id=next(self._ids),
            kind=kind,
            message=message,
            details=details,
            options=options,
            future=loop.create_future(),
        )
        self._pending[request.id] = request
        await self._queue.put(request)
        logger.debug("Interaction request %d (%s) waiting: %s", request.id, kind, message)
        try:
            return await request.future
        finally:
            self._pending.pop(request.id, None)
