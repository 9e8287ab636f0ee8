"""Bare OpenAI-compatible chat client (OpenAI, DeepSeek, vLLM, LM Studio, ...)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from codemate.domain import LLMResponse, Message, ToolDefinition

from ._wire import parse_chat_response, to_openai_messages, to_openai_tool

logger = logging.getLogger(__name__)


class GenericChatClient:
    """Sends ``POST {base_url}/chat/completions`` in the standard OpenAI shape.

    No retries and no payload fallback; HTTP errors surface as
    ``httpx.HTTPStatusError`` and end the run.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        *,
        api_key: str = "",
        timeout_s: float = 180.0,
        temperature: float = 0.2,
        top_p: float = 0.9,
        max_tokens: int = 4096,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout_s
        self._sampling = {"temperature": temperature, "top_p": top_p, "max_tokens": max_tokens}
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> Dict[str, str]:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    def _payload(
        self,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolDefinition]],
        *,
        minimal: bool = False,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._model,
            "messages": to_openai_messages(messages),
            "stream": False,
        }
        if not minimal:
            payload.update(self._sampling)
        if tools:
            payload["tools"] = [to_openai_tool(t) for t in tools]
        return payload

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self._timeout), transport=self._transport)

    async def chat(
        self,
        messages: Sequence[Message],
        *,
        tools: Optional[Sequence[ToolDefinition]] = None,
    ) -> LLMResponse:
        url = f"{self._base_url}/chat/completions"
        logger.debug("POST %s model=%s messages=%d", url, self._model, len(messages))
        async with self._client() as client:
            r = await client.post(url, headers=self._headers(), json=self._payload(messages, tools))
            r.raise_for_status()
            data = r.json()
        return parse_chat_response(data)
