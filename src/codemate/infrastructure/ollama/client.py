"""Ollama chat client.

Ollama speaks the OpenAI ``/chat/completions`` shape at ``/v1`` but some
versions reject unknown top-level parameters with a 400, and models without
tool support fail with a recognisable message.  This client handles both.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from codemate.domain import LLMResponse, Message, ToolDefinition
from codemate.infrastructure.chat._wire import extract_error_message, parse_chat_response
from codemate.infrastructure.chat.generic import GenericChatClient

logger = logging.getLogger(__name__)


class OllamaChatClient(GenericChatClient):
    """OpenAI-compatible client with the Ollama 400 retry.

    On a 400 it retries once with a minimal payload (model, messages, stream,
    tools).  A "does not support tools" error becomes a ``RuntimeError``
    naming the model.
    """

    async def chat(
        self,
        messages: Sequence[Message],
        *,
        tools: Optional[Sequence[ToolDefinition]] = None,
    ) -> LLMResponse:
        url = f"{self._base_url}/chat/completions"
        headers = self._headers()
        async with self._client() as client:
            r = await client.post(url, headers=headers, json=self._payload(messages, tools))
            if r.status_code == 400:
                self._raise_if_no_tool_support(extract_error_message(r))
                logger.info("Ollama returned 400; retrying with minimal payload")
                r = await client.post(
                    url, headers=headers, json=self._payload(messages, tools, minimal=True)
                )
                if r.status_code == 400:
                    self._raise_if_no_tool_support(extract_error_message(r))
            r.raise_for_status()
            data = r.json()
        return parse_chat_response(data)

    def _raise_if_no_tool_support(self, error_message: str) -> None:
        if "does not support tools" in error_message.lower():
            raise RuntimeError(
                f"Model {self._model!r} does not support tool calling. "
                "Use a tool-capable model such as qwen2.5-coder:7b or llama3.1:8b."
            )
