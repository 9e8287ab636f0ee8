"""OpenAI chat-completions wire format: request serialisation and response parsing."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

import httpx

from codemate.domain import LLMResponse, Message, Role, ToolCall, ToolDefinition


def to_openai_tool(definition: ToolDefinition) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": definition.name,
            "description": definition.description,
            "parameters": definition.json_schema(),
        },
    }


def to_openai_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """Serialise the conversation; tool-call arguments go out as JSON strings."""
    out: List[Dict[str, Any]] = []
    for m in messages:
        item: Dict[str, Any] = {"role": m.role.value, "content": m.content}
        if m.role is Role.ASSISTANT and m.tool_calls:
            item["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments, ensure_ascii=False),
                    },
                }
                for tc in m.tool_calls
            ]
        if m.role is Role.TOOL:
            item["tool_call_id"] = m.tool_call_id
            if m.name:
                item["name"] = m.name
        out.append(item)
    return out


def parse_chat_response(data: Dict[str, Any]) -> LLMResponse:
    """Parse an OpenAI-format chat completions response into an ``LLMResponse``."""
    choice = data["choices"][0]
    message = choice["message"]
    content: Optional[str] = message.get("content")

    tool_calls: List[ToolCall] = []
    for i, tc in enumerate(message.get("tool_calls") or []):
        fn = tc.get("function") or {}
        raw_args = fn.get("arguments") or "{}"
        if isinstance(raw_args, dict):
            # Some backends (older Ollama) send arguments as an object.
            arguments: Dict[str, Any] = raw_args
        else:
            try:
                arguments = json.loads(raw_args)
            except json.JSONDecodeError:
                arguments = {"_raw": raw_args}
            if not isinstance(arguments, dict):
                arguments = {"_raw": raw_args}
        tool_calls.append(
            ToolCall(id=tc.get("id") or f"call_{i}", name=fn.get("name") or "", arguments=arguments)
        )

    finish_reason = choice.get("finish_reason") or ("tool_calls" if tool_calls else "stop")
    return LLMResponse(content=content, tool_calls=tool_calls, finish_reason=finish_reason)


def extract_error_message(response: httpx.Response) -> str:
    """Extract a human-readable error string from a (likely 4xx) HTTP response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or ""
    if isinstance(body, dict):
        err = body.get("error") or {}
        if isinstance(err, dict):
            return err.get("message") or ""
        if isinstance(err, str):
            return err
    return response.text or ""
