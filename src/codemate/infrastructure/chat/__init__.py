"""LLM client factory: build the right ChatClient for a ModelConfig."""

from __future__ import annotations

from codemate.application.ports import ChatClient
from codemate.config.schema import ModelConfig


def build_chat_client(model_config: ModelConfig) -> ChatClient:
    """Return the ``ChatClient`` implementation for *model_config*.

    ``"ollama"`` (default)
        :class:`~codemate.infrastructure.ollama.client.OllamaChatClient`,
        with the 400 retry and "does not support tools" detection.

    ``"generic"``
        :class:`~codemate.infrastructure.chat.generic.GenericChatClient`,
        a bare OpenAI-compatible client for cloud providers and vLLM.

    Raises:
        ValueError: For unknown backend values.
    """
    kwargs = dict(
        api_key=model_config.api_key,
        timeout_s=model_config.http_timeout_s,
        temperature=model_config.temperature,
        top_p=model_config.top_p,
        max_tokens=model_config.max_tokens,
    )
    backend = model_config.backend
    if backend == "ollama":
        from codemate.infrastructure.ollama.client import OllamaChatClient
        return OllamaChatClient(model_config.base_url, model_config.model, **kwargs)
    if backend == "generic":
        from codemate.infrastructure.chat.generic import GenericChatClient
        return GenericChatClient(model_config.base_url, model_config.model, **kwargs)
    raise ValueError(
        f"Unknown LLM backend {backend!r}. "
        "Supported backends: 'ollama' (default), 'generic' (OpenAI-compatible)."
    )
