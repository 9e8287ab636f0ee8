"""Configuration schema. Defaults point at a local Ollama; any OpenAI-compatible backend works via base_url + model."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codemate.domain import PermissionMode

from .constants import (
    DEFAULT_LLM_TIMEOUT_S,
    DEFAULT_MAX_ITERATIONS,
    SHELL_DEFAULT_TIMEOUT_S,
    WEB_FETCH_MAX_BYTES,
    WEB_FETCH_MAX_CHARS,
    WEB_FETCH_TIMEOUT_S,
    WEB_SEARCH_MAX_RESULTS,
)


class ModelConfig(BaseModel):
    """LLM endpoint and model name (OpenAI chat-completions API)."""
    base_url: str = Field(..., description="e.g. http://localhost:11434/v1 or https://api.deepseek.com/v1")
    model: str = Field(..., description="Model name as the server knows it.")
    api_key: str = Field("", description="Bearer token; empty for local backends (no header sent).")
    backend: str = Field(
        "ollama",
        description="LLM client backend. 'ollama' (default): adds the Ollama 400 retry. 'generic': bare OpenAI-compatible.",
    )
    temperature: float = 0.2
    top_p: float = 0.9
    max_tokens: int = 4096
    http_timeout_s: float = Field(
        default=180.0,
        description="HTTP read timeout for one chat request. Keep above executor.timeout_s.",
    )


class ExecutorConfig(BaseModel):
    """Agent-loop settings, fixed for the duration of one run."""
    model_config = ConfigDict(frozen=True)

    max_iterations: int = Field(DEFAULT_MAX_ITERATIONS, ge=1)
    timeout_s: Optional[float] = Field(
        DEFAULT_LLM_TIMEOUT_S,
        description="Deadline for each LLM call; None disables it.",
    )
    tool_timeout_s: Optional[float] = Field(
        None,
        description="Optional deadline for each tool handler.",
    )
    abort_on_timeout: bool = Field(
        False,
        description="End the run on an LLM timeout instead of moving to the next iteration.",
    )
    auto_confirm_destructive: bool = Field(
        False,
        description="Treat 'ask' permissions as approved without calling the confirmation bridge.",
    )
    enable_reflection: bool = Field(
        True,
        description="Append a short analyse-and-retry hint to failed tool results.",
    )


class WebConfig(BaseModel):
    search_backend: str = Field(
        "duckduckgo",
        description="'duckduckgo' or 'none'. 'none' makes web_search return a stub result.",
    )
    search_max_results: int = WEB_SEARCH_MAX_RESULTS
    fetch_timeout_s: float = WEB_FETCH_TIMEOUT_S
    fetch_max_chars: int = WEB_FETCH_MAX_CHARS
    fetch_max_bytes: int = WEB_FETCH_MAX_BYTES

    @field_validator("search_backend")
    @classmethod
    def _known_backend(cls, v: str) -> str:
        if v not in ("duckduckgo", "none"):
            raise ValueError(f"Unknown search_backend {v!r}; expected 'duckduckgo' or 'none'.")
        return v


class ShellConfig(BaseModel):
    """execute_command settings. Disabled means every command is simulated."""
    enabled: bool = False
    allowed_commands: List[str] = Field(
        default_factory=lambda: [
            "python", "python3", "pytest", "git", "ls", "cat", "rg", "npm", "node", "make",
        ]
    )
    timeout_s: int = SHELL_DEFAULT_TIMEOUT_S


class WorkspaceConfig(BaseModel):
    root: Optional[str] = Field(
        None,
        description="Directory the agent works in. None uses an in-memory workspace.",
    )
    default_name: str = "new-project"


class TelemetryConfig(BaseModel):
    """Optional OpenTelemetry tracing configuration."""
    enabled: bool = False
    service_name: str = "codemate"
    exporter: str = Field(
        "none",
        description="Span exporter: 'none' (default), 'console' (stdout), or 'otlp' (gRPC endpoint).",
    )
    otlp_endpoint: str = Field(
        "",
        description="OTLP gRPC endpoint, e.g. 'http://localhost:4317'. Required when exporter='otlp'.",
    )


class CodemateConfig(BaseModel):
    """Root config."""
    model: ModelConfig
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    permissions: Dict[str, PermissionMode] = Field(
        default_factory=dict,
        description="Permission overrides by rule id (read, write, edit, delete, bash, webfetch, websearch).",
    )
    permissions_path: Optional[str] = Field(
        None,
        description="JSON file where permission changes are persisted. None keeps them in memory.",
    )
    web: WebConfig = Field(default_factory=WebConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    telemetry: Optional[TelemetryConfig] = None


DEFAULT_CONFIG = CodemateConfig(
    model=ModelConfig(
        base_url="http://localhost:11434/v1",
        model="qwen2.5-coder:7b",
    ),
)
