"""Named constants for values that appear in multiple places or need explanation."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

# Hard cap on LLM turns per run when no config overrides it.
DEFAULT_MAX_ITERATIONS: int = 20

# Deadline for a single LLM call.  A timed-out call is recorded and the loop
# moves on to the next iteration.
DEFAULT_LLM_TIMEOUT_S: float = 120.0

# ---------------------------------------------------------------------------
# Output size limits
# ---------------------------------------------------------------------------

# Files listed in the workspace summary appended to the first user message.
WORKSPACE_SUMMARY_MAX_FILES: int = 20

# Matches shown by search_code; the rest are reported as a count.
SEARCH_RESULTS_SHOWN: int = 20

# Characters of extracted page text returned by web_fetch.
WEB_FETCH_MAX_CHARS: int = 5_000

# Bytes read from a web_fetch response body before the stream is closed.
WEB_FETCH_MAX_BYTES: int = 1_000_000

# Results requested from the web search backend.
WEB_SEARCH_MAX_RESULTS: int = 5

# Maximum characters kept from a command's stdout/stderr.
MAX_TOOL_OUTPUT_CHARS: int = 50_000

# Characters of old/new text echoed into an edit confirmation.
STEP_PREVIEW_CHARS: int = 50

# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------

# HTTP timeout for web_fetch.
WEB_FETCH_TIMEOUT_S: float = 30.0

# Default wall-clock timeout for a sandboxed shell command.
SHELL_DEFAULT_TIMEOUT_S: int = 30
