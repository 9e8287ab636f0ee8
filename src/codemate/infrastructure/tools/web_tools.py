"""Web tools: fetch a page (httpx + trafilatura) and search (DuckDuckGo).

``web_search`` degrades to an explicit stub result when the backend is
``none`` or the search fails; it never pretends an empty search succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import trafilatura
from duckduckgo_search import DDGS

from codemate.application.permissions import ActionAuthorizer
from codemate.application.tool_registry import ToolOutcome
from codemate.config.schema import WebConfig

logger = logging.getLogger(__name__)

USER_AGENT = "codemate/0.1 (+local)"

SearchFn = Callable[[str, int], List[Dict[str, Any]]]


def ddgs_search(query: str, max_results: int) -> List[Dict[str, Any]]:
    results = []
    with DDGS() as ddgs:
        for r in ddgs.text(query, max_results=max_results):
            results.append({"title": r.get("title"), "href": r.get("href"), "body": r.get("body")})
    return results


def html_to_text(html: str) -> str:
    """Main text via trafilatura; falls back to the page's whole visible text."""
    text = trafilatura.extract(html) or ""
    if text.strip():
        return text.strip()
    return " ".join((trafilatura.html2txt(html) or "").split())


def search_stub(query: str) -> str:
    return (
        f'Web search for "{query}" is not available.\n'
        "Suggestions:\n"
        '- set web.search_backend to "duckduckgo" in the config\n'
        "- use web_fetch on a specific documentation URL"
    )


class WebTools:
    def __init__(
        self,
        config: WebConfig,
        authorizer: ActionAuthorizer,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        search_fn: Optional[SearchFn] = None,
    ):
        self._config = config
        self._auth = authorizer
        self._transport = transport
        self._search_fn = search_fn or ddgs_search

    async def web_fetch(self, args) -> ToolOutcome:
        self._auth.check("webfetch")
        url = args.url.strip()
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {url!r}")
        try:
            body, content_type = await self._download(url)
        except httpx.HTTPError as exc:
            return ToolOutcome.fail(f"Failed to fetch {url}: {exc}")
        if "html" in content_type or body.lstrip().startswith("<"):
            text = await asyncio.to_thread(html_to_text, body)
        else:
            text = body
        limit = self._config.fetch_max_chars
        if len(text) > limit:
            text = text[:limit] + f"\n... [truncated {len(text) - limit} chars]"
        return ToolOutcome.ok(f"{url}\n\n{text}")

    async def _download(self, url: str) -> Tuple[str, str]:
        max_bytes = self._config.fetch_max_bytes
        async with httpx.AsyncClient(
            timeout=float(self._config.fetch_timeout_s),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", url) as r:
                r.raise_for_status()
                chunks: List[bytes] = []
                size = 0
                async for chunk in r.aiter_bytes():
                    chunks.append(chunk)
                    size += len(chunk)
                    if size >= max_bytes:
                        logger.debug("web_fetch %s: body capped at %d bytes", url, max_bytes)
                        break
                raw = b"".join(chunks)[:max_bytes]
                encoding = r.encoding or "utf-8"
                content_type = r.headers.get("content-type", "")
        return raw.decode(encoding, errors="replace"), content_type.lower()

    async def web_search(self, args) -> ToolOutcome:
        self._auth.check("websearch")
        if self._config.search_backend == "none":
            return ToolOutcome.ok(search_stub(args.query))
        try:
            results = await asyncio.to_thread(
                self._search_fn, args.query, self._config.search_max_results
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("web_search failed for %r: %s", args.query, exc)
            return ToolOutcome.ok(search_stub(args.query))
        if not results:
            return ToolOutcome.ok(f'No results for "{args.query}"')
        lines = [
            f"- {r.get('title') or 'untitled'}\n  {r.get('href') or ''}\n  {r.get('body') or ''}".rstrip()
            for r in results
        ]
        return ToolOutcome.ok(f'Search results for "{args.query}":\n\n' + "\n\n".join(lines))
