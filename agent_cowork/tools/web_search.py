"""Web search and page extraction tools powered by the Tavily API."""

import os
import re
from typing import Any

import httpx

from agent_cowork.config import WebSearchToolConfig
from agent_cowork.logging import get_logger
from agent_cowork.tools.registry import Tool, ToolContext, ToolResult

log = get_logger(__name__)

MAX_SEARCH_RESULTS = 10
MAX_EXTRACT_URLS = 20


def resolve_tavily_api_key(search_cfg: WebSearchToolConfig) -> str:
    """Configured Tavily key, falling back to ``TAVILY_API_KEY``."""
    return (
        str(search_cfg.api_key or "").strip()
        or str(os.environ.get("TAVILY_API_KEY", "")).strip()
    )


def _clean_text(value: str, max_chars: int = 500) -> str:
    """Normalize whitespace and bound output size."""
    cleaned = re.sub(r"\s+", " ", (value or "")).strip()
    if len(cleaned) <= max_chars:
        return cleaned
    return cleaned[:max_chars].rstrip() + "..."


def _http_error_detail(error: httpx.HTTPStatusError) -> str:
    body = ""
    try:
        body = (error.response.text or "").strip()
    except Exception:
        body = ""
    detail = f"HTTP {error.response.status_code}"
    if body:
        detail = f"{detail}: {_clean_text(body, max_chars=300)}"
    return detail


class _TavilyTool(Tool):
    """Shared HTTP plumbing for Tavily endpoints."""

    unavailable_label = "This tool"

    def __init__(self):
        self.client = httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": "agent-cowork/0.1.0"},
        )

    def _missing_key_result(self) -> ToolResult:
        return ToolResult(
            success=False,
            error=(
                f"{self.unavailable_label} is not available. Configure a Tavily API key "
                "(tools.web_search.api_key or TAVILY_API_KEY)."
            ),
        )

    async def _post(self, search_cfg: WebSearchToolConfig, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        api_key = resolve_tavily_api_key(search_cfg)
        url = f"{search_cfg.base_url.rstrip('/')}/{endpoint}"
        response = await self.client.post(
            url,
            json={"api_key": api_key, **payload},
            headers={"Authorization": f"Bearer {api_key}", "Accept": "application/json"},
            timeout=float(search_cfg.timeout),
        )
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, dict) else {}

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()


class WebSearchTool(_TavilyTool):
    """Search the web."""

    name = "WebSearch"
    unavailable_label = "Web search"
    description = (
        "Search the web for real-time information. Use only when the answer is not "
        "in the local files (external documentation, current events, public APIs)."
    )
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "Why this search is needed and what to expect",
            },
            "query": {
                "type": "string",
                "description": "Search query in the same language as the user request",
            },
            "max_results": {
                "type": "number",
                "description": "Maximum results (1-10, default 5)",
                "minimum": 1,
                "maximum": MAX_SEARCH_RESULTS,
            },
        },
        "required": ["query"],
    }

    @staticmethod
    def format_results(query: str, results: list[dict[str, Any]]) -> str:
        """Render results with numbered sources for citation."""
        lines = [f"[WEB SEARCH: {query}]", f"[RESULTS: {len(results)}]", ""]
        if not results:
            lines.append("No results found.")
            return "\n".join(lines).strip()

        for idx, item in enumerate(results, start=1):
            title = _clean_text(str(item.get("title", "") or "Untitled"), max_chars=180)
            link = str(item.get("url", "") or "").strip()
            snippet = _clean_text(str(item.get("content", "") or ""), max_chars=200)
            lines.append(f"[{idx}] {title}")
            lines.append(f"    URL: {link or '-'}")
            lines.append(f"    {snippet or '-'}")
            lines.append("")
        lines.append("Cite sources as [1], [2], ... and include their URLs in the answer.")
        return "\n".join(lines).strip()

    async def execute(
        self,
        context: ToolContext,
        query: str,
        max_results: int | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        """Execute a Tavily web search."""
        q = (query or "").strip()
        if not q:
            return ToolResult(success=False, error="Missing required query")

        search_cfg = context.config.tools.web_search
        if not resolve_tavily_api_key(search_cfg):
            return self._missing_key_result()

        count = search_cfg.max_results if max_results is None else int(max_results)
        count = min(max(count, 1), MAX_SEARCH_RESULTS)

        try:
            log.info("Web search", query=q, max_results=count)
            payload = await self._post(search_cfg, "search", {
                "query": q,
                "max_results": count,
                "include_raw_content": False,
                "include_answer": False,
            })
        except httpx.HTTPStatusError as e:
            detail = _http_error_detail(e)
            log.error("Tavily search failed", query=q, error=detail)
            return ToolResult(success=False, error=f"Web search failed: {detail}")
        except httpx.HTTPError as e:
            log.error("Tavily search failed", query=q, error=str(e))
            return ToolResult(success=False, error=f"Web search failed: {e}")

        results = [item for item in payload.get("results") or [] if isinstance(item, dict)]
        return ToolResult(success=True, output=self.format_results(q, results))


class ExtractPageContentTool(_TavilyTool):
    """Extract readable content from web pages."""

    name = "ExtractPageContent"
    unavailable_label = "Page extraction"
    description = (
        "Extract the readable text of one or more web pages, usually URLs found "
        "with WebSearch."
    )
    parameters = {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "Why these pages are needed",
            },
            "urls": {
                "type": "array",
                "items": {"type": "string"},
                "description": "URLs to extract (max 20)",
            },
        },
        "required": ["urls"],
    }

    @staticmethod
    def _normalize_urls(urls: list[str] | str) -> list[str]:
        raw = [urls] if isinstance(urls, str) else list(urls or [])
        cleaned: list[str] = []
        for item in raw:
            value = str(item or "").strip()
            if value and value not in cleaned:
                cleaned.append(value)
        return cleaned[:MAX_EXTRACT_URLS]

    async def execute(
        self,
        context: ToolContext,
        urls: list[str] | str,
        **kwargs: Any,
    ) -> ToolResult:
        """Extract page content through Tavily."""
        search_cfg = context.config.tools.web_search
        if not resolve_tavily_api_key(search_cfg):
            return self._missing_key_result()

        targets = self._normalize_urls(urls)
        if not targets:
            return ToolResult(success=False, error="No URLs provided")

        try:
            log.info("Extracting pages", urls=targets)
            payload = await self._post(search_cfg, "extract", {"urls": targets})
        except httpx.HTTPStatusError as e:
            detail = _http_error_detail(e)
            log.error("Tavily extract failed", urls=targets, error=detail)
            return ToolResult(success=False, error=f"Page extraction failed: {detail}")
        except httpx.HTTPError as e:
            log.error("Tavily extract failed", urls=targets, error=str(e))
            return ToolResult(success=False, error=f"Page extraction failed: {e}")

        max_chars = max(1, search_cfg.extract_max_chars)
        sections: list[str] = []
        for item in payload.get("results") or []:
            if not isinstance(item, dict):
                continue
            url = str(item.get("url", "") or "").strip()
            content = str(item.get("raw_content", "") or "").strip()
            if len(content) > max_chars:
                content = content[:max_chars] + "\n... [truncated]"
            sections.append(f"[URL: {url}]\n{content or '[no content]'}")

        failed = [item for item in payload.get("failed_results") or [] if isinstance(item, dict)]
        if failed:
            lines = ["[FAILED]"]
            for item in failed:
                lines.append(f"- {item.get('url', '')}: {item.get('error', 'unknown error')}")
            sections.append("\n".join(lines))

        if not sections:
            return ToolResult(success=False, error="No content extracted")
        return ToolResult(success=True, output="\n\n".join(sections))
