from __future__ import annotations

import logging
from typing import Any

from stakeholder.agents.base import BaseAgent
from stakeholder.llm_client import extract_response_text
from stakeholder.models.pipeline import ResearchResult
from stakeholder.models.schemas import ProfileRequest
from stakeholder.services import logger as log_service
from stakeholder.services.extractor import MAX_FALLBACK_SOURCES, extract_urls
from stakeholder.services.prompt_store import render_prompt
from stakeholder.services.retry import RetryCallback, RetryPolicy

WEB_SEARCH_TOOL_TYPE = "web_search_20250305"


def truncate_research(text: str, max_chars: int) -> str:
    """Cap research text, cutting at a line break or space rather than mid-word."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    boundary = cut.rfind("\n")
    if boundary < max_chars // 2:
        boundary = cut.rfind(" ")
    if boundary > 0:
        cut = cut[:boundary]
    return cut.rstrip()


class ResearchAgent(BaseAgent):
    """Gathers public information about the subject.

    Research only enriches the profile, so every failure (including retry
    exhaustion) degrades to an empty ResearchResult with a note.
    """

    name = "research"
    system_prompt_key = "research.system"

    def __init__(
        self,
        client: Any,
        *,
        model: str,
        max_tokens: int = 4000,
        retry_policy: RetryPolicy | None = None,
        web_search_enabled: bool = True,
        web_search_max_uses: int = 5,
        max_chars: int = 12000,
        max_sources: int = MAX_FALLBACK_SOURCES,
    ):
        super().__init__(client, model=model, max_tokens=max_tokens, retry_policy=retry_policy)
        self.web_search_enabled = web_search_enabled
        self.web_search_max_uses = max(int(web_search_max_uses), 1)
        self.max_chars = max(int(max_chars), 0)
        self.max_sources = max_sources

    def _tools(self) -> list[dict[str, Any]]:
        if not self.web_search_enabled:
            return []
        return [
            {
                "type": WEB_SEARCH_TOOL_TYPE,
                "name": "web_search",
                "max_uses": self.web_search_max_uses,
            }
        ]

    async def research(
        self,
        request: ProfileRequest,
        *,
        on_retry: RetryCallback | None = None,
    ) -> ResearchResult:
        extra: dict[str, Any] = {}
        tools = self._tools()
        if tools:
            extra["tools"] = tools

        try:
            response = await self._create(
                render_prompt("research.user", subject=request.describe()),
                on_retry=on_retry,
                **extra,
            )
        except Exception as e:
            log_service.log_event(
                event_type="research_degraded",
                message="Research stage failed, continuing without research",
                level=logging.WARNING,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ResearchResult(note=f"Research unavailable: {e}")

        text = extract_response_text(response)
        if not text:
            return ResearchResult(note="Research returned no text.")
        return ResearchResult(
            text=truncate_research(text, self.max_chars),
            extracted_sources=extract_urls(text, limit=self.max_sources),
        )
