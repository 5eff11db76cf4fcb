from __future__ import annotations

from stakeholder.agents.base import BaseAgent
from stakeholder.llm_client import extract_response_text
from stakeholder.models.pipeline import ResearchResult
from stakeholder.models.schemas import ProfileRequest
from stakeholder.services.prompt_store import render_prompt
from stakeholder.services.retry import RetryCallback


class SynthesisAgent(BaseAgent):
    """Asks for the profile JSON. Failures after retries end the run."""

    name = "synthesis"
    system_prompt_key = "synthesis.system"

    @staticmethod
    def build_user_message(request: ProfileRequest, research: ResearchResult | None) -> str:
        if research is not None and research.available:
            research_block = render_prompt("synthesis.research_block", research=research.text)
        else:
            research_block = render_prompt("synthesis.no_research")
        return render_prompt(
            "synthesis.user",
            subject=request.describe(),
            research_block=research_block,
        )

    async def synthesize(
        self,
        request: ProfileRequest,
        research: ResearchResult | None,
        *,
        on_retry: RetryCallback | None = None,
    ) -> str:
        response = await self._create(
            self.build_user_message(request, research),
            on_retry=on_retry,
        )
        return extract_response_text(response)
