from __future__ import annotations

import asyncio
import logging
from typing import Any

from stakeholder.agents.research_agent import ResearchAgent
from stakeholder.agents.synthesis_agent import SynthesisAgent
from stakeholder.config import Settings, settings
from stakeholder.errors import ExtractionError, InvalidRequestError, PipelineTimeoutError, ProfilerError
from stakeholder.llm_client import get_client
from stakeholder.models.pipeline import PipelineRun, ProgressEvent, ResearchResult, RunState
from stakeholder.models.profile import ProfileRecord
from stakeholder.models.schemas import ProfileRequest
from stakeholder.services import logger as log_service
from stakeholder.services.extractor import MAX_FALLBACK_SOURCES, extract_profile
from stakeholder.services.progress import ProgressSink
from stakeholder.services.retry import RetryCallback, RetryState, policy_from_settings

STATE_MESSAGES = {
    RunState.ACCEPTED: "Request accepted for {name}.",
    RunState.RESEARCHING: "Researching public information about {name}...",
    RunState.SYNTHESIZING: "Building the profile...",
    RunState.EXTRACTING: "Validating the profile...",
    RunState.COMPLETED: "Profile complete.",
    RunState.FAILED: "Profile generation failed.",
}


class ProfileOrchestrator:
    """Runs one stakeholder profile pipeline per request.

    Flow:
      1. Research: gather public information (failures degrade to no research)
      2. Synthesis: generate the profile JSON (failures end the run)
      3. Extraction: recover and validate the ProfileRecord

    The whole run is bounded by ``run_timeout_seconds``. A progress event is
    emitted on every state entry and every retry; sinks never affect the run.
    """

    def __init__(
        self,
        research_agent: ResearchAgent,
        synthesis_agent: SynthesisAgent,
        *,
        run_timeout_seconds: float = 300.0,
        raw_excerpt_chars: int = 300,
        max_sources: int = MAX_FALLBACK_SOURCES,
    ):
        self.research_agent = research_agent
        self.synthesis_agent = synthesis_agent
        self.run_timeout_seconds = float(run_timeout_seconds)
        self.raw_excerpt_chars = max(int(raw_excerpt_chars), 0)
        self.max_sources = max(int(max_sources), 0)

    @classmethod
    def from_settings(cls, config: Settings = settings, client: Any = None) -> "ProfileOrchestrator":
        """Build the orchestrator and its shared Anthropic client once.

        Raises ConfigurationError when the API key is missing.
        """
        client = client if client is not None else get_client(config)
        research_agent = ResearchAgent(
            client,
            model=config.research_model,
            max_tokens=config.research_max_tokens,
            retry_policy=policy_from_settings("research", config),
            web_search_enabled=config.research_web_search_enabled,
            web_search_max_uses=config.research_web_search_max_uses,
            max_chars=config.research_max_chars,
            max_sources=config.max_fallback_sources,
        )
        synthesis_agent = SynthesisAgent(
            client,
            model=config.synthesis_model,
            max_tokens=config.synthesis_max_tokens,
            retry_policy=policy_from_settings("synthesis", config),
        )
        return cls(
            research_agent,
            synthesis_agent,
            run_timeout_seconds=config.run_timeout_seconds,
            raw_excerpt_chars=config.raw_excerpt_chars,
            max_sources=config.max_fallback_sources,
        )

    @staticmethod
    def validate(request: ProfileRequest) -> None:
        if not (request.name or "").strip():
            raise InvalidRequestError("Name is required")

    async def run(self, request: ProfileRequest, sink: ProgressSink | None = None) -> PipelineRun:
        """Execute the pipeline and return the finished run (completed or failed).

        Raises InvalidRequestError before any external call when the name is blank.
        """
        self.validate(request)
        run = PipelineRun(request=request)
        await self._emit(run, sink, ProgressEvent(message=self._state_message(run), state=run.state))
        log_service.log_pipeline_step(run.run_id, run.state.value, {"subject": request.name[:100]})

        try:
            await asyncio.wait_for(self._execute(run, sink), timeout=self.run_timeout_seconds)
        except asyncio.TimeoutError:
            await self._fail(
                run,
                sink,
                PipelineTimeoutError(
                    f"Profile generation timed out after {self.run_timeout_seconds:g} seconds."
                ),
            )
        except ProfilerError as exc:
            await self._fail(run, sink, exc)
        except Exception as exc:
            log_service.log_event(
                event_type="pipeline_unexpected_error",
                message="Unexpected error in profile pipeline",
                level=logging.ERROR,
                run_id=run.run_id,
                error_type=type(exc).__name__,
                error=str(exc)[:500],
            )
            await self._fail(run, sink, ProfilerError("Profile generation failed unexpectedly."))
        return run

    async def _execute(self, run: PipelineRun, sink: ProgressSink | None) -> None:
        request = run.request

        await self._enter(run, sink, RunState.RESEARCHING)
        run.research = await self._research(run, sink)

        await self._enter(run, sink, RunState.SYNTHESIZING)
        run.raw_synthesis = await self.synthesis_agent.synthesize(
            request,
            run.research,
            on_retry=self._retry_notifier(run, sink, "Synthesis"),
        )

        await self._enter(run, sink, RunState.EXTRACTING)
        try:
            profile = extract_profile(
                run.raw_synthesis,
                run.research.extracted_sources if run.research else (),
                max_sources=self.max_sources,
            )
        except ExtractionError as exc:
            exc.raw = (run.raw_synthesis or "")[: self.raw_excerpt_chars]
            raise

        run.profile = self._fill_subject(profile, request)
        await self._enter(
            run,
            sink,
            RunState.COMPLETED,
            sources=len(run.profile.sources),
            runtime_ms=run.runtime_ms,
        )

    async def _research(self, run: PipelineRun, sink: ProgressSink | None) -> ResearchResult:
        research = await self.research_agent.research(
            run.request,
            on_retry=self._retry_notifier(run, sink, "Research"),
        )
        if not research.available:
            note = research.note or "No research available."
            await self._emit(
                run,
                sink,
                ProgressEvent(
                    message=f"{note} Continuing with background knowledge.",
                    state=run.state,
                ),
            )
        return research

    @staticmethod
    def _fill_subject(profile: ProfileRecord, request: ProfileRequest) -> ProfileRecord:
        update: dict[str, Any] = {}
        if not profile.name:
            update["name"] = request.name.strip()
        if not profile.role and request.role:
            update["role"] = request.role
        if not profile.organisation and request.organisation:
            update["organisation"] = request.organisation
        return profile.model_copy(update=update) if update else profile

    def _retry_notifier(self, run: PipelineRun, sink: ProgressSink | None, label: str) -> RetryCallback:
        async def notify(state: RetryState, error: BaseException) -> None:
            await self._emit(
                run,
                sink,
                ProgressEvent(
                    message=(
                        f"{label} service busy, retrying in {state.next_delay:g}s "
                        f"(attempt {state.attempt} of {state.max_attempts})."
                    ),
                    state=run.state,
                    attempt=state.attempt,
                    delay_seconds=state.next_delay,
                ),
            )

        return notify

    @staticmethod
    def _state_message(run: PipelineRun) -> str:
        return STATE_MESSAGES[run.state].format(name=run.request.name.strip())

    async def _enter(
        self,
        run: PipelineRun,
        sink: ProgressSink | None,
        state: RunState,
        **data: Any,
    ) -> None:
        run.state = state
        run.states.append(state)
        log_service.log_pipeline_step(run.run_id, state.value, data or None)
        await self._emit(run, sink, ProgressEvent(message=self._state_message(run), state=state))

    async def _fail(self, run: PipelineRun, sink: ProgressSink | None, error: ProfilerError) -> None:
        run.error = error
        log_service.log_event(
            event_type="pipeline_failed",
            message=error.message,
            level=logging.ERROR,
            run_id=run.run_id,
            kind=error.kind,
            failed_in=run.state.value,
            runtime_ms=run.runtime_ms,
        )
        await self._enter(run, sink, RunState.FAILED, kind=error.kind)

    async def _emit(self, run: PipelineRun, sink: ProgressSink | None, event: ProgressEvent) -> None:
        run.events.append(event)
        if sink is None:
            return
        try:
            await sink.emit(event)
        except Exception as e:
            # Progress is advisory; a broken sink never stops the run.
            log_service.log_event(
                event_type="progress_sink_error",
                message="Failed to deliver progress event",
                level=logging.WARNING,
                run_id=run.run_id,
                error=str(e),
            )
