from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

from stakeholder.errors import ProfilerError
from stakeholder.models.profile import ProfileRecord
from stakeholder.models.schemas import ProfileRequest


class RunState(str, Enum):
    ACCEPTED = "accepted"
    RESEARCHING = "researching"
    SYNTHESIZING = "synthesizing"
    EXTRACTING = "extracting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ResearchResult:
    text: str = ""
    extracted_sources: list[str] = field(default_factory=list)
    note: str | None = None

    @property
    def available(self) -> bool:
        return bool(self.text.strip())


@dataclass
class ProgressEvent:
    """Advisory status notification. Retry notifications carry attempt and delay."""

    message: str
    state: RunState | None = None
    attempt: int | None = None
    delay_seconds: float | None = None

    @property
    def is_retry(self) -> bool:
        return self.attempt is not None


@dataclass
class PipelineRun:
    request: ProfileRequest
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: RunState = RunState.ACCEPTED
    research: ResearchResult | None = None
    raw_synthesis: str | None = None
    profile: ProfileRecord | None = None
    error: ProfilerError | None = None
    events: list[ProgressEvent] = field(default_factory=list)
    states: list[RunState] = field(default_factory=lambda: [RunState.ACCEPTED])
    started_at: float = field(default_factory=time.monotonic)

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.COMPLETED and self.profile is not None

    @property
    def retry_events(self) -> list[ProgressEvent]:
        return [e for e in self.events if e.is_retry]

    @property
    def runtime_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)
