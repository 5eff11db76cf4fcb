"""Progress sinks and the streaming progress channel.

The orchestrator only knows the ProgressSink protocol. The channel below
runs one pipeline as a task, relays its progress events as SSE ``status``
events and finishes with exactly one terminal ``done`` or ``error``.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, AsyncGenerator, Protocol

from stakeholder.models.events import SSEEvent
from stakeholder.models.pipeline import PipelineRun, ProgressEvent
from stakeholder.models.schemas import ProfileRequest
from stakeholder.services import logger as log_service
from stakeholder.services import streaming

if TYPE_CHECKING:
    from stakeholder.agents.orchestrator import ProfileOrchestrator


class ProgressSink(Protocol):
    async def emit(self, event: ProgressEvent) -> None: ...


class BufferProgressSink:
    """Collects events in memory for in-process callers that inspect them afterwards."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    async def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)


class QueueProgressSink:
    """Hands events to a consumer task through an asyncio queue."""

    def __init__(self, queue: asyncio.Queue) -> None:
        self.queue = queue

    async def emit(self, event: ProgressEvent) -> None:
        self.queue.put_nowait(event)


_RUN_FINISHED = object()


async def stream_profile(
    orchestrator: "ProfileOrchestrator",
    request: ProfileRequest,
) -> AsyncGenerator[SSEEvent, None]:
    """Run one pipeline and yield its status events, then one terminal event.

    Closing the generator (client disconnect) cancels the pipeline task.
    """
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(orchestrator.run(request, QueueProgressSink(queue)))
    task.add_done_callback(lambda _task: queue.put_nowait(_RUN_FINISHED))

    try:
        while True:
            item = await queue.get()
            if item is _RUN_FINISHED:
                break
            yield streaming.status(item.message)

        run: PipelineRun = task.result()
        if run.succeeded and run.profile is not None:
            yield streaming.done(run.profile.to_payload())
        else:
            message = run.error.message if run.error else "Profile generation failed."
            raw = getattr(run.error, "raw", None)
            yield streaming.error(message, raw=raw)
    finally:
        if not task.done():
            log_service.log_event(
                event_type="stream_cancelled",
                message="Client went away, cancelling pipeline run",
                level=logging.WARNING,
                subject=request.name[:100],
            )
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
