from __future__ import annotations

import asyncio
import json

import pytest

from stakeholder.agents.orchestrator import ProfileOrchestrator
from stakeholder.agents.research_agent import ResearchAgent
from stakeholder.agents.synthesis_agent import SynthesisAgent
from stakeholder.models.events import EventType
from stakeholder.models.schemas import ProfileRequest
from stakeholder.services import streaming
from stakeholder.services.progress import stream_profile
from stakeholder.services.retry import RetryPolicy


def _orchestrator(client, sleeps, timeout=5.0):
    return ProfileOrchestrator(
        ResearchAgent(client, model="r", retry_policy=RetryPolicy(max_attempts=3, sleep=sleeps.sleep)),
        SynthesisAgent(client, model="s", retry_policy=RetryPolicy(max_attempts=3, sleep=sleeps.sleep)),
        run_timeout_seconds=timeout,
    )


async def _collect(orchestrator, request):
    return [event async for event in stream_profile(orchestrator, request)]


@pytest.mark.asyncio
async def test_successful_stream_is_statuses_then_one_done(scripted_client, text_response, sleeps):
    client = scripted_client(
        RuntimeError("overloaded"),
        text_response("notes https://acme.example/a"),
        text_response('{"name": "Jane Doe", "sources": []}'),
    )

    events = await _collect(_orchestrator(client, sleeps), ProfileRequest(name="Jane Doe"))

    types = [e.event for e in events]
    assert types[-1] is EventType.DONE
    assert types.count(EventType.DONE) == 1
    assert EventType.ERROR not in types
    assert all(t is EventType.STATUS for t in types[:-1])
    assert len(types) >= 2
    assert any("retrying" in e.data["message"] for e in events[:-1])
    assert events[-1].data["profile"]["sources"] == ["https://acme.example/a"]
    assert events[-1].data["profile"]["sphereOfInfluence"]["peers"] == []


@pytest.mark.asyncio
async def test_failed_stream_is_statuses_then_one_error(scripted_client, text_response, sleeps):
    client = scripted_client(text_response("notes"), text_response("not json at all"))

    events = await _collect(_orchestrator(client, sleeps), ProfileRequest(name="Jane Doe"))

    types = [e.event for e in events]
    assert types[-1] is EventType.ERROR
    assert types.count(EventType.ERROR) == 1
    assert EventType.DONE not in types
    assert all(t is EventType.STATUS for t in types[:-1])
    assert events[-1].data["message"].startswith("JSON parse failed")
    assert events[-1].data["raw"] == "not json at all"


@pytest.mark.asyncio
async def test_closing_stream_cancels_pipeline(scripted_client, text_response, sleeps):
    cancelled = asyncio.Event()

    async def slow_synthesis():
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    client = scripted_client(text_response("notes"), slow_synthesis)
    stream = stream_profile(_orchestrator(client, sleeps, timeout=30), ProfileRequest(name="Jane Doe"))

    async for event in stream:
        if "Building the profile" in event.data.get("message", ""):
            break
    await asyncio.sleep(0)
    await stream.aclose()

    assert cancelled.is_set()


def test_sse_event_wire_format():
    event = streaming.status("Researching...")
    assert event.format() == 'event: status\ndata: {"message": "Researching..."}\n\n'
    assert event.to_message() == {"event": "status", "data": json.dumps({"message": "Researching..."})}
    assert not event.terminal
    assert streaming.done({"name": "x"}).terminal
    assert streaming.error("boom").data == {"message": "boom"}
