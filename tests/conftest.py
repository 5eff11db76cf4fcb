from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import pytest


def _text_response(*texts: str) -> SimpleNamespace:
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text) for text in texts],
        usage=SimpleNamespace(input_tokens=10, output_tokens=20),
    )


class ScriptedMessages:
    """Stands in for ``client.messages``: returns or raises the queued outcomes in order."""

    def __init__(self, outcomes: list[Any]):
        self.outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if not self.outcomes:
            raise AssertionError("unexpected extra call to messages.create")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome


@pytest.fixture
def text_response():
    return _text_response


@pytest.fixture
def scripted_client():
    def factory(*outcomes: Any) -> SimpleNamespace:
        return SimpleNamespace(messages=ScriptedMessages(list(outcomes)))

    return factory


@pytest.fixture
def api_error():
    """Build a real anthropic.APIStatusError for the given HTTP status."""
    import anthropic

    def factory(status_code: int, message: str = "error", body: Any = None):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(status_code, request=request)
        return anthropic.APIStatusError(message, response=response, body=body)

    return factory


@pytest.fixture
def sleeps():
    """Recorded retry waits; pass ``sleeps.sleep`` as the policy's sleeper."""

    class Recorder(list):
        async def sleep(self, seconds: float) -> None:
            self.append(seconds)

    return Recorder()


@pytest.fixture(autouse=True)
def _reset_sse_app_status():
    # sse-starlette keeps a module-level exit event bound to the first event loop.
    try:
        from sse_starlette.sse import AppStatus
    except ImportError:
        yield
        return
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
    yield
