from __future__ import annotations

from typing import Any

from stakeholder.models.events import EventType, SSEEvent


def status(message: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.STATUS, data={"message": message, **kwargs})


def done(profile: dict[str, Any]) -> SSEEvent:
    return SSEEvent(event=EventType.DONE, data={"profile": profile})


def error(message: str, raw: str | None = None) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    if raw:
        data["raw"] = raw
    return SSEEvent(event=EventType.ERROR, data=data)
