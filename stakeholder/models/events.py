from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    STATUS = "status"
    DONE = "done"
    ERROR = "error"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def terminal(self) -> bool:
        return self.event in (EventType.DONE, EventType.ERROR)

    def to_message(self) -> dict[str, str]:
        """Shape accepted by sse-starlette's EventSourceResponse."""
        return {"event": self.event.value, "data": json.dumps(self.data)}

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"
