from __future__ import annotations

from fastapi import Request

from stakeholder.agents.orchestrator import ProfileOrchestrator
from stakeholder.config import settings


def get_orchestrator(request: Request) -> ProfileOrchestrator:
    """Return the orchestrator built at startup.

    Falls back to building it on first use (e.g. when the lifespan did not
    run); a missing API key raises ConfigurationError either way.
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = ProfileOrchestrator.from_settings(settings)
        request.app.state.orchestrator = orchestrator
    return orchestrator
