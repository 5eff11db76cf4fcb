from __future__ import annotations

from typing import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from stakeholder.agents.orchestrator import ProfileOrchestrator
from stakeholder.api.deps import get_orchestrator
from stakeholder.config import settings
from stakeholder.models.schemas import ErrorResponse, ProfileRequest, ProfileResponse
from stakeholder.services import logger as log_service
from stakeholder.services import streaming
from stakeholder.services.progress import stream_profile

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.post(
    "",
    response_model=ProfileResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_profile(
    request: ProfileRequest,
    orchestrator: ProfileOrchestrator = Depends(get_orchestrator),
):
    """Run the pipeline and answer once with the profile or the error."""
    run = await orchestrator.run(request)
    if run.succeeded and run.profile is not None:
        return {"profile": run.profile.to_payload()}

    error = run.error
    log_service.log_event(
        event_type="profile_failed",
        message="Profile request failed",
        run_id=run.run_id,
        kind=error.kind if error else "unknown",
    )
    if error is None:
        return JSONResponse(status_code=500, content={"error": "Profile generation failed."})
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def _event_response(
    request: ProfileRequest,
    orchestrator: ProfileOrchestrator,
) -> EventSourceResponse:
    # Reject bad input with a plain 400 before the stream opens.
    orchestrator.validate(request)

    async def event_generator() -> AsyncGenerator[dict[str, str], None]:
        log_service.log_event(
            event_type="profile_stream_started",
            message="Profile stream started",
            subject=request.name[:100],
        )
        try:
            async for event in stream_profile(orchestrator, request):
                yield event.to_message()
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in profile stream",
                error=str(e),
                subject=request.name[:100],
            )
            yield streaming.error("Profile stream failed unexpectedly.").to_message()

    return EventSourceResponse(event_generator(), ping=settings.sse_ping_seconds)


@router.post("/stream")
async def stream_profile_post(
    request: ProfileRequest,
    orchestrator: ProfileOrchestrator = Depends(get_orchestrator),
):
    """SSE stream of ``status`` events ending in one ``done`` or ``error``."""
    return _event_response(request, orchestrator)


@router.get("/stream")
async def stream_profile_get(
    name: str = "",
    role: str | None = None,
    organisation: str | None = None,
    company: str | None = None,
    orchestrator: ProfileOrchestrator = Depends(get_orchestrator),
):
    """EventSource-friendly variant taking the subject as query parameters."""
    request = ProfileRequest(name=name, role=role, organisation=organisation or company)
    return _event_response(request, orchestrator)
