from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stakeholder.agents.orchestrator import ProfileOrchestrator
from stakeholder.api.routes import profile
from stakeholder.config import settings
from stakeholder.errors import ProfilerError
from stakeholder.services import logger as log_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: fail fast when the credential is missing.
    log_service.log_event(
        event_type="startup",
        message="Starting stakeholder profile service",
        api_key_configured=bool(settings.anthropic_api_key.strip()),
        research_model=settings.research_model,
        synthesis_model=settings.synthesis_model,
    )
    app.state.orchestrator = ProfileOrchestrator.from_settings(settings)
    yield
    # Shutdown


app = FastAPI(
    title="Stakeholder Profiler",
    description="Stakeholder profiles researched and synthesized by Anthropic Claude",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProfilerError)
async def profiler_error_handler(request: Request, exc: ProfilerError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# Routes
app.include_router(profile.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "stakeholder"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "stakeholder.main:app",
        host=settings.host,
        port=settings.port,
        timeout_keep_alive=int(settings.run_timeout_seconds),
    )
