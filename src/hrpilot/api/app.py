"""
Core API backend for HRPilot.

This module exposes the agents through a small HTTP API used by frontends and the terminal client:
- **GET /health**                 - liveness probe for health checks.
- **POST /chat/route**            - suggest a top-level agent for a message (no model call).
- **POST /hr**                    - general HR question answered as one JSON document.
- **POST /hr/stream**             - compliance-family turn, streamed as NDJSON.
- **POST /agent/stream**          - recruiting / onboarding / L&D turn, streamed as NDJSON.
- **POST /agent/stream/continue** - resume a turn paused for tool approval.

Everything that can be rejected (admission, validation, credentials, continuation token) is checked
before the stream opens; once streaming starts, failures surface as an ``error`` event.
"""

import logging
from typing import (
    Callable,
    Dict,
    List,
)

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
    Request,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import (
    JSONResponse,
    StreamingResponse,
)

from hrpilot.agent.classifier import (
    choose_agent,
    suggest_chat_agent,
)
from hrpilot.agent.continuation import (
    InvalidContinuation,
    decode_continuation,
)
from hrpilot.agent.generator_interface import (
    BaseGenerator,
    load_generator,
)
from hrpilot.agent.orchestrator import TurnOrchestrator
from hrpilot.agent.profiles import get_profile
from hrpilot.agent.streaming import (
    guard_terminal,
    ndjson_response,
)
from hrpilot.api.models import (
    AgentStreamRequest,
    ContinueRequest,
    HistoryItem,
    HrRequest,
    HrResponse,
    HrStreamRequest,
    RouteRequest,
)
from hrpilot.api.rate_limit import (
    RateLimiter,
    client_ip,
    rate_limit_key,
)
from hrpilot.common import (
    AnsiColors,
    colored_print,
)
from hrpilot.config import settings
from hrpilot.core.schema import (
    AgentId,
    DoneEvent,
    ErrorEvent,
    RouteSuggestion,
    TurnParams,
)

logger = logging.getLogger(__name__)

limiter = RateLimiter()

app = FastAPI(title="HRPilot API", version="0.1.0", description="HRPilot multi-agent HR assistant")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_generator() -> BaseGenerator:
    """The configured generation capability."""
    return load_generator(settings.GENERATOR)


def get_limiter() -> RateLimiter:
    return limiter


def admission(route: str) -> Callable[..., str]:
    """Dependency factory: answer 429 when this client is over budget for *route*."""

    def dependency(request: Request, rate_limiter: RateLimiter = Depends(get_limiter)) -> str:
        key = rate_limit_key(client_ip(request), route)
        if not rate_limiter.check(key):
            raise HTTPException(
                status_code=429, detail="Too many requests. Please try again later."
            )
        return key

    return dependency


def _require_credentials(generator: BaseGenerator) -> None:
    if not generator.available:
        logger.error("Generator '%s' has no API key configured", settings.GENERATOR)
        raise HTTPException(
            status_code=500, detail="Server configuration error: API key not configured."
        )


def _history(items: List[HistoryItem]) -> List[Dict[str, str]]:
    return [item.model_dump() for item in items]


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body validation failures as a single 400 message."""
    messages = [str(err.get("msg", "")) for err in exc.errors() if err.get("msg")]
    detail = "; ".join(messages) or "Invalid request body"
    logger.info("Rejected %s request: %s", request.url.path, detail)
    return JSONResponse(status_code=400, content={"detail": detail})


@app.exception_handler(InvalidContinuation)
async def invalid_continuation_handler(request: Request, exc: InvalidContinuation) -> JSONResponse:
    logger.info("Rejected continuation on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.post("/chat/route", response_model=RouteSuggestion, summary="Suggest an agent")
async def chat_route(req: RouteRequest) -> RouteSuggestion:
    """Suggest which top-level agent should handle the message; the user confirms it."""
    suggestion = suggest_chat_agent(req.message)
    logger.info("Suggested %s for routing request", suggestion.suggested_agent.value)
    return suggestion


@app.post("/hr", response_model=HrResponse, summary="General HR question (JSON)")
async def hr_answer(
    req: HrRequest,
    key: str = Depends(admission("hr")),
    rate_limiter: RateLimiter = Depends(get_limiter),
    generator: BaseGenerator = Depends(get_generator),
) -> HrResponse:
    """Answer with the general HR assistant and return the whole text at once."""
    _require_credentials(generator)
    rate_limiter.record(key)

    agent = AgentId.GENERAL_HR_ASSISTANT
    orchestrator = TurnOrchestrator(generator)
    events = orchestrator.start(
        agent, req.message, _history(req.history), TurnParams(jurisdiction=req.jurisdiction)
    )
    async for event in guard_terminal(events, fallback_text=get_profile(agent).empty_text):
        if isinstance(event, DoneEvent):
            return HrResponse(text=event.text)
        if isinstance(event, ErrorEvent):
            logger.error("HR answer failed (jurisdiction=%s): %s", req.jurisdiction, event.error)
            break
    raise HTTPException(
        status_code=502,
        detail="The assistant is temporarily unavailable. Please try again later.",
    )


@app.post("/hr/stream", summary="Compliance assistant turn (NDJSON)")
async def hr_stream(
    req: HrStreamRequest,
    key: str = Depends(admission("hr")),
    rate_limiter: RateLimiter = Depends(get_limiter),
    generator: BaseGenerator = Depends(get_generator),
) -> StreamingResponse:
    """Route the message to a compliance-family agent and stream its answer."""
    _require_credentials(generator)
    rate_limiter.record(key)

    history = _history(req.history)
    if req.file_filenames:
        logger.debug("Ignoring %d file name(s); file ids are forwarded", len(req.file_filenames))
    decision = await choose_agent(
        req.message, history, has_document=bool(req.file_ids), generator=generator
    )
    orchestrator = TurnOrchestrator(generator)
    events = orchestrator.start(
        decision.agent,
        req.message,
        history,
        TurnParams(jurisdiction=req.jurisdiction),
        file_ids=req.file_ids,
    )
    return ndjson_response(events, fallback_text=get_profile(decision.agent).empty_text)


@app.post("/agent/stream", summary="Top-level agent turn (NDJSON)")
async def agent_stream(
    req: AgentStreamRequest,
    key: str = Depends(admission("agent")),
    rate_limiter: RateLimiter = Depends(get_limiter),
    generator: BaseGenerator = Depends(get_generator),
) -> StreamingResponse:
    """Run the chosen agent; recruiting turns may pause with ``pending_tool_calls``."""
    _require_credentials(generator)
    rate_limiter.record(key)

    agent = AgentId(req.agent)
    orchestrator = TurnOrchestrator(generator)
    events = orchestrator.start(agent, req.message, _history(req.history), req.params)
    return ndjson_response(events, fallback_text=get_profile(agent).empty_text)


@app.post("/agent/stream/continue", summary="Resume a paused turn (NDJSON)")
async def agent_stream_continue(
    req: ContinueRequest,
    key: str = Depends(admission("agent")),
    rate_limiter: RateLimiter = Depends(get_limiter),
    generator: BaseGenerator = Depends(get_generator),
) -> StreamingResponse:
    """Apply the user's approval decisions and continue the turn."""
    _require_credentials(generator)
    paused = decode_continuation(req.continuation)
    rate_limiter.record(key)

    orchestrator = TurnOrchestrator(generator)
    events = orchestrator.resume(paused, req.approved_tool_call_ids)
    return ndjson_response(events, fallback_text=get_profile(paused.agent).empty_text)


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn out of the import path for tests and the client
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting HRPilot API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    if not get_generator().available:
        logger.warning(
            "Generator '%s' has no API key; stream endpoints will return 500", settings.GENERATOR
        )

    colored_print(f"HRPilot API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "hrpilot.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m hrpilot.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
