import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response, Request, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from livefeed import errors
from livefeed.config import settings
from livefeed.storage import init_db, check_db_health, get_db
from livefeed.logging_utils import setup_logging, RequestLoggingMiddleware, log_action_data
from livefeed.metrics import record_action_outcome, get_metrics, get_metrics_content_type
from livefeed.handlers import (
    ActionOutcome,
    handle_fetch_recent,
    handle_fetch_since,
    handle_send,
    handle_stats,
    invalid_request,
)
from livefeed.schemas import HealthResponse, ErrorResponse


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: make sure the message table exists
    """
    init_db()
    yield


app = FastAPI(
    title="Live Feed API",
    description="Append-only shared message feed with cursor-based polling",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the DB is reachable and the
    message table exists, 503 otherwise.
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Feed Route
# =============================================================================

async def _dispatch(action: str, request: Request, db: Session) -> ActionOutcome:
    method = request.method

    if action == "send" and method == "POST":
        try:
            raw_body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return ActionOutcome(400, ErrorResponse(error=errors.INVALID_BODY), "validation_error")
        return handle_send(db, raw_body)

    if method != "GET":
        return invalid_request()
    if action == "fetchSince":
        return handle_fetch_since(db, request.query_params)
    if action == "fetchRecent":
        return handle_fetch_recent(db, request.query_params)
    if action == "stats":
        return handle_stats(db)
    return invalid_request()


@app.api_route(
    "/api",
    methods=["GET", "POST"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or validation error"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
    }
)
async def feed_api(request: Request, db: Session = Depends(get_db)) -> JSONResponse:
    """
    Single feed endpoint, selected by the `action` query parameter.

    Actions:
        - send (POST): JSON {author?, body} -> {ok, id}
        - fetchSince (GET): cursor, limit -> {ok, messages} with id > cursor
        - fetchRecent (GET): count -> {ok, messages}, the newest count messages
        - stats (GET): -> {ok, total, maxId}

    Every failure is returned as {ok: false, error}.
    """
    action = request.query_params.get("action", "")
    logger.debug(f"{request.method} /api action={action}")

    try:
        outcome = await _dispatch(action, request, db)
    except Exception as e:
        logger.exception(f"Unhandled error in action {action}: {e}")
        outcome = ActionOutcome(500, ErrorResponse(error="Internal server error."), "internal_error")

    label = action if outcome.result != "invalid_request" else "invalid"
    record_action_outcome(label, outcome.result)
    log_action_data(request, action=action, result=outcome.result, message_id=outcome.message_id)

    return JSONResponse(
        status_code=outcome.status_code,
        content=outcome.payload.model_dump(by_alias=True),
    )


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    Returns metrics in Prometheus text exposition format including:
    - http_requests_total: Total HTTP requests by method, path, status
    - feed_actions_total: Feed action outcomes by action and result
    - request_latency_seconds: Request latency histogram
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
