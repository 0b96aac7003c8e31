"""
Structured logging for the feed service and the CLI.

Every record is a JSON line carrying ts, level, logger name and, inside a
request, the request_id. One summary line is written per HTTP request; for
/api calls it also names the action and how it ended, so a poll storm or a
run of rejected sends can be read straight from the log.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from pythonjsonlogger import jsonlogger

from livefeed.metrics import record_http_request


request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Polls arrive every couple of seconds per client; their summaries go to DEBUG
QUIET_ACTIONS = frozenset({"fetchSince", "stats"})


def get_request_id() -> Optional[str]:
    """Request id of the request being handled, if any."""
    return request_id_ctx.get()


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds ts (UTC, millisecond precision), level and request_id to each record."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        if not log_record.get('ts'):
            log_record['ts'] = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'
        log_record['level'] = record.levelname

        if 'request_id' not in log_record:
            req_id = request_id_ctx.get()
            if req_id:
                log_record['request_id'] = req_id


def setup_logging(log_level: str = "INFO"):
    """
    Route all logging, uvicorn's included, through one JSON stdout handler.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root = logging.getLogger()
    root.setLevel(log_level.upper())
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter('%(ts)s %(level)s %(name)s %(message)s'))
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False

    # RequestLoggingMiddleware writes the per-request line instead
    logging.getLogger("uvicorn.access").disabled = True

    return root


def _summary_level(status_code: int, action: Optional[str]) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if action in QUIET_ACTIONS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request id, records HTTP metrics and writes one summary line.

    The summary holds method, path, status and latency_ms, plus the action,
    result and assigned message_id that the /api route attached with
    log_action_data(). The id is returned in the X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            latency_seconds = time.perf_counter() - start_time

            if request.url.path != "/metrics":
                record_http_request(
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    latency_seconds=latency_seconds
                )

            log_data = {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": round(latency_seconds * 1000, 2),
            }
            action_data = getattr(request.state, "action_log_data", {})
            log_data.update(action_data)

            level = _summary_level(response.status_code, action_data.get("action"))
            logging.getLogger("livefeed.requests").log(level, "Request completed", extra=log_data)

            return response
        finally:
            request_id_ctx.reset(token)


def log_action_data(request: Request, action: str, result: str, message_id: Optional[int] = None):
    """
    Attach the /api outcome to the request so the summary line includes it.

    Args:
        request: FastAPI request object
        action: Requested action name
        result: ok, validation_error, persistence_error, read_error,
            invalid_request or internal_error
        message_id: Id assigned by a successful send
    """
    action_data = {"action": action, "result": result}

    if message_id is not None:
        action_data["message_id"] = message_id

    request.state.action_log_data = action_data
