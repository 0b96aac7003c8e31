"""
Action handlers for the /api endpoint.

Each handler validates and clamps its inputs, delegates to the message log in
storage.py and maps the outcome to a response model. Handlers are stateless
and never raise: every failure becomes an ErrorResponse.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from livefeed import errors, storage
from livefeed.config import settings
from livefeed.errors import ErrorKind
from livefeed.schemas import (
    ErrorResponse,
    MessageResponse,
    MessagesResponse,
    SendRequest,
    SendResponse,
    StatsResponse,
)
from livefeed.utils import parse_int

logger = logging.getLogger(__name__)


@dataclass
class ActionOutcome:
    """Response model plus the bookkeeping the route needs for logs and metrics."""
    status_code: int
    payload: BaseModel
    result: str
    message_id: Optional[int] = None


def _error(status_code: int, message: str, result: str) -> ActionOutcome:
    return ActionOutcome(status_code, ErrorResponse(error=message), result)


def invalid_request() -> ActionOutcome:
    return _error(400, errors.INVALID_REQUEST, "invalid_request")


def handle_send(db: Session, raw_body: Any) -> ActionOutcome:
    """Append one message. raw_body is the decoded JSON request body."""
    if not isinstance(raw_body, dict):
        return _error(400, errors.INVALID_BODY, "validation_error")
    try:
        request = SendRequest.model_validate(raw_body)
    except ValidationError as e:
        logger.debug(f"Send body rejected: {e}")
        return _error(400, errors.INVALID_BODY, "validation_error")

    outcome = storage.append_message(db, request.author, request.body)
    if outcome.kind is ErrorKind.VALIDATION:
        return _error(400, outcome.error, "validation_error")
    if outcome.kind is ErrorKind.PERSISTENCE:
        return _error(500, outcome.error, "persistence_error")

    return ActionOutcome(200, SendResponse(id=outcome.id), "ok", message_id=outcome.id)


def handle_fetch_since(db: Session, params: Mapping[str, str]) -> ActionOutcome:
    """Messages with id > cursor, ascending, at most HARD_CAP of them."""
    try:
        cursor = parse_int(params.get("cursor"), "cursor", 0)
        limit = parse_int(params.get("limit"), "limit", settings.HARD_CAP)
    except ValueError as e:
        return _error(400, str(e), "validation_error")

    try:
        rows = storage.fetch_since(db, cursor, limit)
    except SQLAlchemyError as e:
        logger.error(f"fetchSince failed: {e}")
        return _error(500, f"Fetch failed: {e}", "read_error")

    messages = [MessageResponse.model_validate(row) for row in rows]
    return ActionOutcome(200, MessagesResponse(messages=messages), "ok")


def handle_fetch_recent(db: Session, params: Mapping[str, str]) -> ActionOutcome:
    """The most recent count messages, ascending."""
    try:
        count = parse_int(params.get("count"), "count", settings.DEFAULT_RECENT_COUNT)
    except ValueError as e:
        return _error(400, str(e), "validation_error")

    try:
        rows = storage.fetch_recent(db, count)
    except SQLAlchemyError as e:
        logger.error(f"fetchRecent failed: {e}")
        return _error(500, f"Recent fetch failed: {e}", "read_error")

    messages = [MessageResponse.model_validate(row) for row in rows]
    return ActionOutcome(200, MessagesResponse(messages=messages), "ok")


def handle_stats(db: Session) -> ActionOutcome:
    try:
        stats = storage.get_stats(db)
    except SQLAlchemyError as e:
        logger.error(f"stats failed: {e}")
        return _error(500, f"Stats failed: {e}", "read_error")

    return ActionOutcome(200, StatsResponse(total=stats["total"], max_id=stats["max_id"]), "ok")
