"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming data validation
- Response models for the {ok: ...} payloads returned by every action
"""

from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Pydantic Request Models
# =============================================================================

class SendRequest(BaseModel):
    """
    Body of a send action.

    Length rules are applied by the message log, not here, so that an empty
    or oversize body yields the same error payload as every other rejection.
    """
    author: Optional[str] = Field(None, description="Author name (optional)")
    body: Optional[str] = Field(None, description="Message text")

    model_config = {
        "json_schema_extra": {
            "examples": [{"author": "Alice", "body": "hello"}]
        }
    }


# =============================================================================
# Pydantic Response Models
# =============================================================================

class MessageResponse(BaseModel):
    """
    A single message in a fetch result.
    Maps database fields to API response format.
    """
    id: int = Field(..., ge=1, description="Log-assigned message id")
    author: str = Field(..., description="Author name")
    body: str = Field(..., description="Message text")
    created_at: str = Field(
        ...,
        alias="createdAt",
        serialization_alias="createdAt",
        description="Append time (ISO-8601 UTC)"
    )

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,  # Allow creating from ORM objects
    }


class SendResponse(BaseModel):
    """Response for a successful send."""
    ok: bool = True
    id: int = Field(..., ge=1, description="Id assigned to the new message")


class MessagesResponse(BaseModel):
    """Response for fetchSince and fetchRecent, ascending by id."""
    ok: bool = True
    messages: list[MessageResponse] = Field(default_factory=list)


class StatsResponse(BaseModel):
    """Response for the stats action."""
    ok: bool = True
    total: int = Field(..., ge=0, description="Total number of messages")
    max_id: int = Field(
        ...,
        ge=0,
        alias="maxId",
        serialization_alias="maxId",
        description="Highest assigned id (0 for an empty log)"
    )

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Response for any failed action."""
    ok: bool = False
    error: str = Field(..., description="Error description")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
