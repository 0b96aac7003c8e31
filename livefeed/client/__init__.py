"""Polling client: transport, local view merge and per-participant session."""

from .session import ConnectionStatus, Draft, SyncSession
from .transport import FeedClient, FeedResponse
from .view import FeedMessage, LocalView, MergeResult

__all__ = [
    "ConnectionStatus",
    "Draft",
    "FeedClient",
    "FeedMessage",
    "FeedResponse",
    "LocalView",
    "MergeResult",
    "SyncSession",
]
