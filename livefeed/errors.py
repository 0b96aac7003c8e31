"""
Error taxonomy shared by the feed service and the polling client.

Failures are carried as values (see AppendResult in storage and FeedResponse
in the client transport) and checked by the caller, not raised.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a feed operation can report."""
    VALIDATION = "validation"    # rejected before touching the log
    PERSISTENCE = "persistence"  # store unavailable or write failed
    NETWORK = "network"          # request or response never arrived
    PROTOCOL = "protocol"        # well-formed response with ok:false


# Error strings returned in {ok: false, error: ...} payloads
EMPTY_BODY = "Message cannot be empty."
BODY_TOO_LONG = "Message exceeds maximum allowed length."
INVALID_REQUEST = "Invalid action or method."
INVALID_BODY = "Request body must be a JSON object."
