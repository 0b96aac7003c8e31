"""Bounded local mirror of the message log for one client session.

The merge algorithm lives here, separate from any presentation step. It is
idempotent and commutative per message: duplicates are dropped by id, each
message is placed at its id-ordered position and the cursor only moves up,
so overlapping or out-of-order fetch results can be redundant but never
corrupt the view.
"""

import bisect
from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass(frozen=True)
class FeedMessage:
    """A message as seen by the client."""

    id: int
    author: str
    body: str
    created_at: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedMessage":
        """Create from an API message payload."""
        return cls(
            id=int(data["id"]),
            author=data.get("author", ""),
            body=data.get("body", ""),
            created_at=data.get("createdAt", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "body": self.body,
            "createdAt": self.created_at,
        }


@dataclass
class MergeResult:
    """Messages introduced into and dropped from the view by one merge."""

    added: list[FeedMessage] = field(default_factory=list)
    evicted: list[FeedMessage] = field(default_factory=list)


class LocalView:
    """Ordered, bounded view plus the observed-id set and the cursor.

    Invariants after every merge:
    - messages are in strictly ascending id order
    - observed_ids == {m.id for m in messages}
    - len(messages) <= capacity
    - cursor never decreases, except when a replace merge resets it
    """

    def __init__(self, capacity: int = 1200):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.cursor = 0
        self.observed_ids: set[int] = set()
        self._messages: list[FeedMessage] = []
        self._ids: list[int] = []  # parallel to _messages, for bisect

    @property
    def messages(self) -> list[FeedMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: int) -> bool:
        return message_id in self.observed_ids

    def clear(self) -> None:
        """Drop every message and reset the cursor to zero."""
        self._messages.clear()
        self._ids.clear()
        self.observed_ids.clear()
        self.cursor = 0

    def merge(self, batch: Iterable[FeedMessage], replace: bool = False) -> MergeResult:
        """Merge a fetch result into the view.

        Args:
            batch: Messages from one fetch response.
            replace: Clear the view, ids and cursor first (full resync).

        Returns:
            MergeResult listing the messages added and evicted.
        """
        if replace:
            self.clear()

        result = MergeResult()
        for message in batch:
            if message.id in self.observed_ids:
                continue
            pos = bisect.bisect_left(self._ids, message.id)
            self._ids.insert(pos, message.id)
            self._messages.insert(pos, message)
            self.observed_ids.add(message.id)
            self.cursor = max(self.cursor, message.id)
            result.added.append(message)

        overflow = len(self._messages) - self.capacity
        if overflow > 0:
            evicted = self._messages[:overflow]
            del self._messages[:overflow]
            del self._ids[:overflow]
            for message in evicted:
                self.observed_ids.discard(message.id)
            result.evicted = evicted

        # Entries added and evicted by the same merge never reach the caller
        if result.evicted and result.added:
            added_ids = {m.id for m in result.added}
            gone = {m.id for m in result.evicted}
            result.added = [m for m in result.added if m.id not in gone]
            result.evicted = [m for m in result.evicted if m.id not in added_ids]

        return result
