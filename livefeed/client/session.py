"""Polling session for one feed participant.

A SyncSession owns its cursor, local view and poll timer; several sessions can
coexist in one process. Every message enters the view through poll(), and a
confirmed send triggers a forced resync instead of inserting locally.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from livefeed import errors
from livefeed.client.transport import FeedClient, FeedResponse
from livefeed.client.view import FeedMessage, LocalView, MergeResult
from livefeed.errors import ErrorKind

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Outcome of the most recent poll or send."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    OFFLINE = "offline"
    SERVER_ERROR = "server_error"


@dataclass
class Draft:
    """A message whose send failed, kept for a manual retry."""

    author: str | None
    body: str


class SyncSession:
    """Keeps one participant's local view converged with the log.

    Supports:
    - poll(force): incremental fetch since the cursor, or a full resync
    - send(author, body): submit, then resync on success
    - start()/stop()/set_focus(): adaptive periodic polling
    - refresh_stats(): log totals, refreshed by the timer after new messages
      and at least every stats_interval seconds
    """

    def __init__(
        self,
        client: FeedClient,
        capacity: int = 1200,
        fetch_limit: int = 200,
        poll_interval_active: float = 1.5,
        poll_interval_background: float = 5.0,
        stats_interval: float = 7.0,
        on_messages: Callable[[MergeResult], None] | None = None,
        on_status: Callable[[ConnectionStatus], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        on_stats: Callable[[dict[str, int]], None] | None = None,
    ):
        """Initialize the session.

        Args:
            client: Transport used for every request.
            capacity: Maximum number of messages kept in the local view.
            fetch_limit: Messages requested per poll (the server caps it too).
            poll_interval_active: Seconds between polls while in foreground.
            poll_interval_background: Seconds between polls while in background.
            stats_interval: Seconds between stats refreshes when no new messages arrive.
            on_messages: Called with the MergeResult of every merge that changed the view.
            on_status: Called when the connection status changes.
            on_error: Called with a user-facing message when a send fails.
            on_stats: Called with {"total", "max_id"} after every stats refresh.
        """
        self.client = client
        self.view = LocalView(capacity)
        self.fetch_limit = fetch_limit
        self.poll_interval_active = poll_interval_active
        self.poll_interval_background = poll_interval_background
        self.stats_interval = stats_interval
        self.on_messages = on_messages
        self.on_status = on_status
        self.on_error = on_error
        self.on_stats = on_stats

        self.foreground = True
        self.status = ConnectionStatus.CONNECTING
        self.draft: Draft | None = None
        self.stats: dict[str, int] = {"total": 0, "max_id": 0}

        self._timer: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None
        self._stats_at: float | None = None

    @property
    def cursor(self) -> int:
        return self.view.cursor

    @property
    def messages(self) -> list[FeedMessage]:
        return self.view.messages

    @property
    def poll_interval(self) -> float:
        """Period of the next tick for the current focus state."""
        return self.poll_interval_active if self.foreground else self.poll_interval_background

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is self.status:
            return
        logger.info(f"Connection status: {self.status.value} -> {status.value}")
        self.status = status
        if self.on_status:
            self.on_status(status)

    def _record_failure(self, response: FeedResponse) -> None:
        if response.kind is ErrorKind.NETWORK:
            self._set_status(ConnectionStatus.OFFLINE)
        else:
            self._set_status(ConnectionStatus.SERVER_ERROR)

    async def poll(self, force: bool = False) -> bool:
        """Fetch new messages and merge them into the view.

        A session that has not observed anything yet (cursor 0) always loads
        the most recent window; fetchSince(0) would start from the oldest
        messages instead.

        Args:
            force: Request the most recent window and rebuild the view from it.

        Returns:
            True if the fetch succeeded and was merged.
        """
        force = force or self.view.cursor == 0
        if force:
            response = await self.client.fetch_recent(self.fetch_limit)
        else:
            response = await self.client.fetch_since(self.view.cursor, self.fetch_limit)

        if not response.ok:
            logger.debug(f"Poll failed ({response.kind.value}): {response.error}")
            self._record_failure(response)
            return False

        try:
            batch = [FeedMessage.from_dict(m) for m in response.data.get("messages", [])]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed messages in poll response: {e}")
            self._set_status(ConnectionStatus.SERVER_ERROR)
            return False

        result = self.view.merge(batch, replace=force)
        self._set_status(ConnectionStatus.CONNECTED)
        if result.added or result.evicted or force:
            logger.debug(
                f"Merged poll: added={len(result.added)}, evicted={len(result.evicted)}, "
                f"cursor={self.view.cursor}"
            )
            if self.on_messages:
                self.on_messages(result)
        return True

    async def send(self, author: str | None, body: str) -> bool:
        """Submit a message, then resync so the echo arrives through poll().

        On failure the message is kept in self.draft and the error is passed
        to on_error; the cursor and view are left untouched.

        Returns:
            True if the service accepted the message.
        """
        if not body or not body.strip():
            if self.on_error:
                self.on_error(f"Send failed: {errors.EMPTY_BODY}")
            return False

        response = await self.client.send(author, body.strip())
        if not response.ok:
            self.draft = Draft(author=author, body=body)
            self._record_failure(response)
            logger.warning(f"Send failed: {response.error}")
            if self.on_error:
                self.on_error(f"Send failed: {response.error}")
            return False

        self.draft = None
        logger.debug(f"Sent message id={response.data.get('id')}")
        if await self.poll(force=True):
            await self.refresh_stats()
        return True

    async def retry_send(self) -> bool:
        """Resubmit the preserved draft, if any."""
        if self.draft is None:
            return False
        return await self.send(self.draft.author, self.draft.body)

    async def refresh_stats(self) -> bool:
        """Fetch the log's total and highest id into self.stats.

        A failed stats request is only logged; the connection status follows
        polls and sends.
        """
        self._stats_at = asyncio.get_running_loop().time()
        response = await self.client.stats()
        if not response.ok:
            logger.debug(f"Stats refresh failed ({response.kind.value}): {response.error}")
            return False
        self.stats = {
            "total": int(response.data.get("total", 0)),
            "max_id": int(response.data.get("maxId", 0)),
        }
        if self.on_stats:
            self.on_stats(dict(self.stats))
        return True

    def _stats_due(self) -> bool:
        if self._stats_at is None:
            return True
        return asyncio.get_running_loop().time() - self._stats_at >= self.stats_interval

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Load the most recent window, then arm the periodic poll timer.

        Must be called from a running event loop.
        """
        if self.running:
            return
        self._poll_task = asyncio.ensure_future(self._tick(force=True))
        self._timer = asyncio.create_task(self._run_schedule())
        logger.info(f"Polling started every {self.poll_interval}s")

    async def stop(self) -> None:
        """Cancel the timer and wait for any in-flight poll to settle."""
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None
        if self._poll_task is not None and not self._poll_task.done():
            await self._poll_task
        logger.info("Polling stopped")

    def set_focus(self, foreground: bool) -> None:
        """Switch between the active and background poll intervals.

        The pending sleep is cancelled and the timer re-armed with the new
        period; a poll already in flight is left to complete.
        """
        if foreground == self.foreground:
            return
        self.foreground = foreground
        logger.debug(f"Focus changed: foreground={foreground}, interval={self.poll_interval}s")
        if self.running:
            self._timer.cancel()
            self._timer = asyncio.create_task(self._run_schedule())

    async def _run_schedule(self) -> None:
        while True:
            # Arm the next tick only after the previous poll settles
            if self._poll_task is not None and not self._poll_task.done():
                await asyncio.shield(self._poll_task)
            await asyncio.sleep(self.poll_interval)
            self._poll_task = asyncio.ensure_future(self._tick())

    async def _tick(self, force: bool = False) -> None:
        try:
            cursor = self.view.cursor
            if not await self.poll(force=force):
                return
            if force or self.view.cursor != cursor or self._stats_due():
                await self.refresh_stats()
        except Exception as e:
            logger.error(f"Poll tick error: {e}")
