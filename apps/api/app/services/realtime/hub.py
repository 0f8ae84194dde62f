"""In-process broadcast hub for live enquiry change notifications.

Delivery is best-effort: there is no replay buffer, so a client that reconnects
only sees events raised after it registered again.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from functools import partial

from app.core.config import Settings
from app.services.realtime.claim_watcher import CLAIM_ACTIVITY_SOURCE, ClaimChange, ClaimWatcher, fetch_claim_activity
from app.services.realtime.connections import ConnectionHandle
from app.services.realtime.events import HEARTBEAT_FRAME, ChangeEvent, ChangeType, change_frame, connected_frame, utc_now_iso

logger = logging.getLogger(__name__)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class ClaimsHub:
    def __init__(
        self,
        *,
        heartbeat_interval_seconds: float = 30.0,
        watcher: ClaimWatcher | None = None,
    ) -> None:
        self.heartbeat_interval_seconds = heartbeat_interval_seconds
        self.watcher = watcher
        self._connections: set[ConnectionHandle] = set()
        self._heartbeats: dict[ConnectionHandle, asyncio.Task] = {}
        self._sequence = 0

    @property
    def live_count(self) -> int:
        return len(self._connections)

    @property
    def last_sequence_id(self) -> int:
        return self._sequence

    def is_registered(self, connection: ConnectionHandle) -> bool:
        return connection in self._connections

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def register(self, connection: ConnectionHandle) -> bool:
        if connection in self._connections:
            return True
        was_idle = not self._connections
        self._connections.add(connection)
        try:
            connection.write(connected_frame(self._next_sequence()))
        except Exception:
            logger.warning("claims_hub_ack_write_failed", extra={"connection_id": connection.connection_id})
            self.unregister(connection)
            return False

        self._heartbeats[connection] = asyncio.get_running_loop().create_task(
            self._heartbeat(connection),
            name=f"claims-hub-heartbeat-{connection.connection_id}",
        )
        logger.info(
            "claims_hub_connection_registered",
            extra={"connection_id": connection.connection_id, "live_count": self.live_count},
        )
        if was_idle and self.watcher is not None:
            self.watcher.start(self._on_claim_change)
        return True

    def unregister(self, connection: ConnectionHandle) -> None:
        heartbeat = self._heartbeats.pop(connection, None)
        if heartbeat is not None and heartbeat is not _current_task():
            heartbeat.cancel()
        if connection not in self._connections:
            return
        self._connections.discard(connection)
        connection.close()
        logger.info(
            "claims_hub_connection_unregistered",
            extra={"connection_id": connection.connection_id, "live_count": self.live_count},
        )
        if not self._connections and self.watcher is not None:
            self.watcher.stop()

    def broadcast(
        self,
        change_type: ChangeType,
        entity_id: str,
        *,
        claimed_by: str | None = None,
        claimed_at: str | None = None,
        source: str | None = None,
    ) -> ChangeEvent:
        event = ChangeEvent(
            sequence_id=self._next_sequence(),
            change_type=change_type,
            entity_id=str(entity_id),
            timestamp=utc_now_iso(),
            claimed_by=claimed_by,
            claimed_at=claimed_at,
            source=source,
        )
        frame = change_frame(event)
        for connection in list(self._connections):
            try:
                connection.write(frame)
            except Exception:
                logger.warning(
                    "claims_hub_write_failed",
                    extra={"connection_id": connection.connection_id, "sequence_id": event.sequence_id},
                )
                self.unregister(connection)
        return event

    def _on_claim_change(self, change: ClaimChange) -> None:
        self.broadcast(
            "claim",
            change.entity_id,
            claimed_by=change.claimed_by,
            claimed_at=change.claimed_at,
            source=CLAIM_ACTIVITY_SOURCE,
        )

    async def _heartbeat(self, connection: ConnectionHandle) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval_seconds)
            try:
                connection.write(HEARTBEAT_FRAME)
            except Exception:
                logger.warning("claims_hub_heartbeat_failed", extra={"connection_id": connection.connection_id})
                self.unregister(connection)
                return

    async def close(self) -> None:
        tasks = list(self._heartbeats.values())
        if self.watcher is not None:
            watcher_task = self.watcher.stop()
            if watcher_task is not None:
                tasks.append(watcher_task)
        for connection in list(self._connections):
            self.unregister(connection)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task


def build_claims_hub(settings: Settings) -> ClaimsHub:
    watcher = None
    if settings.claim_watcher_enabled:
        watcher = ClaimWatcher(
            partial(fetch_claim_activity, limit=settings.claim_watcher_batch_limit),
            interval_seconds=settings.claim_watcher_interval_seconds,
            seed_window_seconds=settings.claim_watcher_seed_window_seconds,
        )
    return ClaimsHub(
        heartbeat_interval_seconds=settings.stream_heartbeat_interval_seconds,
        watcher=watcher,
    )
