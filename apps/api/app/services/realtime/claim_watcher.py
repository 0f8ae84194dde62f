from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from app.db.pg.models import ClaimActivity
from app.db.pg.session import session_scope
from app.services.enquiries.records import as_utc

logger = logging.getLogger(__name__)

CLAIM_ACTIVITY_SOURCE = "claimActivity"


@dataclass(frozen=True)
class ClaimActivityRow:
    entity_id: str
    claimed_by: str
    claimed_at: datetime | None
    updated_at: datetime


@dataclass(frozen=True)
class ClaimChange:
    entity_id: str
    claimed_by: str
    claimed_at: str | None

    @property
    def signature(self) -> str:
        return f"{self.claimed_by}::{self.claimed_at or ''}"


FetchRows = Callable[[datetime], list[ClaimActivityRow]]
OnChange = Callable[[ClaimChange], None]


def fetch_claim_activity(since: datetime, *, limit: int = 200) -> list[ClaimActivityRow]:
    with session_scope() as db:
        rows = db.scalars(
            select(ClaimActivity)
            .where(ClaimActivity.updated_at >= since, ClaimActivity.enquiry_id.is_not(None))
            .order_by(ClaimActivity.updated_at.asc())
            .limit(limit)
        ).all()
        return [
            ClaimActivityRow(
                entity_id=str(row.enquiry_id),
                claimed_by=row.claimed_by or "",
                claimed_at=as_utc(row.claimed_at) if row.claimed_at else None,
                updated_at=as_utc(row.updated_at),
            )
            for row in rows
        ]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClaimWatcher:
    """Polls claim activity written outside this service and reports real changes.

    The loop is sequential (poll, sleep, poll) so a slow store query can never
    overlap the next tick; ``poll_once`` additionally refuses to run while another
    poll is in flight.
    """

    def __init__(
        self,
        fetch_rows: FetchRows,
        *,
        interval_seconds: float = 5.0,
        seed_window_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._fetch_rows = fetch_rows
        self.interval_seconds = interval_seconds
        self.seed_window_seconds = seed_window_seconds
        self._clock = clock
        self._on_change: OnChange | None = None
        self._task: asyncio.Task | None = None
        self._in_flight = False
        self._generation = 0
        self.watermark: datetime | None = None
        self.last_observed: dict[str, str] = {}

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_change: OnChange) -> None:
        if self.running:
            return
        self._on_change = on_change
        self.watermark = self._clock() - timedelta(seconds=self.seed_window_seconds)
        self._task = asyncio.get_running_loop().create_task(self._run(), name="claim-watcher")
        logger.info("claim_watcher_started", extra={"watermark": self.watermark.isoformat()})

    def stop(self) -> asyncio.Task | None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        self._on_change = None
        self.reset()
        if task is not None:
            logger.info("claim_watcher_stopped")
        return task

    def reset(self) -> None:
        # Bumped so a poll already in progress stops touching the cleared state.
        self._generation += 1
        self.watermark = None
        self.last_observed.clear()

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_seconds)

    async def poll_once(self) -> list[ClaimChange]:
        if self._in_flight:
            logger.debug("claim_watcher_poll_skipped_in_flight")
            return []
        self._in_flight = True
        try:
            return await self._poll()
        finally:
            self._in_flight = False

    async def _poll(self) -> list[ClaimChange]:
        generation = self._generation
        since = self.watermark or (self._clock() - timedelta(seconds=self.seed_window_seconds))
        try:
            rows = await asyncio.to_thread(self._fetch_rows, since)
        except Exception:
            logger.exception("claim_watcher_poll_failed", extra={"since": since.isoformat()})
            return []
        if not rows or generation != self._generation:
            return []

        # Advance first so a dispatch failure cannot replay this window forever.
        watermark = max([since, *(as_utc(row.updated_at) for row in rows)])
        self.watermark = watermark

        latest: dict[str, ClaimActivityRow] = {}
        for row in sorted(rows, key=lambda item: as_utc(item.updated_at)):
            latest[row.entity_id] = row

        changes: list[ClaimChange] = []
        for entity_id, row in latest.items():
            if generation != self._generation:
                logger.info("claim_watcher_poll_abandoned", extra={"pending_entity_id": entity_id})
                break
            change = ClaimChange(
                entity_id=entity_id,
                claimed_by=row.claimed_by,
                claimed_at=as_utc(row.claimed_at).isoformat() if row.claimed_at else None,
            )
            if self.last_observed.get(entity_id) == change.signature:
                continue
            self.last_observed[entity_id] = change.signature
            changes.append(change)
            if self._on_change is None:
                continue
            try:
                self._on_change(change)
            except Exception:
                logger.exception("claim_watcher_dispatch_failed", extra={"entity_id": entity_id})

        if changes:
            logger.info(
                "claim_watcher_changes_detected",
                extra={"change_count": len(changes), "row_count": len(rows), "watermark": watermark.isoformat()},
            )
        return changes
