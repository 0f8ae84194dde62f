from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from app.core.config import get_settings
from app.services.enquiries.records import RawRecord, status_rank
from app.services.identity.client_keys import normalized_contact
from app.services.identity.shared_prospects import normalize_email

logger = logging.getLogger(__name__)


class DedupScope(str, Enum):
    OWNER_SCOPED = "owner-scoped"
    UNSCOPED = "unscoped"


@dataclass(frozen=True)
class RankedMember:
    record: RawRecord
    is_mine: bool
    status_rank: int
    is_newer_source: bool
    timestamp: float

    @property
    def priority(self) -> tuple[int, int, int, float]:
        return (int(self.is_mine), self.status_rank, int(self.is_newer_source), self.timestamp)


@dataclass
class FuzzyBucket:
    key: str
    members: list[RawRecord] = field(default_factory=list)
    winner: RawRecord | None = None
    winner_index: int | None = None
    suppressed_count: int = 0

    @property
    def suppressed(self) -> list[RawRecord]:
        return [member for index, member in enumerate(self.members) if index != self.winner_index]


def day_key(record: RawRecord) -> str:
    if record.touchpoint_date is None:
        return "invalid"
    return record.touchpoint_date.date().isoformat()


def fuzzy_key(record: RawRecord, scope: DedupScope) -> str:
    parts = [normalized_contact(record)]
    if scope == DedupScope.OWNER_SCOPED:
        parts.append(normalize_email(record.point_of_contact))
    parts.append(day_key(record))
    return "|".join(parts)


def rank_member(
    record: RawRecord,
    scope: DedupScope,
    viewer_identity: str | None = None,
    preferred_source_tag: str | None = None,
) -> RankedMember:
    preferred = (preferred_source_tag or get_settings().preferred_source_tag).strip().lower()
    viewer = normalize_email(viewer_identity)
    is_mine = bool(
        scope == DedupScope.OWNER_SCOPED
        and viewer
        and normalize_email(record.point_of_contact) == viewer
    )
    return RankedMember(
        record=record,
        is_mine=is_mine,
        status_rank=status_rank(record.point_of_contact),
        is_newer_source=(record.source_tag or "").strip().lower() == preferred,
        timestamp=record.sort_timestamp.timestamp(),
    )


def resolve_buckets(
    records: Iterable[RawRecord],
    scope: DedupScope | str,
    viewer_identity: str | None = None,
) -> list[FuzzyBucket]:
    """Bucket one view's records and pick a single winner per bucket.

    Precedence is ownership, then claim status, then the newer source system, then
    recency. Members are never removed from ``members``; only the view hides them.
    Buckets come back in order of first appearance. Records without any usable
    contact belong to no bucket; callers count them as dropped.
    """
    resolved_scope = DedupScope(scope)
    preferred = get_settings().preferred_source_tag
    buckets: dict[str, FuzzyBucket] = {}
    best: dict[str, tuple[int, RankedMember]] = {}
    skipped = 0

    for record in records:
        if not normalized_contact(record):
            skipped += 1
            continue
        key = fuzzy_key(record, resolved_scope)
        ranked = rank_member(record, resolved_scope, viewer_identity, preferred)
        bucket = buckets.setdefault(key, FuzzyBucket(key=key))
        bucket.members.append(record)
        current = best.get(key)
        # Strictly greater keeps the first-seen member on exact ties.
        if current is None or ranked.priority > current[1].priority:
            best[key] = (len(bucket.members) - 1, ranked)

    if skipped:
        logger.info("enquiry_dedup_skipped_unidentifiable", extra={"skipped_count": skipped, "scope": resolved_scope.value})
    for key, bucket in buckets.items():
        bucket.winner_index, ranked = best[key]
        bucket.winner = ranked.record
        bucket.suppressed_count = len(bucket.members) - 1
    return list(buckets.values())


def visible_records(buckets: list[FuzzyBucket]) -> list[RawRecord]:
    return [bucket.winner for bucket in buckets if bucket.winner is not None]
