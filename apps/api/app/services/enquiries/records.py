from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum

from app.core.config import get_settings
from app.db.pg.models import Enquiry
from app.services.identity.shared_prospects import is_unclaimed_point_of_contact, normalize_email

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ClaimState(str, Enum):
    UNCLAIMED = "Unclaimed"
    TRIAGED = "Triaged"
    CLAIMED = "Claimed"


_STATUS_RANK = {
    ClaimState.UNCLAIMED: 0,
    ClaimState.TRIAGED: 1,
    ClaimState.CLAIMED: 2,
}


@dataclass(frozen=True)
class RawRecord:
    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    point_of_contact: str = ""
    touchpoint_date: datetime | None = None
    area_of_work: str = ""
    source_tag: str = "legacy"

    @property
    def sort_timestamp(self) -> datetime:
        return self.touchpoint_date or _EPOCH


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_touchpoint(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def claim_state(point_of_contact: str | None) -> ClaimState:
    if is_unclaimed_point_of_contact(point_of_contact):
        return ClaimState.UNCLAIMED
    marker = get_settings().triage_marker.strip().lower()
    if marker and marker in normalize_email(point_of_contact):
        return ClaimState.TRIAGED
    return ClaimState.CLAIMED


def status_rank(point_of_contact: str | None) -> int:
    return _STATUS_RANK[claim_state(point_of_contact)]


def from_enquiry_row(row: Enquiry) -> RawRecord:
    return RawRecord(
        id=str(row.enquiry_id or "").strip(),
        email=row.email or "",
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        point_of_contact=row.point_of_contact or "",
        touchpoint_date=parse_touchpoint(row.touchpoint_date),
        area_of_work=row.area_of_work or "",
        source_tag=row.source_tag or "legacy",
    )
