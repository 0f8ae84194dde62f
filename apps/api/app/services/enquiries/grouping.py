from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from app.services.enquiries.records import RawRecord
from app.services.identity.client_keys import resolve_client_identity

logger = logging.getLogger(__name__)


@dataclass
class ClientGroup:
    client_key: str
    client_name: str
    client_email: str
    records: list[RawRecord] = field(default_factory=list)
    latest_date: datetime | None = None
    areas: list[str] = field(default_factory=list)
    is_shared_prospect: bool = False


@dataclass
class GroupingResult:
    groups: list[ClientGroup]
    dropped: int = 0
    dropped_ids: list[str] = field(default_factory=list)


def _is_newer(candidate: datetime | None, current: datetime | None) -> bool:
    if candidate is None:
        return False
    if current is None:
        return True
    return candidate > current


def _sort_key(value: datetime | None) -> tuple[int, float]:
    # Missing dates sort after every dated entry when ordering newest-first.
    if value is None:
        return (0, 0.0)
    return (1, value.timestamp())


def group_records(records: Iterable[RawRecord]) -> GroupingResult:
    groups: dict[str, ClientGroup] = {}
    dropped_ids: list[str] = []

    for record in records:
        identity = resolve_client_identity(record)
        if identity is None:
            dropped_ids.append(record.id)
            continue

        area = (record.area_of_work or "").strip()
        group = groups.get(identity.key)
        if group is None:
            groups[identity.key] = ClientGroup(
                client_key=identity.key,
                client_name=identity.display_name,
                client_email=identity.display_email,
                records=[record],
                latest_date=record.touchpoint_date,
                areas=[area] if area else [],
                is_shared_prospect=identity.is_shared_prospect,
            )
            continue

        group.records.append(record)
        if _is_newer(record.touchpoint_date, group.latest_date):
            group.latest_date = record.touchpoint_date
            group.client_name = identity.display_name
            if identity.display_email:
                group.client_email = identity.display_email
        if area and area not in group.areas:
            group.areas.append(area)
        group.is_shared_prospect = group.is_shared_prospect or identity.is_shared_prospect

    ordered = list(groups.values())
    for group in ordered:
        group.records.sort(key=lambda item: _sort_key(item.touchpoint_date), reverse=True)
    ordered.sort(key=lambda item: _sort_key(item.latest_date), reverse=True)

    if dropped_ids:
        logger.info(
            "enquiry_grouping_dropped_unidentifiable",
            extra={"dropped_count": len(dropped_ids), "dropped_ids_sample": dropped_ids[:10]},
        )
    return GroupingResult(groups=ordered, dropped=len(dropped_ids), dropped_ids=dropped_ids)


def separate_repeated(groups: list[ClientGroup]) -> tuple[list[RawRecord], list[ClientGroup]]:
    singles: list[RawRecord] = []
    repeated: list[ClientGroup] = []
    for group in groups:
        if len(group.records) == 1:
            singles.append(group.records[0])
        else:
            repeated.append(group)
    return singles, repeated


def mixed_display(groups: list[ClientGroup]) -> list[RawRecord | ClientGroup]:
    """Unwrap single-record groups, except shared prospects which always render as groups."""
    display: list[RawRecord | ClientGroup] = []
    for group in groups:
        if len(group.records) == 1 and not group.is_shared_prospect:
            display.append(group.records[0])
        else:
            display.append(group)
    return display
