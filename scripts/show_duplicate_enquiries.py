from __future__ import annotations

from app.core.logging import configure_logging
from app.db.pg.session import session_scope
from app.services.enquiries.dedup import DedupScope, resolve_buckets
from app.services.enquiries.grouping import group_records, separate_repeated
from app.services.enquiries.store import list_raw_records


def main() -> None:
    configure_logging()
    with session_scope() as db:
        records = list_raw_records(db)

    if not records:
        print("No enquiries found")
        return

    result = group_records(records)
    singles, repeated = separate_repeated(result.groups)
    print(f"{len(records)} enquiries -> {len(result.groups)} clients ({len(singles)} single, {len(repeated)} repeated)")
    if result.dropped:
        print(f"Dropped {result.dropped} unidentifiable enquiries")

    for group in repeated:
        latest = group.latest_date.date().isoformat() if group.latest_date else "unknown"
        print(f"\n{group.client_name} <{group.client_email}> key={group.client_key} latest={latest}")
        print(f"  areas: {', '.join(group.areas) or '-'}")
        for record in group.records:
            day = record.touchpoint_date.date().isoformat() if record.touchpoint_date else "unknown"
            print(f"  - {record.id} {day} poc={record.point_of_contact or '-'} source={record.source_tag}")

    buckets = resolve_buckets(records, DedupScope.UNSCOPED)
    suppressed = sum(bucket.suppressed_count for bucket in buckets)
    print(f"\nUnscoped view: {len(buckets)} visible, {suppressed} suppressed")


if __name__ == "__main__":
    main()
