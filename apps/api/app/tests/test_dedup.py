from __future__ import annotations

from datetime import datetime, timezone

from app.services.enquiries.dedup import DedupScope, fuzzy_key, resolve_buckets, visible_records
from app.services.enquiries.records import RawRecord


def _record(record_id: str, poc: str = "", *, hour: int = 9, source: str = "legacy", day: int = 14) -> RawRecord:
    return RawRecord(
        id=record_id,
        email="c@x.com",
        point_of_contact=poc,
        touchpoint_date=datetime(2024, 3, day, hour, tzinfo=timezone.utc),
        source_tag=source,
    )


def test_claimed_beats_triaged_beats_unclaimed() -> None:
    records = [
        _record("1", "", hour=9),
        _record("2", "triage-bot@x.com", hour=10),
        _record("3", "jsmith@helix.example", hour=8),
    ]

    buckets = resolve_buckets(records, DedupScope.UNSCOPED)

    assert len(buckets) == 1
    assert buckets[0].winner is not None
    assert buckets[0].winner.id == "3"
    assert buckets[0].suppressed_count == 2
    assert [record.id for record in buckets[0].suppressed] == ["1", "2"]
    assert [record.id for record in visible_records(buckets)] == ["3"]


def test_owner_scope_splits_by_point_of_contact() -> None:
    records = [_record("1", "a@helix.example"), _record("2", "b@helix.example")]

    assert len(resolve_buckets(records, DedupScope.OWNER_SCOPED, "a@helix.example")) == 2
    assert len(resolve_buckets(records, DedupScope.UNSCOPED)) == 1


def test_key_uses_calendar_day_and_marks_missing_dates() -> None:
    dated = _record("1", day=14)
    undated = RawRecord(id="2", email="c@x.com")

    assert fuzzy_key(dated, DedupScope.UNSCOPED) == "c@x.com|2024-03-14"
    assert fuzzy_key(dated, DedupScope.OWNER_SCOPED) == "c@x.com||2024-03-14"
    assert fuzzy_key(undated, DedupScope.UNSCOPED) == "c@x.com|invalid"
    assert len(resolve_buckets([_record("1", day=14), _record("2", day=15)], "unscoped")) == 2


def test_claimed_record_beats_triaged_record() -> None:
    records = [
        _record("1", "other@helix.example", hour=8),
        _record("2", "triage@helix.example", hour=12, source="new"),
    ]

    buckets = resolve_buckets(records, DedupScope.UNSCOPED)
    assert buckets[0].winner.id == "1"


def test_owner_scoped_bucket_falls_through_to_source_and_recency() -> None:
    mine = [_record("1", "me@helix.example", hour=8), _record("2", "me@helix.example", hour=12, source="new")]

    owner_buckets = resolve_buckets(mine, DedupScope.OWNER_SCOPED, " ME@helix.example ")

    assert len(owner_buckets) == 1
    assert owner_buckets[0].winner.id == "2"


def test_newer_source_beats_recency_when_status_ties() -> None:
    records = [
        _record("1", "jsmith@helix.example", hour=17, source="legacy"),
        _record("2", "jsmith@helix.example", hour=9, source="new"),
    ]

    buckets = resolve_buckets(records, DedupScope.UNSCOPED)

    assert buckets[0].winner.id == "2"


def test_exact_ties_keep_the_first_seen_record() -> None:
    records = [_record("1", hour=9), _record("2", hour=9)]

    buckets = resolve_buckets(records, DedupScope.UNSCOPED)

    assert buckets[0].winner.id == "1"


def test_adding_a_lower_ranked_member_never_changes_the_winner() -> None:
    records = [_record("1", "jsmith@helix.example", hour=9)]
    before = resolve_buckets(records, DedupScope.UNSCOPED)[0].winner

    after = resolve_buckets([*records, _record("2", "", hour=23)], DedupScope.UNSCOPED)[0]

    assert after.winner is before
    assert after.suppressed_count == 1
    assert len(after.members) == 2


def test_records_without_a_contact_join_no_bucket() -> None:
    keyless = [
        RawRecord(id="", touchpoint_date=datetime(2024, 3, 14, hour, tzinfo=timezone.utc)) for hour in (9, 10, 11)
    ]

    buckets = resolve_buckets([*keyless, _record("1")], DedupScope.UNSCOPED)

    assert [bucket.key for bucket in buckets] == ["c@x.com|2024-03-14"]
    assert buckets[0].suppressed_count == 0


def test_repeated_record_object_is_suppressed_once() -> None:
    record = _record("1", hour=9)

    bucket = resolve_buckets([record, record], DedupScope.UNSCOPED)[0]

    assert bucket.winner_index == 0
    assert bucket.suppressed_count == 1
    assert bucket.suppressed == [record]
