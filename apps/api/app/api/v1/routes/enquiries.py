from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_claims_hub, get_db, get_settings_dep
from app.api.v1.schemas import (
    ClaimActivityIn,
    ClaimActivityResponse,
    ClientGroupOut,
    EnquiryCreatedResponse,
    EnquiryDeletedResponse,
    EnquiryRecordIn,
    FuzzyBucketOut,
    GroupedEnquiriesResponse,
    GroupEnquiriesRequest,
    Scope,
)
from app.core.security import hub_secret_header, verify_hub_secret
from app.services.cache.aggregate_cache import enquiries_view_key, enquiries_view_patterns, get_cached, invalidate, set_cached
from app.services.enquiries.dedup import resolve_buckets, visible_records
from app.services.enquiries.grouping import group_records
from app.services.enquiries.records import RawRecord
from app.services.enquiries.store import delete_enquiries, insert_enquiry, list_raw_records, record_claim_activity
from app.services.realtime.hub import ClaimsHub

router = APIRouter(prefix="/enquiries", tags=["enquiries"])
logger = logging.getLogger(__name__)


def build_grouped_view(
    records: list[RawRecord],
    scope: Scope | None = None,
    viewer: str | None = None,
) -> GroupedEnquiriesResponse:
    buckets = []
    unbucketed = 0
    if scope is not None:
        buckets = resolve_buckets(records, scope, viewer)
        # Keyless records never reach a bucket; report them with the grouping drops.
        unbucketed = len(records) - sum(len(bucket.members) for bucket in buckets)
        records = visible_records(buckets)
    result = group_records(records)
    return GroupedEnquiriesResponse(
        scope=scope,
        groups=[ClientGroupOut.from_group(group) for group in result.groups],
        buckets=[FuzzyBucketOut.from_bucket(bucket) for bucket in buckets],
        dropped_count=result.dropped + unbucketed,
        suppressed_count=sum(bucket.suppressed_count for bucket in buckets),
    )


def _validate_scope(scope: Scope | None, viewer: str | None) -> None:
    if scope == "owner-scoped" and not (viewer or "").strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="viewer is required for owner-scoped views",
        )


async def _invalidate_views() -> int:
    try:
        return await asyncio.to_thread(invalidate, enquiries_view_patterns())
    except Exception:
        logger.exception("enquiries_cache_invalidation_failed")
        return 0


@router.post("/group", response_model=GroupedEnquiriesResponse)
def group_enquiries(payload: GroupEnquiriesRequest) -> GroupedEnquiriesResponse:
    _validate_scope(payload.scope, payload.viewer)
    records = [item.to_raw_record() for item in payload.records]
    return build_grouped_view(records, payload.scope, payload.viewer)


@router.get("/grouped", response_model=GroupedEnquiriesResponse)
async def grouped_enquiries(
    scope: Scope | None = None,
    viewer: str | None = None,
    db: Session = Depends(get_db),
) -> GroupedEnquiriesResponse:
    _validate_scope(scope, viewer)
    key = enquiries_view_key("grouped", scope or "all", (viewer or "").strip().lower() if scope == "owner-scoped" else "")
    cached = await asyncio.to_thread(get_cached, key)
    if cached is not None:
        response = GroupedEnquiriesResponse.model_validate(cached)
        response.cached = True
        return response

    records = await asyncio.to_thread(list_raw_records, db)
    response = build_grouped_view(records, scope, viewer)
    await asyncio.to_thread(set_cached, key, response.model_dump(mode="json"))
    return response


@router.post("", response_model=EnquiryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_enquiry(
    payload: EnquiryRecordIn,
    db: Session = Depends(get_db),
    settings=Depends(get_settings_dep),
    hub_secret: str | None = Depends(hub_secret_header),
    hub: ClaimsHub = Depends(get_claims_hub),
) -> EnquiryCreatedResponse:
    verify_hub_secret(settings, hub_secret)
    record = payload.to_raw_record()
    if not record.id:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="id is required")
    if record.touchpoint_date is None:
        record = replace(record, touchpoint_date=datetime.now(timezone.utc))

    row = await asyncio.to_thread(insert_enquiry, db, record)
    await _invalidate_views()
    event = hub.broadcast("created", record.id, source="hub")
    return EnquiryCreatedResponse(id=record.id, row_id=row.row_id, sequence_id=event.sequence_id)


@router.delete("/{enquiry_id}", response_model=EnquiryDeletedResponse)
async def delete_enquiry(
    enquiry_id: str,
    db: Session = Depends(get_db),
    settings=Depends(get_settings_dep),
    hub_secret: str | None = Depends(hub_secret_header),
    hub: ClaimsHub = Depends(get_claims_hub),
) -> EnquiryDeletedResponse:
    verify_hub_secret(settings, hub_secret)
    deleted = await asyncio.to_thread(delete_enquiries, db, enquiry_id)
    if deleted == 0:
        return EnquiryDeletedResponse(id=enquiry_id, deleted=0)

    await _invalidate_views()
    event = hub.broadcast("deleted", enquiry_id, source="hub")
    return EnquiryDeletedResponse(id=enquiry_id, deleted=deleted, sequence_id=event.sequence_id)


@router.post("/claim-activity", response_model=ClaimActivityResponse)
def report_claim_activity(
    payload: ClaimActivityIn,
    db: Session = Depends(get_db),
    settings=Depends(get_settings_dep),
    hub_secret: str | None = Depends(hub_secret_header),
) -> ClaimActivityResponse:
    verify_hub_secret(settings, hub_secret)
    activity = record_claim_activity(
        db,
        enquiry_id=payload.enquiry_id.strip(),
        claimed_by=(payload.claimed_by or "").strip() or None,
        claimed_at=payload.claimed_at,
        updated_at=payload.updated_at or datetime.now(timezone.utc),
    )
    return ClaimActivityResponse(activity_id=activity.activity_id, enquiry_id=activity.enquiry_id or "")
