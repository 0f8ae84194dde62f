from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.services.enquiries.dedup import FuzzyBucket
from app.services.enquiries.grouping import ClientGroup
from app.services.enquiries.records import RawRecord, claim_state, parse_touchpoint

DataSource = Literal["new", "legacy"]
Scope = Literal["owner-scoped", "unscoped"]


class EnquiryRecordIn(BaseModel):
    id: str | int | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    point_of_contact: str | None = None
    touchpoint_date: datetime | str | None = None
    area_of_work: str | None = None
    source_tag: DataSource = "legacy"

    def to_raw_record(self) -> RawRecord:
        return RawRecord(
            id=str(self.id).strip() if self.id is not None else "",
            email=self.email or "",
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            point_of_contact=self.point_of_contact or "",
            touchpoint_date=parse_touchpoint(self.touchpoint_date),
            area_of_work=self.area_of_work or "",
            source_tag=self.source_tag,
        )


class EnquiryRecordOut(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    point_of_contact: str
    claim_state: str
    touchpoint_date: datetime | None = None
    area_of_work: str
    source_tag: str

    @classmethod
    def from_record(cls, record: RawRecord) -> EnquiryRecordOut:
        return cls(
            id=record.id,
            email=record.email,
            first_name=record.first_name,
            last_name=record.last_name,
            point_of_contact=record.point_of_contact,
            claim_state=claim_state(record.point_of_contact).value,
            touchpoint_date=record.touchpoint_date,
            area_of_work=record.area_of_work,
            source_tag=record.source_tag,
        )


class ClientGroupOut(BaseModel):
    client_key: str
    client_name: str
    client_email: str
    latest_date: datetime | None = None
    areas: list[str] = Field(default_factory=list)
    is_shared_prospect: bool = False
    records: list[EnquiryRecordOut] = Field(default_factory=list)

    @classmethod
    def from_group(cls, group: ClientGroup) -> ClientGroupOut:
        return cls(
            client_key=group.client_key,
            client_name=group.client_name,
            client_email=group.client_email,
            latest_date=group.latest_date,
            areas=list(group.areas),
            is_shared_prospect=group.is_shared_prospect,
            records=[EnquiryRecordOut.from_record(record) for record in group.records],
        )


class FuzzyBucketOut(BaseModel):
    key: str
    winner_id: str | None = None
    member_ids: list[str] = Field(default_factory=list)
    suppressed_count: int = 0

    @classmethod
    def from_bucket(cls, bucket: FuzzyBucket) -> FuzzyBucketOut:
        return cls(
            key=bucket.key,
            winner_id=bucket.winner.id if bucket.winner is not None else None,
            member_ids=[member.id for member in bucket.members],
            suppressed_count=bucket.suppressed_count,
        )


class GroupEnquiriesRequest(BaseModel):
    records: list[EnquiryRecordIn] = Field(default_factory=list)
    scope: Scope | None = None
    viewer: str | None = None


class GroupedEnquiriesResponse(BaseModel):
    scope: Scope | None = None
    groups: list[ClientGroupOut] = Field(default_factory=list)
    buckets: list[FuzzyBucketOut] = Field(default_factory=list)
    dropped_count: int = 0
    suppressed_count: int = 0
    cached: bool = False


class ClaimEnquiryRequest(BaseModel):
    entity_id: str = Field(min_length=1)
    acting_identity: str = Field(min_length=1)
    data_source: DataSource = "legacy"


class ClaimEnquiryResponse(BaseModel):
    success: bool = True
    entity_id: str
    claimed_by: str
    sequence_id: int
    invalidated: int = 0
    operations: list[Any] = Field(default_factory=list)


class EnquiryCreatedResponse(BaseModel):
    id: str
    row_id: str
    sequence_id: int


class EnquiryDeletedResponse(BaseModel):
    id: str
    deleted: int
    sequence_id: int | None = None


class ClaimActivityIn(BaseModel):
    enquiry_id: str = Field(min_length=1)
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    updated_at: datetime | None = None


class ClaimActivityResponse(BaseModel):
    activity_id: str
    enquiry_id: str
