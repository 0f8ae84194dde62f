from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.pg.models import ClaimActivity, Enquiry
from app.services.enquiries.records import RawRecord, from_enquiry_row


def list_raw_records(db: Session, *, limit: int | None = None) -> list[RawRecord]:
    query = select(Enquiry).order_by(Enquiry.touchpoint_date.desc(), Enquiry.row_id)
    if limit is not None:
        query = query.limit(limit)
    return [from_enquiry_row(row) for row in db.scalars(query).all()]


def insert_enquiry(db: Session, record: RawRecord) -> Enquiry:
    row = Enquiry(
        enquiry_id=record.id,
        source_tag=record.source_tag,
        email=record.email or None,
        first_name=record.first_name or None,
        last_name=record.last_name or None,
        point_of_contact=record.point_of_contact or None,
        touchpoint_date=record.touchpoint_date,
        area_of_work=record.area_of_work or None,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_enquiries(db: Session, enquiry_id: str) -> int:
    rows = db.scalars(select(Enquiry).where(Enquiry.enquiry_id == enquiry_id)).all()
    for row in rows:
        db.delete(row)
    db.commit()
    return len(rows)


def record_claim_activity(
    db: Session,
    *,
    enquiry_id: str,
    claimed_by: str | None,
    claimed_at: datetime | None,
    updated_at: datetime,
) -> ClaimActivity:
    activity = ClaimActivity(
        enquiry_id=enquiry_id,
        claimed_by=claimed_by,
        claimed_at=claimed_at,
        updated_at=updated_at,
    )
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity
