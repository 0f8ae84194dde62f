from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.pg.base import Base


class Enquiry(Base):
    __tablename__ = "enquiries"

    row_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Not unique: legacy sources reuse ids across distinct prospects.
    enquiry_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source_tag: Mapped[str] = mapped_column(String(32), nullable=False, default="legacy")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    point_of_contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    touchpoint_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    area_of_work: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ClaimActivity(Base):
    __tablename__ = "claim_activity"

    activity_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    enquiry_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    claimed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


Index("ix_enquiries_enquiry_id", Enquiry.enquiry_id)
Index("ix_enquiries_touchpoint_date", Enquiry.touchpoint_date)
Index("ix_claim_activity_updated_at", ClaimActivity.updated_at)
