from __future__ import annotations
import enum
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, BigInteger, Boolean, DateTime, ForeignKey, UniqueConstraint, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from listmod.db import Base


class SubmissionStatus(str, enum.Enum):
    PENDING = "Pending"
    CLAIMED = "Claimed"
    UNDER_CONSIDERATION = "UnderConsideration"
    DENIED = "Denied"
    # Terminal: the row is gone once these happen, they only appear in history
    ACCEPTED = "Accepted"
    DELETED = "Deleted"


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    list_id: Mapped[str] = mapped_column(String(16), nullable=False)
    level_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("levels.id", ondelete="CASCADE"), index=True, nullable=False
    )
    submitted_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    mobile: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ldm_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    video_url: Mapped[str] = mapped_column(Text(), nullable=False)
    raw_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    mod_menu: Mapped[str | None] = mapped_column(String(64), nullable=True)
    completion_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # milliseconds

    user_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)
    reviewer_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)
    private_reviewer_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    status: Mapped[str] = mapped_column(String(24), nullable=False, default=SubmissionStatus.PENDING.value)
    # 1 = boosted submitter at creation time, 0 = plain FIFO
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # Terminal submissions are deleted, so every row here is an active one
        UniqueConstraint("list_id", "submitted_by", "level_id", name="uq_submission_active_per_level"),
        Index("ix_submissions_queue", "list_id", "status", "priority", "created_at"),
        CheckConstraint(
            "status IN ('Pending','Claimed','UnderConsideration','Denied')",
            name="ck_submissions_active_status",
        ),
    )
