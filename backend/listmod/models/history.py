from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, BigInteger, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from listmod.db import Base


class SubmissionHistory(Base):
    """
    One row per submission transition. Never updated or deleted here.
    submission_id has no FK: accepted/deleted submissions are removed but their history stays.
    Payload columns are a snapshot of the submission at the time of the transition.
    """
    __tablename__ = "submission_history"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
    list_id: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(24), nullable=False)
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    record_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("records.id", ondelete="SET NULL"), nullable=True
    )

    video_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    raw_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    mobile: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ldm_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mod_menu: Mapped[str | None] = mapped_column(String(64), nullable=True)
    completion_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    user_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)
    reviewer_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
