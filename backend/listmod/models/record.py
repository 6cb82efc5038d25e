from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, BigInteger, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from listmod.db import Base


class Record(Base):
    """
    Accepted completion. Written only by the accept transition.
    Placement/ordering on the leaderboard is maintained by the database, not here.
    """
    __tablename__ = "records"

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
    completion_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    user_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)
    reviewer_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("list_id", "submitted_by", "level_id", name="uq_record_once_per_level"),
    )
