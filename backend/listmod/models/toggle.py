from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from listmod.db import Base

class SubmissionsEnabled(Base):
    """
    Append-only log of open/close toggles per list.
    The newest row wins; no rows means submissions are open.
    """
    __tablename__ = "submissions_enabled"
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    list_id: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    moderator_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
