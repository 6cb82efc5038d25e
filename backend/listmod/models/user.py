from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from listmod.db import Base

class User(Base):
    __tablename__ = "users"
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    global_name: Mapped[str | None] = mapped_column(String(64))
    # 0 = none, 1 = warned, 2+ = blocked from submitting (see settings.submission_ban_level)
    ban_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Supporter boost; submissions made while active jump the queue
    boosted_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

class Role(Base):
    __tablename__ = "roles"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    privilege_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

class UserRole(Base):
    __tablename__ = "user_roles"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_role_once"),
    )

class PermissionLevel(Base):
    """Minimum role privilege level required for a named permission."""
    __tablename__ = "permissions"
    permission: Mapped[str] = mapped_column(String(64), primary_key=True)
    privilege_level: Mapped[int] = mapped_column(Integer, nullable=False)
