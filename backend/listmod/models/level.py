from __future__ import annotations
import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean
from sqlalchemy.dialects.postgresql import UUID
from listmod.db import Base

class Level(Base):
    __tablename__ = "levels"
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    list_id: Mapped[str] = mapped_column(String(16), index=True, nullable=False)  # aredl | arepl
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    legacy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
