from __future__ import annotations
from uuid import UUID
import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from listmod.models.notification import Notification

log = structlog.get_logger()

INFO = "info"
SUCCESS = "success"
FAILURE = "failure"


async def notify(session: AsyncSession, user_id: UUID, message: str, severity: str = INFO) -> None:
    """
    Queue a user-facing message. The row is written in the caller's transaction,
    so a rolled-back transition never leaves a notification behind.
    """
    session.add(Notification(user_id=user_id, content=message, severity=severity))
    log.info("notification", user_id=str(user_id), severity=severity)
