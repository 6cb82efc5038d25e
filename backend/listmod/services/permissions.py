from __future__ import annotations
import enum
from datetime import datetime, timezone as dt_tz
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from listmod.config import settings
from listmod.errors import AuthorizationError
from listmod.models.user import User, Role, UserRole, PermissionLevel

# Roles at or above this level pass every permission check
SUPERUSER_LEVEL = 100


class Permission(str, enum.Enum):
    SUBMISSION_REVIEW = "submission_review"
    SUBMISSION_TOGGLE = "submission_toggle"
    SHIFT_MANAGE = "shift_manage"


async def privilege_level(session: AsyncSession, user_id: UUID) -> int:
    level = await session.scalar(
        select(func.max(Role.privilege_level))
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
    )
    return int(level or 0)


async def has_permission(session: AsyncSession, user_id: UUID, permission: Permission) -> bool:
    level = await privilege_level(session, user_id)
    if level >= SUPERUSER_LEVEL:
        return True
    required = await session.scalar(
        select(PermissionLevel.privilege_level).where(PermissionLevel.permission == permission.value)
    )
    # Unknown permission names are never granted
    if required is None:
        return False
    return int(required) <= level


async def require_permission(session: AsyncSession, user_id: UUID, permission: Permission) -> None:
    if not await has_permission(session, user_id, permission):
        raise AuthorizationError("You do not have permission to do this")


async def ban_level(session: AsyncSession, user_id: UUID) -> int:
    level = await session.scalar(select(User.ban_level).where(User.id == user_id))
    return int(level or 0)


async def ensure_not_banned(session: AsyncSession, user_id: UUID) -> None:
    if await ban_level(session, user_id) >= settings.submission_ban_level:
        raise AuthorizationError("You have been banned from submitting records.")


async def priority_tier(session: AsyncSession, user_id: UUID) -> int:
    """1 while the user's boost is active, else 0. Evaluated once, when a submission is created."""
    now = datetime.now(dt_tz.utc)
    boosted = await session.scalar(
        select(func.count()).select_from(User).where(User.id == user_id, User.boosted_until > now)
    )
    return 1 if boosted else 0
