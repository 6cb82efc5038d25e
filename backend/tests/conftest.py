from __future__ import annotations
import os
import tempfile

# Must be set before listmod.config is imported
os.environ.setdefault("REAPER_ENABLED", "0")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'listmod-test.db')}")

import uuid
from datetime import datetime, timedelta, timezone
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from listmod.db import Base, get_session
from listmod.lists import CLASSIC
from listmod.models.level import Level
from listmod.models.user import User, Role, UserRole, PermissionLevel
import listmod.models.submission  # noqa: F401  register tables
import listmod.models.record  # noqa: F401
import listmod.models.history  # noqa: F401
import listmod.models.notification  # noqa: F401
import listmod.models.toggle  # noqa: F401
import listmod.models.shift  # noqa: F401
from listmod.schemas.submission import SubmissionCreate
from listmod.security import make_access_token

REVIEW_LEVEL = 15
TOGGLE_LEVEL = 60


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'listmod.db'}", connect_args={"timeout": 30})

    # sqlite has no row locks; take the write lock at BEGIN so concurrent
    # transactions serialize instead of deadlocking on upgrade
    @event.listens_for(eng.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


class Seed:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _add(self, *rows):
        async with self.session_factory() as s:
            s.add_all(rows)
            await s.commit()
        return rows[0]

    async def permissions(self):
        await self._add(
            PermissionLevel(permission="submission_review", privilege_level=REVIEW_LEVEL),
            PermissionLevel(permission="submission_toggle", privilege_level=TOGGLE_LEVEL),
            PermissionLevel(permission="shift_manage", privilege_level=TOGGLE_LEVEL),
        )

    async def user(self, *, privilege: int | None = None, ban_level: int = 0, boosted: bool = False) -> User:
        u = User(
            id=uuid.uuid4(),
            username=f"user_{uuid.uuid4().hex[:8]}",
            ban_level=ban_level,
            boosted_until=datetime.now(timezone.utc) + timedelta(days=30) if boosted else None,
        )
        rows = [u]
        if privilege is not None:
            role = Role(name=f"role_{uuid.uuid4().hex[:8]}", privilege_level=privilege)
            await self._add(role)
            rows.append(UserRole(user_id=u.id, role_id=role.id))
        await self._add(*rows)
        return u

    async def reviewer(self) -> User:
        return await self.user(privilege=REVIEW_LEVEL)

    async def level(self, *, list_id: str = CLASSIC.id, position: int = 500, legacy: bool = False, name: str | None = None) -> Level:
        return await self._add(Level(
            id=uuid.uuid4(), list_id=list_id, name=name or f"Level {position}", position=position, legacy=legacy,
        ))


@pytest.fixture
async def seed(session_factory):
    s = Seed(session_factory)
    await s.permissions()
    return s


@pytest.fixture
def payload():
    def _payload(level: Level, **kw) -> SubmissionCreate:
        data = {"level_id": level.id, "video_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"}
        data.update(kw)
        return SubmissionCreate(**data)
    return _payload


@pytest.fixture
def app(session_factory):
    from listmod.main import app as fastapi_app

    async def _session():
        async with session_factory() as s:
            yield s

    fastapi_app.dependency_overrides[get_session] = _session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(str(user.id))}"}


@pytest.fixture
def headers():
    return auth
