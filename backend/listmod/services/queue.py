from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone as dt_tz, timedelta
from uuid import UUID
import structlog
from sqlalchemy import select, update, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from listmod.db import unit_of_work
from listmod.errors import NotFoundError
from listmod.lists import ListConfig
from listmod.models.submission import Submission, SubmissionStatus
from listmod.services.audit import write_history
from listmod.services.permissions import Permission, require_permission

log = structlog.get_logger()

PENDING = SubmissionStatus.PENDING.value
CLAIMED = SubmissionStatus.CLAIMED.value


def queue_order():
    """Claim order: higher priority tier first, then oldest first."""
    return (Submission.priority.desc(), Submission.created_at.asc(), Submission.id.asc())


async def claim_highest_priority(session: AsyncSession, lst: ListConfig, reviewer_id: UUID) -> Submission:
    """
    Atomically hand the best pending submission of `lst` to `reviewer_id`.

    Selection and update are one statement: the candidate subquery locks its row
    with SKIP LOCKED (PostgreSQL), and the outer UPDATE re-checks status = Pending,
    so two concurrent callers can never both win the same row.
    Reviewers never get their own submissions.
    """
    await require_permission(session, reviewer_id, Permission.SUBMISSION_REVIEW)
    # permission lookup is a read; release it before taking write locks
    await session.commit()

    async with unit_of_work(session):
        now = datetime.now(dt_tz.utc)
        candidate = (
            select(Submission.id)
            .where(
                Submission.list_id == lst.id,
                Submission.status == PENDING,
                Submission.submitted_by != reviewer_id,
            )
            .order_by(*queue_order())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        claimed = (await session.execute(
            update(Submission)
            .where(Submission.id == candidate, Submission.status == PENDING)
            .values(status=CLAIMED, reviewer_id=reviewer_id, updated_at=now)
            .returning(Submission)
            .execution_options(synchronize_session=False, populate_existing=True)
        )).scalars().first()

        if claimed is None:
            raise NotFoundError("There are no pending submissions to claim")

        write_history(session, claimed, SubmissionStatus.CLAIMED, reviewer_id=reviewer_id, at=now)

    log.info("submission_claimed", list_id=lst.id, submission_id=str(claimed.id), reviewer_id=str(reviewer_id), priority=claimed.priority)
    return claimed


async def pending_count(session: AsyncSession, lst: ListConfig) -> int:
    total = await session.scalar(
        select(func.count()).select_from(Submission)
        .where(Submission.list_id == lst.id, Submission.status == PENDING)
    )
    return int(total or 0)


async def queue_position(session: AsyncSession, lst: ListConfig, submission_id: UUID) -> tuple[int, int]:
    """
    1-based position of a pending submission in the claim order, and the total pending.
    Raises NotFoundError unless the submission exists and is Pending.
    """
    target = (await session.execute(
        select(Submission.priority, Submission.created_at, Submission.id)
        .where(Submission.id == submission_id, Submission.list_id == lst.id, Submission.status == PENDING)
    )).first()
    if target is None:
        raise NotFoundError("This submission is not in the queue")
    priority, created_at, sid = target

    ahead = await session.scalar(
        select(func.count()).select_from(Submission)
        .where(
            Submission.list_id == lst.id,
            Submission.status == PENDING,
            or_(
                Submission.priority > priority,
                and_(Submission.priority == priority, Submission.created_at < created_at),
                and_(Submission.priority == priority, Submission.created_at == created_at, Submission.id < sid),
            ),
        )
    )
    return int(ahead or 0) + 1, await pending_count(session, lst)


@dataclass(frozen=True)
class ReclaimedClaim:
    submission_id: UUID
    list_id: str
    reviewer_id: UUID | None


async def reap_stale_claims(session: AsyncSession, timeout: timedelta) -> list[ReclaimedClaim]:
    """
    Send every claim older than `timeout` (all lists) back to Pending and clear its reviewer.
    One bulk statement, no per-row history. updated_at is left alone, so a second
    run right after finds nothing: those rows are no longer Claimed.
    """
    cutoff = datetime.now(dt_tz.utc) - timeout
    async with unit_of_work(session):
        stale = (await session.execute(
            select(Submission.id, Submission.list_id, Submission.reviewer_id)
            .where(Submission.status == CLAIMED, Submission.updated_at < cutoff)
            .with_for_update(skip_locked=True)
        )).all()
        if not stale:
            return []
        ids = [row.id for row in stale]
        await session.execute(
            update(Submission)
            .where(Submission.id.in_(ids), Submission.status == CLAIMED)
            .values(status=PENDING, reviewer_id=None)
            .execution_options(synchronize_session=False)
        )
    return [ReclaimedClaim(row.id, row.list_id, row.reviewer_id) for row in stale]
