from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from listmod.models.history import SubmissionHistory
from listmod.models.submission import Submission, SubmissionStatus


def write_history(
    session: AsyncSession,
    s: Submission,
    status: SubmissionStatus,
    *,
    reviewer_id: UUID | None = None,
    reviewer_notes: str | None = None,
    record_id: UUID | None = None,
    at: datetime | None = None,
) -> SubmissionHistory:
    """Append one audit row for a transition of `s`. Must be called inside the transition's transaction."""
    entry = SubmissionHistory(
        submission_id=s.id,
        list_id=s.list_id,
        status=status.value,
        reviewer_id=reviewer_id,
        record_id=record_id,
        video_url=s.video_url,
        raw_url=s.raw_url,
        mobile=s.mobile,
        ldm_id=s.ldm_id,
        mod_menu=s.mod_menu,
        completion_time=s.completion_time,
        user_notes=s.user_notes,
        reviewer_notes=reviewer_notes,
        timestamp=at or datetime.now(dt_tz.utc),
    )
    session.add(entry)
    return entry


async def submission_history(session: AsyncSession, submission_id: UUID) -> list[SubmissionHistory]:
    """All entries for a submission, newest first. Works after the submission row is gone."""
    return (await session.execute(
        select(SubmissionHistory)
        .where(SubmissionHistory.submission_id == submission_id)
        .order_by(SubmissionHistory.timestamp.desc(), SubmissionHistory.id)
    )).scalars().all()
