from __future__ import annotations
from fastapi import APIRouter, Depends, Query, Response
from typing import Literal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID

from listmod.db import get_session, unit_of_work
from listmod.auth_deps import get_current_user
from listmod.errors import AuthorizationError
from listmod.lists import ListConfig, get_list
from listmod.models.submission import Submission
from listmod.schemas.submission import (
    SubmissionCreate, SubmissionPatch, SubmissionPublic, SubmissionReviewerView, RecordPublic,
    HistoryEntryPublic, QueuePosition, QueueSummary, ReviewerNotes, SubmissionsToggle, SubmissionsStatusPublic,
)
from listmod.services import pipeline
from listmod.services.audit import submission_history
from listmod.services.permissions import Permission, has_permission, require_permission
from listmod.services.queue import claim_highest_priority, pending_count, queue_order, queue_position
from listmod.services.toggles import set_submissions_enabled, submissions_enabled

router = APIRouter(prefix="/{list_id}/submissions", tags=["submissions"])

StatusFilter = Literal["Pending", "Claimed", "UnderConsideration", "Denied", "all"]


def _list(list_id: str) -> ListConfig:
    return get_list(list_id)


def _view(s: Submission, reviewer: bool) -> SubmissionReviewerView:
    view = SubmissionReviewerView.model_validate(s)
    # private notes never leave the reviewer side
    if not reviewer:
        view.private_reviewer_notes = None
    return view


async def _visible(session: AsyncSession, lst: ListConfig, submission_id: UUID, user) -> tuple[Submission, bool]:
    s = await pipeline.get_submission(session, lst, submission_id)
    reviewer = await has_permission(session, user.id, Permission.SUBMISSION_REVIEW)
    if not reviewer and s.submitted_by != user.id:
        raise AuthorizationError("You can only view your own submissions.")
    return s, reviewer


# ---- list-level ----

@router.get("/status", response_model=SubmissionsStatusPublic)
async def get_status(lst: ListConfig = Depends(_list), session: AsyncSession = Depends(get_session)):
    return SubmissionsStatusPublic(list_id=lst.id, enabled=await submissions_enabled(session, lst))


@router.post("/status", response_model=SubmissionsStatusPublic)
async def set_status(
    body: SubmissionsToggle,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    async with unit_of_work(session):
        await require_permission(session, user.id, Permission.SUBMISSION_TOGGLE)
        await set_submissions_enabled(session, lst, body.enabled, user.id)
    return SubmissionsStatusPublic(list_id=lst.id, enabled=body.enabled)


@router.get("/queue", response_model=QueueSummary)
async def get_queue(lst: ListConfig = Depends(_list), session: AsyncSession = Depends(get_session)):
    return QueueSummary(list_id=lst.id, pending=await pending_count(session, lst))


@router.post("/claim", response_model=SubmissionReviewerView)
async def claim(
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    s = await claim_highest_priority(session, lst, user.id)
    return SubmissionReviewerView.model_validate(s)


@router.get("", response_model=list[SubmissionReviewerView])
async def list_submissions(
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    status: StatusFilter = Query(default="all"),
    mine: int = Query(default=0, ge=0, le=1),
    limit: int = Query(default=50, ge=1, le=200),
):
    # Reviewers see the whole list; everyone else only their own
    reviewer = await has_permission(session, user.id, Permission.SUBMISSION_REVIEW)
    q = select(Submission).where(Submission.list_id == lst.id)
    if mine == 1 or not reviewer:
        q = q.where(Submission.submitted_by == user.id)
    if status != "all":
        q = q.where(Submission.status == status)
    rows = (await session.execute(q.order_by(*queue_order()).limit(limit))).scalars().all()
    return [_view(s, reviewer) for s in rows]


@router.post("", response_model=SubmissionPublic, status_code=201)
async def create(
    body: SubmissionCreate,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    s = await pipeline.create_submission(session, lst, user.id, body)
    return SubmissionPublic.model_validate(s)


# ---- single submission ----

@router.get("/{submission_id}", response_model=SubmissionReviewerView)
async def get_one(
    submission_id: UUID,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    s, reviewer = await _visible(session, lst, submission_id, user)
    return _view(s, reviewer)


@router.get("/{submission_id}/queue", response_model=QueuePosition)
async def get_position(
    submission_id: UUID,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    await _visible(session, lst, submission_id, user)
    position, total = await queue_position(session, lst, submission_id)
    return QueuePosition(position=position, total=total)


@router.get("/{submission_id}/history", response_model=list[HistoryEntryPublic])
async def get_history(
    submission_id: UUID,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    # History outlives the submission, so it is reviewer-only
    await require_permission(session, user.id, Permission.SUBMISSION_REVIEW)
    rows = await submission_history(session, submission_id)
    return [HistoryEntryPublic.model_validate(h) for h in rows if h.list_id == lst.id]


@router.patch("/{submission_id}", response_model=SubmissionReviewerView)
async def patch(
    submission_id: UUID,
    body: SubmissionPatch,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    s = await pipeline.patch_submission(session, lst, submission_id, user.id, body)
    return _view(s, await has_permission(session, user.id, Permission.SUBMISSION_REVIEW))


@router.delete("/{submission_id}", status_code=204)
async def delete(
    submission_id: UUID,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    await pipeline.delete_submission(session, lst, submission_id, user.id)
    return Response(status_code=204)


@router.post("/{submission_id}/accept", response_model=RecordPublic)
async def accept(
    submission_id: UUID,
    body: ReviewerNotes | None = None,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    notes = body.notes if body else None
    record = await pipeline.accept(session, lst, submission_id, user.id, notes)
    return RecordPublic.model_validate(record)


@router.post("/{submission_id}/deny", response_model=SubmissionReviewerView)
async def deny(
    submission_id: UUID,
    body: ReviewerNotes | None = None,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    body = body or ReviewerNotes()
    s = await pipeline.deny(session, lst, submission_id, user.id, body.notes, body.private_notes)
    return SubmissionReviewerView.model_validate(s)


@router.post("/{submission_id}/under-consideration", response_model=SubmissionReviewerView)
async def under_consideration(
    submission_id: UUID,
    body: ReviewerNotes | None = None,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    body = body or ReviewerNotes()
    s = await pipeline.under_consideration(session, lst, submission_id, user.id, body.notes, body.private_notes)
    return SubmissionReviewerView.model_validate(s)


@router.post("/{submission_id}/unclaim", response_model=SubmissionReviewerView)
async def unclaim(
    submission_id: UUID,
    lst: ListConfig = Depends(_list),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    s = await pipeline.unclaim(session, lst, submission_id, user.id)
    return SubmissionReviewerView.model_validate(s)
