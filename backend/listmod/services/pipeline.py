from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from listmod.db import unit_of_work
from listmod.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from listmod.lists import ListConfig
from listmod.models.level import Level
from listmod.models.record import Record
from listmod.models.submission import Submission, SubmissionStatus as S
from listmod.models.user import User
from listmod.schemas.submission import SubmissionCreate, SubmissionPatch, SUBMITTER_FIELDS
from listmod.services.audit import write_history
from listmod.services.lifecycle import SUBMITTER_EDITABLE, ensure_transition
from listmod.services.notifications import notify, INFO, SUCCESS, FAILURE
from listmod.services.permissions import (
    Permission, ensure_not_banned, has_permission, priority_tier, require_permission,
)
from listmod.services.shifts import credit_shift
from listmod.services.toggles import submissions_enabled
from listmod.services.urls import validate_completion_url, validate_raw_url, ensure_url

log = structlog.get_logger()

# Columns copied from an accepted submission onto its record
RECORD_FIELDS = ("mobile", "ldm_id", "video_url", "raw_url", "mod_menu", "completion_time", "user_notes")


def _now() -> datetime:
    return datetime.now(dt_tz.utc)


async def get_submission(session: AsyncSession, lst: ListConfig, submission_id: UUID) -> Submission:
    s = await session.scalar(
        select(Submission).where(Submission.id == submission_id, Submission.list_id == lst.id)
    )
    if s is None:
        raise NotFoundError("Could not find this submission")
    return s


async def _lock_submission(session: AsyncSession, lst: ListConfig, submission_id: UUID) -> Submission:
    s = await session.scalar(
        select(Submission)
        .where(Submission.id == submission_id, Submission.list_id == lst.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if s is None:
        raise NotFoundError("Could not find this submission")
    return s


async def _load_level(session: AsyncSession, lst: ListConfig, level_id: UUID) -> Level:
    level = await session.get(Level, level_id)
    if level is None or level.list_id != lst.id:
        raise NotFoundError("Could not find this level")
    return level


async def _check_level(
    session: AsyncSession, lst: ListConfig, level_id: UUID, raw_url: str | None, *, check_raw: bool = True
) -> Level:
    level = await _load_level(session, lst, level_id)
    if level.legacy:
        raise ValidationError("This level is on the legacy list and is not accepting records.")
    if check_raw and level.position <= lst.raw_footage_cutoff and not raw_url:
        raise ValidationError(f"This level is top {lst.raw_footage_cutoff} and requires raw footage")
    return level


async def _ensure_no_active(
    session: AsyncSession, lst: ListConfig, submitted_by: UUID, level_id: UUID, exclude_id: UUID | None = None
) -> None:
    q = select(Submission.id).where(
        Submission.list_id == lst.id,
        Submission.submitted_by == submitted_by,
        Submission.level_id == level_id,
    )
    if exclude_id is not None:
        q = q.where(Submission.id != exclude_id)
    if await session.scalar(q.limit(1)) is not None:
        raise ConflictError("You already have a submission for this level")


async def _level_name(session: AsyncSession, level_id: UUID) -> str:
    return await session.scalar(select(Level.name).where(Level.id == level_id)) or "this level"


async def _flush_unique(session: AsyncSession) -> None:
    # a racing create/edit for the same level loses on the unique constraint
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("You already have a submission for this level")


# ---- create ----

async def create_submission(session: AsyncSession, lst: ListConfig, actor_id: UUID, body: SubmissionCreate) -> Submission:
    submitter = body.submitted_by or actor_id

    async with unit_of_work(session):
        if submitter != actor_id:
            # On-behalf creation skips the ban and open/closed checks
            if not await has_permission(session, actor_id, Permission.SUBMISSION_REVIEW):
                raise AuthorizationError("You do not have permission to submit on behalf of other users")
            if await session.get(User, submitter) is None:
                raise NotFoundError("Could not find this user")
        else:
            await ensure_not_banned(session, actor_id)
            if not await submissions_enabled(session, lst):
                raise ValidationError("Submissions are currently disabled")

        video_url = validate_completion_url(body.video_url)
        raw_url = validate_raw_url(body.raw_url) if body.raw_url else None
        if lst.requires_completion_time and body.completion_time is None:
            raise ValidationError("Completion time is required for this list")

        await _check_level(session, lst, body.level_id, raw_url)
        await _ensure_no_active(session, lst, submitter, body.level_id)

        now = _now()
        s = Submission(
            list_id=lst.id,
            level_id=body.level_id,
            submitted_by=submitter,
            mobile=body.mobile,
            ldm_id=body.ldm_id,
            video_url=video_url,
            raw_url=raw_url,
            mod_menu=body.mod_menu,
            completion_time=body.completion_time,
            user_notes=body.user_notes,
            status=S.PENDING.value,
            priority=await priority_tier(session, submitter),
            locked=False,
            created_at=now,
            updated_at=now,
        )
        session.add(s)
        await _flush_unique(session)
        write_history(session, s, S.PENDING, at=now)

    log.info("submission_created", list_id=lst.id, submission_id=str(s.id), submitted_by=str(submitter),
             on_behalf=submitter != actor_id, priority=s.priority)
    return s


# ---- transitions (caller holds the row lock and the transaction) ----

async def _accept(session: AsyncSession, s: Submission, reviewer_id: UUID, notes: str | None) -> Record:
    ensure_transition(s.status, S.ACCEPTED)
    now = _now()

    record = await session.scalar(
        select(Record)
        .where(Record.list_id == s.list_id, Record.submitted_by == s.submitted_by, Record.level_id == s.level_id)
        .with_for_update()
    )
    fields = {f: getattr(s, f) for f in RECORD_FIELDS}
    if record is None:
        record = Record(
            list_id=s.list_id, level_id=s.level_id, submitted_by=s.submitted_by,
            reviewer_id=reviewer_id, reviewer_notes=notes, created_at=now, updated_at=now, **fields,
        )
        session.add(record)
    else:
        # an improved completion replaces the existing one
        for k, v in fields.items():
            setattr(record, k, v)
        record.reviewer_id = reviewer_id
        record.reviewer_notes = notes
        record.updated_at = now
    await session.flush()

    write_history(session, s, S.ACCEPTED, reviewer_id=reviewer_id, reviewer_notes=notes, record_id=record.id, at=now)
    name = await _level_name(session, s.level_id)
    await notify(session, s.submitted_by, f"Your submission for {name} has been accepted!", SUCCESS)
    await credit_shift(session, reviewer_id)
    await session.delete(s)
    s.status = S.ACCEPTED.value
    return record


async def _deny(session: AsyncSession, s: Submission, reviewer_id: UUID, notes: str | None) -> Submission:
    ensure_transition(s.status, S.DENIED)
    now = _now()
    s.status = S.DENIED.value
    s.reviewer_id = reviewer_id
    s.reviewer_notes = notes
    s.updated_at = now
    write_history(session, s, S.DENIED, reviewer_id=reviewer_id, reviewer_notes=notes, at=now)
    name = await _level_name(session, s.level_id)
    msg = f"Your submission for {name} has been denied."
    if notes:
        msg += f" Reason: {notes}"
    await notify(session, s.submitted_by, msg, FAILURE)
    await credit_shift(session, reviewer_id)
    return s


async def _under_consideration(session: AsyncSession, s: Submission, reviewer_id: UUID, notes: str | None) -> Submission:
    ensure_transition(s.status, S.UNDER_CONSIDERATION)
    now = _now()
    s.status = S.UNDER_CONSIDERATION.value
    s.reviewer_id = reviewer_id
    s.reviewer_notes = notes
    s.updated_at = now
    write_history(session, s, S.UNDER_CONSIDERATION, reviewer_id=reviewer_id, reviewer_notes=notes, at=now)
    name = await _level_name(session, s.level_id)
    await notify(session, s.submitted_by, f"Your submission for {name} is under consideration.", INFO)
    await credit_shift(session, reviewer_id)
    return s


async def _back_to_pending(session: AsyncSession, s: Submission, actor_id: UUID | None) -> Submission:
    """Claimed -> Pending (unclaim) or Denied -> Pending (resubmit/reopen). Clears the reviewer."""
    ensure_transition(s.status, S.PENDING)
    now = _now()
    s.status = S.PENDING.value
    s.reviewer_id = None
    s.reviewer_notes = None
    s.updated_at = now
    write_history(session, s, S.PENDING, reviewer_id=actor_id, at=now)
    return s


# ---- reviewer operations ----

async def accept(session: AsyncSession, lst: ListConfig, submission_id: UUID, reviewer_id: UUID, notes: str | None = None) -> Record:
    async with unit_of_work(session):
        await require_permission(session, reviewer_id, Permission.SUBMISSION_REVIEW)
        s = await _lock_submission(session, lst, submission_id)
        record = await _accept(session, s, reviewer_id, notes)
    log.info("submission_accepted", list_id=lst.id, submission_id=str(submission_id), record_id=str(record.id), reviewer_id=str(reviewer_id))
    return record


async def deny(
    session: AsyncSession, lst: ListConfig, submission_id: UUID, reviewer_id: UUID,
    notes: str | None = None, private_notes: str | None = None,
) -> Submission:
    async with unit_of_work(session):
        await require_permission(session, reviewer_id, Permission.SUBMISSION_REVIEW)
        s = await _lock_submission(session, lst, submission_id)
        await _deny(session, s, reviewer_id, notes)
        if private_notes is not None:
            s.private_reviewer_notes = private_notes
    log.info("submission_denied", list_id=lst.id, submission_id=str(submission_id), reviewer_id=str(reviewer_id))
    return s


async def under_consideration(
    session: AsyncSession, lst: ListConfig, submission_id: UUID, reviewer_id: UUID,
    notes: str | None = None, private_notes: str | None = None,
) -> Submission:
    async with unit_of_work(session):
        await require_permission(session, reviewer_id, Permission.SUBMISSION_REVIEW)
        s = await _lock_submission(session, lst, submission_id)
        await _under_consideration(session, s, reviewer_id, notes)
        if private_notes is not None:
            s.private_reviewer_notes = private_notes
    log.info("submission_under_consideration", list_id=lst.id, submission_id=str(submission_id), reviewer_id=str(reviewer_id))
    return s


async def unclaim(session: AsyncSession, lst: ListConfig, submission_id: UUID, actor_id: UUID) -> Submission:
    async with unit_of_work(session):
        await require_permission(session, actor_id, Permission.SUBMISSION_REVIEW)
        s = await _lock_submission(session, lst, submission_id)
        if s.status != S.CLAIMED.value:
            raise ConflictError("This submission is not claimed!")
        previous = s.reviewer_id
        await _back_to_pending(session, s, actor_id)
    log.info("submission_unclaimed", list_id=lst.id, submission_id=str(submission_id),
             actor_id=str(actor_id), previous_reviewer=str(previous) if previous else None)
    return s


async def delete_submission(session: AsyncSession, lst: ListConfig, submission_id: UUID, actor_id: UUID) -> None:
    """Owners may withdraw while Pending; reviewers may delete in any state."""
    async with unit_of_work(session):
        s = await _lock_submission(session, lst, submission_id)
        is_reviewer = await has_permission(session, actor_id, Permission.SUBMISSION_REVIEW)
        if not is_reviewer:
            if s.submitted_by != actor_id:
                raise AuthorizationError("You can only delete your own submissions.")
            if s.status != S.PENDING.value:
                raise ConflictError("Only pending submissions can be deleted.")
        ensure_transition(s.status, S.DELETED)
        write_history(session, s, S.DELETED, reviewer_id=actor_id if is_reviewer else None)
        await session.delete(s)
    log.info("submission_deleted", list_id=lst.id, submission_id=str(submission_id), actor_id=str(actor_id), by_reviewer=is_reviewer)


# ---- patch ----

async def patch_submission(
    session: AsyncSession, lst: ListConfig, submission_id: UUID, actor_id: UUID, body: SubmissionPatch
) -> Submission:
    """
    Reviewers editing someone else's submission get every field including status;
    everyone else (reviewers on their own submissions too) goes through the submitter rules.
    Reviewer-only fields in a submitter patch are dropped.
    """
    async with unit_of_work(session):
        s = await _lock_submission(session, lst, submission_id)
        if s.submitted_by != actor_id and await has_permission(session, actor_id, Permission.SUBMISSION_REVIEW):
            changes = body.changes()
            if not changes:
                raise ValidationError("No changes were provided!")
            await _patch_as_reviewer(session, lst, s, actor_id, changes)
        else:
            changes = body.changes(SUBMITTER_FIELDS)
            if not changes:
                raise ValidationError("No changes were provided!")
            await _patch_as_submitter(session, lst, s, actor_id, changes)
    return s


def _normalize_urls(changes: dict, *, strict_video: bool) -> None:
    if "video_url" in changes:
        if not changes["video_url"]:
            raise ValidationError("A completion video is required")
        if strict_video:
            changes["video_url"] = validate_completion_url(changes["video_url"])
        else:
            changes["video_url"] = ensure_url(changes["video_url"])
    if changes.get("raw_url"):
        changes["raw_url"] = validate_raw_url(changes["raw_url"])


async def _patch_as_submitter(session: AsyncSession, lst: ListConfig, s: Submission, actor_id: UUID, changes: dict) -> None:
    if s.submitted_by != actor_id:
        raise AuthorizationError("You can only edit your own submissions.")
    await ensure_not_banned(session, actor_id)
    if s.locked:
        raise AuthorizationError("This submission has been locked and cannot be edited.")
    if S(s.status) not in SUBMITTER_EDITABLE:
        raise ConflictError("This submission is currently being reviewed and cannot be edited.")
    if s.status != S.PENDING.value and not await submissions_enabled(session, lst):
        raise ValidationError("Submissions are currently closed. You can only edit pending submissions.")

    _normalize_urls(changes, strict_video=True)
    if lst.requires_completion_time and "completion_time" in changes and changes["completion_time"] is None:
        raise ValidationError("Completion time is required for this list")
    if "mobile" in changes and changes["mobile"] is None:
        changes.pop("mobile")

    level_id = changes.get("level_id") or s.level_id
    raw_url = changes["raw_url"] if "raw_url" in changes else s.raw_url
    level_changed = level_id != s.level_id
    changes["level_id"] = level_id
    await _check_level(session, lst, level_id, raw_url, check_raw=level_changed or "raw_url" in changes)
    if level_changed:
        await _ensure_no_active(session, lst, s.submitted_by, level_id, exclude_id=s.id)

    resubmitted = s.status == S.DENIED.value
    for k, v in changes.items():
        setattr(s, k, v)
    if resubmitted:
        await _back_to_pending(session, s, None)
    else:
        s.updated_at = _now()
    await _flush_unique(session)

    log.info("submission_edited", list_id=lst.id, submission_id=str(s.id), by="submitter",
             fields=sorted(changes), resubmitted=resubmitted)


async def _patch_as_reviewer(session: AsyncSession, lst: ListConfig, s: Submission, reviewer_id: UUID, changes: dict) -> None:
    target = changes.pop("status", None)
    _normalize_urls(changes, strict_video=False)
    for k in ("mobile", "priority", "locked"):
        if k in changes and changes[k] is None:
            changes.pop(k)

    if changes.get("level_id") and changes["level_id"] != s.level_id:
        await _load_level(session, lst, changes["level_id"])
        await _ensure_no_active(session, lst, s.submitted_by, changes["level_id"], exclude_id=s.id)
    else:
        changes.pop("level_id", None)

    for k, v in changes.items():
        setattr(s, k, v)
    notes = changes.get("reviewer_notes", s.reviewer_notes)

    if target is not None and target != s.status:
        target = S(target)
        if target == S.CLAIMED:
            raise ValidationError("Submissions can only be claimed through the queue")
        if target == S.PENDING:
            await _back_to_pending(session, s, reviewer_id)
        elif target == S.UNDER_CONSIDERATION:
            await _under_consideration(session, s, reviewer_id, notes)
        elif target == S.DENIED:
            await _deny(session, s, reviewer_id, notes)
        elif target == S.ACCEPTED:
            await _accept(session, s, reviewer_id, notes)
            log.info("submission_edited", list_id=lst.id, submission_id=str(s.id), by="reviewer",
                     fields=sorted(changes), status=target.value)
            return
    elif changes:
        s.updated_at = _now()
    await _flush_unique(session)

    log.info("submission_edited", list_id=lst.id, submission_id=str(s.id), by="reviewer",
             fields=sorted(changes), status=s.status)
