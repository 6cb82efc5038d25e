from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

# Statuses a reviewer may set directly via patch
PatchableStatus = Literal["Pending", "Claimed", "UnderConsideration", "Denied", "Accepted"]

# Fields a submitter owns; anything else in a patch needs review permission
SUBMITTER_FIELDS = frozenset({
    "level_id", "mobile", "ldm_id", "video_url", "raw_url", "mod_menu", "user_notes", "completion_time",
})
REVIEWER_FIELDS = SUBMITTER_FIELDS | {"status", "priority", "reviewer_notes", "private_reviewer_notes", "locked"}


class SubmissionCreate(BaseModel):
    # Reviewers may submit on behalf of someone else
    submitted_by: UUID | None = None
    level_id: UUID
    mobile: bool = False
    ldm_id: int | None = None
    video_url: str = Field(min_length=1, max_length=2048)
    raw_url: str | None = Field(default=None, max_length=2048)
    mod_menu: str | None = Field(default=None, max_length=64)
    user_notes: str | None = Field(default=None, max_length=1000)
    completion_time: int | None = Field(default=None, ge=0)  # ms


class SubmissionPatch(BaseModel):
    level_id: UUID | None = None
    mobile: bool | None = None
    ldm_id: int | None = None
    video_url: str | None = Field(default=None, max_length=2048)
    raw_url: str | None = Field(default=None, max_length=2048)
    mod_menu: str | None = Field(default=None, max_length=64)
    user_notes: str | None = Field(default=None, max_length=1000)
    completion_time: int | None = Field(default=None, ge=0)
    # reviewer only
    status: PatchableStatus | None = None
    priority: int | None = Field(default=None, ge=0)
    reviewer_notes: str | None = Field(default=None, max_length=1000)
    private_reviewer_notes: str | None = Field(default=None, max_length=1000)
    locked: bool | None = None

    def changes(self, allowed: frozenset[str] = REVIEWER_FIELDS) -> dict:
        """Only fields the client actually sent, restricted to `allowed`."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if k in allowed}


class ReviewerNotes(BaseModel):
    notes: str | None = Field(default=None, max_length=1000)
    private_notes: str | None = Field(default=None, max_length=1000)


class SubmissionPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    list_id: str
    level_id: UUID
    submitted_by: UUID
    reviewer_id: UUID | None = None
    mobile: bool
    ldm_id: int | None = None
    video_url: str
    raw_url: str | None = None
    mod_menu: str | None = None
    completion_time: int | None = None
    user_notes: str | None = None
    reviewer_notes: str | None = None
    status: str
    priority: int
    locked: bool
    created_at: datetime
    updated_at: datetime


class SubmissionReviewerView(SubmissionPublic):
    # 🔒 only for users with review permission
    private_reviewer_notes: str | None = None


class RecordPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    list_id: str
    level_id: UUID
    submitted_by: UUID
    reviewer_id: UUID | None = None
    mobile: bool
    ldm_id: int | None = None
    video_url: str
    raw_url: str | None = None
    mod_menu: str | None = None
    completion_time: int | None = None
    user_notes: str | None = None
    reviewer_notes: str | None = None
    created_at: datetime
    updated_at: datetime


class HistoryEntryPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    status: str
    reviewer_id: UUID | None = None
    record_id: UUID | None = None
    video_url: str | None = None
    raw_url: str | None = None
    mobile: bool | None = None
    ldm_id: int | None = None
    mod_menu: str | None = None
    completion_time: int | None = None
    user_notes: str | None = None
    reviewer_notes: str | None = None
    timestamp: datetime


class QueuePosition(BaseModel):
    position: int
    total: int


class QueueSummary(BaseModel):
    list_id: str
    pending: int


class SubmissionsToggle(BaseModel):
    enabled: bool


class SubmissionsStatusPublic(BaseModel):
    list_id: str
    enabled: bool
