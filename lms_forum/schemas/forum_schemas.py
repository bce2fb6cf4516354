from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lms_forum.models.forum_model import ThreadStatus


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted on input too
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ------------------------------
# Inputs
# ------------------------------
class CreateThreadIn(CamelModel):
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = None
    # validated as UUIDs by the store so malformed ids are a 400
    classroom_id: Optional[str] = None
    unit_id: Optional[str] = None


class CreateReplyIn(CamelModel):
    content: Optional[str] = None


class UpdateThreadIn(CamelModel):
    # All optional so the client can send only what changed
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = None


# ------------------------------
# Outputs
# ------------------------------
class ThreadOut(CamelModel):
    id: UUID
    title: Optional[str] = None
    content: str
    author_id: UUID
    author_name: Optional[str] = None
    classroom_id: Optional[UUID] = None
    unit_id: Optional[UUID] = None
    parent_id: Optional[UUID] = None
    status: ThreadStatus = ThreadStatus.UNANSWERED
    accepted_answer_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class ThreadSummaryOut(ThreadOut):
    replies_count: int = 0
    likes_count: int = 0
    is_liked_by_me: bool = False


class ReplyOut(CamelModel):
    id: UUID
    content: str
    author_id: UUID
    author_name: Optional[str] = None
    parent_id: UUID
    created_at: datetime
    updated_at: datetime
    likes_count: int = 0
    is_liked_by_me: bool = False
    is_accepted: bool = False


class PaginationOut(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ThreadPageOut(CamelModel):
    threads: List[ThreadSummaryOut] = []
    pagination: PaginationOut


class ThreadDetailOut(CamelModel):
    thread: ThreadSummaryOut
    replies: List[ReplyOut] = []
    pagination: PaginationOut


class LikeToggleOut(CamelModel):
    subject_id: UUID
    user_id: UUID
    liked: bool
    likes_count: int


class AcceptAnswerOut(CamelModel):
    thread_id: UUID
    accepted_answer_id: Optional[UUID] = None
    status: ThreadStatus


class DeleteOut(CamelModel):
    id: UUID
    deleted: bool = True
