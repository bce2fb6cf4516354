from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from lms_forum.config import THREAD_CREATE_RATE, THREAD_LIKE_RATE, THREAD_REPLY_RATE, THREADS_PAGE_SIZE
from lms_forum.deps.services import get_like_ledger, get_thread_store
from lms_forum.errors import ForbiddenError, NotFoundError, ValidationError
from lms_forum.limiter import limiter
from lms_forum.models.user_model import User
from lms_forum.schemas.forum_schemas import (
    AcceptAnswerOut,
    CreateReplyIn,
    CreateThreadIn,
    DeleteOut,
    LikeToggleOut,
    ReplyOut,
    ThreadDetailOut,
    ThreadOut,
    ThreadPageOut,
    UpdateThreadIn,
)
from lms_forum.services.like_ledger import LikeLedger
from lms_forum.services.thread_query import parse_thread_filters
from lms_forum.services.thread_store import ThreadStore
from lms_forum.utils.ids import parse_uuid
from lms_forum.utils.token_utils import get_current_user, get_current_user_optional

router = APIRouter(prefix="/threads", tags=["threads"])
replies_router = APIRouter(prefix="/replies", tags=["threads"])


# ------------------------------
# Routes
# ------------------------------
@router.post("", response_model=ThreadOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(THREAD_CREATE_RATE)
async def create_thread(
    request: Request,
    payload: CreateThreadIn,
    user: User = Depends(get_current_user),
    store: ThreadStore = Depends(get_thread_store),
):
    thread = await store.create_thread(
        author_id=user.id,
        title=payload.title,
        content=payload.content,
        classroom_id=payload.classroom_id,
        unit_id=payload.unit_id,
    )
    out = ThreadOut.model_validate(thread)
    out.author_name = user.name
    return out


@router.get("", response_model=ThreadPageOut)
async def list_threads(
    request: Request,
    page: int = 1,
    limit: int = THREADS_PAGE_SIZE,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    user: User = Depends(get_current_user),
    store: ThreadStore = Depends(get_thread_store),
):
    # the remaining query params form the filter bag
    filters = parse_thread_filters(request.query_params)
    return await store.get_threads(
        page,
        limit,
        sort_by=sort_by,
        sort_order=sort_order,
        filters=filters,
        requester_id=user.id,
    )


@router.get("/{thread_id}", response_model=ThreadDetailOut)
async def get_thread(
    thread_id: str,
    page: int = 1,
    limit: int = THREADS_PAGE_SIZE,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    viewer: Optional[User] = Depends(get_current_user_optional),
    store: ThreadStore = Depends(get_thread_store),
):
    detail = await store.get_thread_with_replies(
        thread_id,
        page,
        limit,
        requester_id=getattr(viewer, "id", None),
        sort_by=sort_by,
        sort_order=sort_order,
    )
    if detail is None:
        raise NotFoundError("Thread not found")
    return detail


@router.put("/{thread_id}", response_model=ThreadOut)
@router.patch("/{thread_id}", response_model=ThreadOut)
async def update_thread(
    thread_id: str,
    payload: UpdateThreadIn,
    user: User = Depends(get_current_user),
    store: ThreadStore = Depends(get_thread_store),
):
    thread = await store.update_thread_or_comment(
        thread_id,
        user.id,
        title=payload.title,
        content=payload.content,
    )
    out = ThreadOut.model_validate(thread)
    out.author_name = user.name
    return out


@router.delete("/{thread_id}", response_model=DeleteOut)
async def delete_thread(
    thread_id: str,
    user: User = Depends(get_current_user),
    store: ThreadStore = Depends(get_thread_store),
):
    tid = parse_uuid(thread_id, "threadId")
    await store.delete_thread_or_comment(tid, user.id)
    return DeleteOut(id=tid)


@router.post("/{thread_id}/replies", response_model=ReplyOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(THREAD_REPLY_RATE)
async def create_reply(
    request: Request,
    thread_id: str,
    payload: CreateReplyIn,
    user: User = Depends(get_current_user),
    store: ThreadStore = Depends(get_thread_store),
):
    reply = await store.create_reply(thread_id, payload.content, user.id)
    return ReplyOut(
        id=reply.id,
        content=reply.content,
        author_id=reply.author_id,
        author_name=user.name,
        parent_id=reply.parent_id,
        created_at=reply.created_at,
        updated_at=reply.updated_at,
    )


@router.post("/{thread_id}/like", response_model=LikeToggleOut)
@limiter.limit(THREAD_LIKE_RATE)
async def like_thread(
    request: Request,
    thread_id: str,
    user: User = Depends(get_current_user),
    likes: LikeLedger = Depends(get_like_ledger),
):
    return await likes.toggle_like(thread_id, user.id)


@replies_router.post("/{reply_id}/like", response_model=LikeToggleOut)
@limiter.limit(THREAD_LIKE_RATE)
async def like_reply(
    request: Request,
    reply_id: str,
    user: User = Depends(get_current_user),
    likes: LikeLedger = Depends(get_like_ledger),
):
    return await likes.toggle_like(reply_id, user.id)


@router.patch("/{thread_id}/accept/{reply_id}", response_model=AcceptAnswerOut)
async def accept_answer(
    thread_id: str,
    reply_id: str,
    user: User = Depends(get_current_user),
    store: ThreadStore = Depends(get_thread_store),
):
    tid = parse_uuid(thread_id, "threadId")
    rid = parse_uuid(reply_id, "replyId")

    # ownership is checked here, on a freshly loaded row
    thread = await store.get_thread_by_id(tid)
    if thread is None or thread.is_reply:
        raise ValidationError("Not a main thread")
    if thread.author_id != user.id:
        raise ForbiddenError("Only the thread owner can accept an answer")

    updated = await store.accept_answer(tid, rid)
    if updated is None:
        raise ValidationError("Not a main thread")
    return AcceptAnswerOut(
        thread_id=updated.id,
        accepted_answer_id=updated.accepted_answer_id,
        status=updated.status,
    )
