# lms_forum/services/thread_store.py
"""
Threads and replies.

A reply is a ``Thread`` row with ``parent_id`` set; replies are one level
deep. ``status`` follows ``accepted_answer_id``: RESOLVED while an answer
is accepted, UNANSWERED otherwise.
"""
from __future__ import annotations

import dataclasses
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_forum.errors import ForbiddenError, NotFoundError, ValidationError
from lms_forum.logging_config import get_logger
from lms_forum.models.forum_model import Thread, ThreadStatus
from lms_forum.models.user_model import User
from lms_forum.schemas.forum_schemas import (
    ReplyOut,
    ThreadDetailOut,
    ThreadPageOut,
    ThreadSummaryOut,
)
from lms_forum.services.access_guard import AccessGuard, UnitDirectory
from lms_forum.services.like_ledger import LikeLedger, liked_by_expr, likes_count_expr
from lms_forum.services.thread_query import (
    REPLY_DEFAULT_SORT,
    ThreadFilters,
    build_thread_conditions,
    parse_thread_filters,
    replies_count_expr,
    resolve_ordering,
)
from lms_forum.utils.ids import parse_optional_uuid, parse_uuid
from lms_forum.utils.pagination import build_pagination, check_paging

logger = get_logger(__name__)


def _require_content(content: Optional[str]) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Content is required")
    return content


def _summary(row) -> ThreadSummaryOut:
    t = row.Thread
    return ThreadSummaryOut(
        id=t.id,
        title=t.title,
        content=t.content,
        author_id=t.author_id,
        author_name=row.author_name,
        classroom_id=t.classroom_id,
        unit_id=t.unit_id,
        parent_id=t.parent_id,
        status=t.status,
        accepted_answer_id=t.accepted_answer_id,
        created_at=t.created_at,
        updated_at=t.updated_at,
        replies_count=int(row.replies_count or 0),
        likes_count=int(row.likes_count or 0),
        is_liked_by_me=bool(row.is_liked_by_me),
    )


class ThreadStore:
    def __init__(
        self,
        db: AsyncSession,
        guard: AccessGuard,
        units: UnitDirectory,
        likes: LikeLedger,
    ):
        self.db = db
        self.guard = guard
        self.units = units
        self.likes = likes

    # ------------------------------
    # helpers
    # ------------------------------
    async def _require_member(self, user_id: UUID, classroom_id: UUID) -> None:
        if not await self.guard.check_classroom_membership(user_id, classroom_id):
            raise ForbiddenError("You are not a member of this classroom")

    async def _load_owned(self, thread_id: UUID, requester_id: UUID) -> Thread:
        # populate_existing: ownership is judged on the row as it is now
        thread = await self.db.get(Thread, thread_id, populate_existing=True)
        if thread is None:
            raise NotFoundError("Thread not found")
        if thread.author_id != requester_id:
            raise ForbiddenError("Only the author can modify this thread")
        return thread

    async def _commit(self, op: str, **ids: Any) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception(f"{op}_failed", **{k: str(v) for k, v in ids.items()})
            raise

    # ------------------------------
    # writes
    # ------------------------------
    async def create_thread(
        self,
        author_id: UUID,
        title: Optional[str],
        content: Optional[str],
        classroom_id=None,
        unit_id=None,
    ) -> Thread:
        content = _require_content(content)
        title = (title or "").strip() or None
        classroom_uuid = parse_optional_uuid(classroom_id, "classroomId")
        unit_uuid = parse_optional_uuid(unit_id, "unitId")

        # membership is checked against the unit's classroom; the ids are
        # stored as submitted
        if unit_uuid is not None:
            unit = await self.units.get(unit_uuid)
            if unit is None or unit.classroom_id is None:
                raise NotFoundError("Unit or classroom not found")
            await self._require_member(author_id, unit.classroom_id)
        if classroom_uuid is not None and not await self.guard.classroom_exists(classroom_uuid):
            raise NotFoundError("Classroom not found")

        thread = Thread(
            title=title,
            content=content,
            author_id=author_id,
            classroom_id=classroom_uuid,
            unit_id=unit_uuid,
            parent_id=None,
            status=ThreadStatus.UNANSWERED,
            accepted_answer_id=None,
        )
        self.db.add(thread)
        await self._commit("create_thread", author_id=author_id)
        await self.db.refresh(thread)

        logger.info(
            "thread_created",
            thread_id=str(thread.id),
            author_id=str(author_id),
            classroom_id=str(classroom_uuid) if classroom_uuid else None,
        )
        return thread

    async def create_reply(self, parent_id, content: Optional[str], author_id: UUID) -> Thread:
        parent_uuid = parse_uuid(parent_id, "threadId")
        content = _require_content(content)

        parent = await self.db.get(Thread, parent_uuid)
        if parent is None or parent.is_reply:
            # replies are one level deep; a reply cannot be a parent
            raise NotFoundError("Thread not found")
        if parent.classroom_id is not None:
            await self._require_member(author_id, parent.classroom_id)

        reply = Thread(
            title=None,
            content=content,
            author_id=author_id,
            classroom_id=parent.classroom_id,
            unit_id=parent.unit_id,
            parent_id=parent.id,
            status=ThreadStatus.UNANSWERED,
        )
        self.db.add(reply)
        await self._commit("create_reply", parent_id=parent_uuid, author_id=author_id)
        await self.db.refresh(reply)

        logger.info("reply_created", reply_id=str(reply.id), parent_id=str(parent_uuid))
        return reply

    async def get_thread_by_id(self, thread_id) -> Optional[Thread]:
        return await self.db.get(Thread, parse_uuid(thread_id, "threadId"), populate_existing=True)

    async def update_thread_or_comment(
        self,
        thread_id,
        requester_id: UUID,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Thread:
        tid = parse_uuid(thread_id, "threadId")
        if title is None and content is None:
            raise ValidationError("Provide a title or content to update")

        thread = await self._load_owned(tid, requester_id)

        if title is not None:
            if thread.is_reply:
                raise ValidationError("Replies cannot have a title")
            title = title.strip()
            if not title:
                raise ValidationError("Title cannot be empty")
            thread.title = title

        if content is not None:
            thread.content = _require_content(content)

        thread.updated_at = func.now()
        await self._commit("update_thread", thread_id=tid, requester_id=requester_id)
        await self.db.refresh(thread)

        logger.info("thread_updated", thread_id=str(tid))
        return thread

    async def delete_thread_or_comment(self, thread_id, requester_id: UUID) -> None:
        tid = parse_uuid(thread_id, "threadId")
        thread = await self._load_owned(tid, requester_id)

        try:
            if thread.parent_id is None:
                reply_ids = list(
                    (await self.db.execute(select(Thread.id).where(Thread.parent_id == tid))).scalars().all()
                )
            else:
                reply_ids = []
                # deleting the accepted answer reopens the question
                await self.db.execute(
                    update(Thread)
                    .where(Thread.id == thread.parent_id, Thread.accepted_answer_id == tid)
                    .values(
                        accepted_answer_id=None,
                        status=ThreadStatus.UNANSWERED,
                        updated_at=func.now(),
                    )
                )

            await self.likes.delete_likes_for([tid, *reply_ids])
            if reply_ids:
                await self.db.execute(delete(Thread).where(Thread.parent_id == tid))
            await self.db.execute(delete(Thread).where(Thread.id == tid))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("delete_thread_failed", thread_id=str(tid), requester_id=str(requester_id))
            raise

        logger.info("thread_deleted", thread_id=str(tid), replies_deleted=len(reply_ids))

    async def accept_answer(self, thread_id, reply_id) -> Optional[Thread]:
        """
        Toggle ``reply_id`` as the accepted answer of ``thread_id``.

        Returns None when ``thread_id`` is not an existing top-level thread.
        Accepting the reply that is already accepted clears it. The thread
        row is locked for the read-modify-write so concurrent accepts apply
        one after the other.
        """
        tid = parse_uuid(thread_id, "threadId")
        rid = parse_uuid(reply_id, "replyId")

        try:
            thread = (
                await self.db.execute(
                    select(Thread)
                    .where(Thread.id == tid)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()
            if thread is None or thread.is_reply:
                await self.db.rollback()
                return None

            if thread.accepted_answer_id == rid:
                thread.accepted_answer_id = None
                thread.status = ThreadStatus.UNANSWERED
            else:
                belongs = (
                    await self.db.execute(
                        select(Thread.id).where(Thread.id == rid, Thread.parent_id == tid)
                    )
                ).scalar_one_or_none()
                if belongs is None:
                    await self.db.rollback()
                    raise ValidationError("Reply does not belong to this thread")
                thread.accepted_answer_id = rid
                thread.status = ThreadStatus.RESOLVED

            thread.updated_at = func.now()
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("accept_answer_failed", thread_id=str(tid), reply_id=str(rid))
            raise

        await self.db.refresh(thread)
        logger.info(
            "answer_toggled",
            thread_id=str(tid),
            reply_id=str(rid),
            accepted_answer_id=str(thread.accepted_answer_id) if thread.accepted_answer_id else None,
        )
        return thread

    # ------------------------------
    # reads
    # ------------------------------
    async def get_threads(
        self,
        page: int,
        limit: int,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        filters: Optional[ThreadFilters] = None,
        requester_id: Optional[UUID] = None,
        scoped_by_unit: bool = False,
    ) -> ThreadPageOut:
        skip = check_paging(page, limit)
        conditions = build_thread_conditions(filters or ThreadFilters(), scoped_by_unit=scoped_by_unit)

        replies_count = replies_count_expr().label("replies_count")
        likes_count = likes_count_expr(Thread.id).label("likes_count")
        order = resolve_ordering(sort_by, sort_order, replies_count=replies_count, likes_count=likes_count)

        # count(*) OVER () gives the total from the same snapshot as the page
        stmt = (
            select(
                Thread,
                User.name.label("author_name"),
                replies_count,
                likes_count,
                liked_by_expr(Thread.id, requester_id).label("is_liked_by_me"),
                func.count().over().label("total"),
            )
            .outerjoin(User, User.id == Thread.author_id)
            .where(*conditions)
            .order_by(*order)
            .offset(skip)
            .limit(limit)
        )
        rows = (await self.db.execute(stmt)).all()

        if rows:
            total = int(rows[0].total)
        elif page > 1:
            # past the last page: the window count has no row to ride on
            total = int(
                (await self.db.execute(select(func.count(Thread.id)).where(*conditions))).scalar_one() or 0
            )
        else:
            total = 0

        threads = [_summary(r) for r in rows]
        logger.info("threads_listed", page=page, limit=limit, returned=len(threads), total=total)
        return ThreadPageOut(
            threads=threads,
            pagination=build_pagination(page, limit, total, len(threads)),
        )

    async def get_threads_by_unit_with_access(
        self,
        unit_id,
        user_id: UUID,
        page: int,
        limit: int,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        raw_filters: Optional[Mapping[str, Any]] = None,
    ) -> ThreadPageOut:
        unit_uuid = parse_uuid(unit_id, "unitId")
        extra = parse_thread_filters(raw_filters or {})
        check_paging(page, limit)

        unit = await self.units.get(unit_uuid)
        if unit is None or unit.classroom_id is None:
            raise NotFoundError("Unit or classroom not found")
        await self._require_member(user_id, unit.classroom_id)

        filters = dataclasses.replace(
            extra,
            unit_id=unit_uuid,
            no_unit=False,
            classroom_id=None,
            global_only=False,
        )
        return await self.get_threads(
            page,
            limit,
            sort_by=sort_by,
            sort_order=sort_order,
            filters=filters,
            requester_id=user_id,
            scoped_by_unit=True,
        )

    async def get_thread_with_replies(
        self,
        thread_id,
        page: int,
        limit: int,
        requester_id: Optional[UUID] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> Optional[ThreadDetailOut]:
        tid = parse_uuid(thread_id, "threadId")
        skip = check_paging(page, limit)

        head = (
            await self.db.execute(
                select(
                    Thread,
                    User.name.label("author_name"),
                    replies_count_expr().label("replies_count"),
                    likes_count_expr(Thread.id).label("likes_count"),
                    liked_by_expr(Thread.id, requester_id).label("is_liked_by_me"),
                )
                .outerjoin(User, User.id == Thread.author_id)
                .where(Thread.id == tid, Thread.parent_id.is_(None))
            )
        ).first()
        if head is None:
            return None
        thread = _summary(head)

        likes_count = likes_count_expr(Thread.id).label("likes_count")
        order = resolve_ordering(sort_by, sort_order, likes_count=likes_count, default=REPLY_DEFAULT_SORT)
        rows = (
            await self.db.execute(
                select(
                    Thread,
                    User.name.label("author_name"),
                    likes_count,
                    liked_by_expr(Thread.id, requester_id).label("is_liked_by_me"),
                    func.count().over().label("total"),
                )
                .outerjoin(User, User.id == Thread.author_id)
                .where(Thread.parent_id == tid)
                .order_by(*order)
                .offset(skip)
                .limit(limit)
            )
        ).all()
        total = int(rows[0].total) if rows else thread.replies_count

        replies = [
            ReplyOut(
                id=r.Thread.id,
                content=r.Thread.content,
                author_id=r.Thread.author_id,
                author_name=r.author_name,
                parent_id=r.Thread.parent_id,
                created_at=r.Thread.created_at,
                updated_at=r.Thread.updated_at,
                likes_count=int(r.likes_count or 0),
                is_liked_by_me=bool(r.is_liked_by_me),
                is_accepted=r.Thread.id == thread.accepted_answer_id,
            )
            for r in rows
        ]
        return ThreadDetailOut(
            thread=thread,
            replies=replies,
            pagination=build_pagination(page, limit, total, len(replies)),
        )
