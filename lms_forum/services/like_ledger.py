# lms_forum/services/like_ledger.py
from __future__ import annotations

import uuid
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, exists, false, func, not_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_forum.errors import NotFoundError
from lms_forum.logging_config import get_logger
from lms_forum.models.forum_model import Thread, ThreadLike
from lms_forum.schemas.forum_schemas import LikeToggleOut
from lms_forum.utils.ids import parse_uuid

logger = get_logger(__name__)


def likes_count_expr(subject_col):
    """Correlated count of active likes for the thread/reply in ``subject_col``."""
    return (
        select(func.count(ThreadLike.id))
        .where(ThreadLike.thread_id == subject_col, ThreadLike.is_liked.is_(True))
        .scalar_subquery()
    )


def liked_by_expr(subject_col, user_id: Optional[UUID]):
    if user_id is None:
        return false()
    return exists().where(
        ThreadLike.thread_id == subject_col,
        ThreadLike.user_id == user_id,
        ThreadLike.is_liked.is_(True),
    )


class LikeLedger:
    """Per-(subject, user) like rows. Subjects are threads or replies."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def toggle_like(self, subject_id, user_id: UUID) -> LikeToggleOut:
        subject_id = parse_uuid(subject_id, "threadId")

        subject = await self.db.get(Thread, subject_id)
        if subject is None:
            raise NotFoundError("Thread or reply not found")

        # A single upsert keeps concurrent toggles by the same user from
        # racing on "row missing" and inserting twice.
        stmt = (
            pg_insert(ThreadLike)
            .values(id=uuid.uuid4(), thread_id=subject_id, user_id=user_id, is_liked=True)
            .on_conflict_do_update(
                index_elements=[ThreadLike.thread_id, ThreadLike.user_id],
                set_={"is_liked": not_(ThreadLike.is_liked), "updated_at": func.now()},
            )
            .returning(ThreadLike.is_liked)
        )
        try:
            liked = bool((await self.db.execute(stmt)).scalar_one())
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("toggle_like_failed", subject_id=str(subject_id), user_id=str(user_id))
            raise

        count = await self.count_likes(subject_id)
        logger.info("like_toggled", subject_id=str(subject_id), user_id=str(user_id), liked=liked)
        return LikeToggleOut(subject_id=subject_id, user_id=user_id, liked=liked, likes_count=count)

    async def count_likes(self, subject_id: UUID) -> int:
        stmt = select(func.count(ThreadLike.id)).where(
            ThreadLike.thread_id == subject_id, ThreadLike.is_liked.is_(True)
        )
        return int((await self.db.execute(stmt)).scalar_one() or 0)

    async def find_like(self, subject_id: UUID, user_id: UUID) -> Optional[ThreadLike]:
        res = await self.db.execute(
            select(ThreadLike).where(ThreadLike.thread_id == subject_id, ThreadLike.user_id == user_id)
        )
        return res.scalar_one_or_none()

    async def delete_like(self, subject_id: UUID, user_id: UUID) -> bool:
        res = await self.db.execute(
            delete(ThreadLike).where(ThreadLike.thread_id == subject_id, ThreadLike.user_id == user_id)
        )
        await self.db.commit()
        return res.rowcount > 0

    async def delete_likes_for(self, subject_ids: Iterable[UUID]) -> None:
        """Remove every like row of the given subjects. Caller owns the transaction."""
        ids = list(subject_ids)
        if ids:
            await self.db.execute(delete(ThreadLike).where(ThreadLike.thread_id.in_(ids)))
