# lms_forum/deps/services.py
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms_forum.database import get_async_session
from lms_forum.services.access_guard import AccessGuard, UnitDirectory
from lms_forum.services.like_ledger import LikeLedger
from lms_forum.services.thread_store import ThreadStore


async def get_like_ledger(db: AsyncSession = Depends(get_async_session)) -> LikeLedger:
    return LikeLedger(db)


async def get_thread_store(
    db: AsyncSession = Depends(get_async_session),
    likes: LikeLedger = Depends(get_like_ledger),
) -> ThreadStore:
    """One store per request, sharing the request's session with its collaborators."""
    return ThreadStore(db, AccessGuard(db), UnitDirectory(db), likes)
