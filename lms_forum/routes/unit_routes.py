from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from lms_forum.config import THREADS_PAGE_SIZE
from lms_forum.deps.services import get_thread_store
from lms_forum.models.user_model import User
from lms_forum.schemas.forum_schemas import ThreadPageOut
from lms_forum.services.thread_store import ThreadStore
from lms_forum.utils.token_utils import get_current_user

router = APIRouter(prefix="/units", tags=["threads"])


@router.get("/{unit_id}/threads", response_model=ThreadPageOut)
async def list_unit_threads(
    request: Request,
    unit_id: str,
    page: int = 1,
    limit: int = THREADS_PAGE_SIZE,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    user: User = Depends(get_current_user),
    store: ThreadStore = Depends(get_thread_store),
):
    """Threads of one unit, visible to members of the unit's classroom."""
    return await store.get_threads_by_unit_with_access(
        unit_id,
        user.id,
        page,
        limit,
        sort_by=sort_by,
        sort_order=sort_order,
        raw_filters=request.query_params,
    )
