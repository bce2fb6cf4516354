import math

from lms_forum.config import THREADS_MAX_PAGE_SIZE
from lms_forum.errors import ValidationError
from lms_forum.schemas.forum_schemas import PaginationOut


def check_paging(page: int, limit: int) -> int:
    """Validate 1-indexed paging and return the row offset."""
    if page < 1:
        raise ValidationError("page must be 1 or greater")
    if limit < 1 or limit > THREADS_MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {THREADS_MAX_PAGE_SIZE}")
    return (page - 1) * limit


def build_pagination(page: int, limit: int, total: int, returned: int) -> PaginationOut:
    skip = (page - 1) * limit
    return PaginationOut(
        page=page,
        limit=limit,
        total=total,
        total_pages=max(1, math.ceil(total / limit)),
        has_next=skip + returned < total,
        has_prev=page > 1,
    )
