# lms_forum/services/thread_query.py
"""
Translate the flat filter/sort query of the thread listing into SQL.

Two steps, both run before the store touches the database:

- ``parse_thread_filters`` validates the raw request values and returns a
  ``ThreadFilters``; anything malformed is a ``ValidationError``.
- ``build_thread_conditions`` / ``resolve_ordering`` turn that into WHERE
  conditions and ORDER BY clauses over ``Thread``.

Classroom scope is the dominant axis: an explicit classroom id, the
``"global"`` feed, or (when neither is given) the global feed restricted to
threads without a unit unless a unit filter was supplied.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.orm import aliased

from lms_forum.errors import ValidationError
from lms_forum.models.forum_model import Thread, ThreadLike, ThreadStatus
from lms_forum.utils.ids import parse_uuid

GLOBAL_SCOPE = "global"
NO_UNIT = "none"

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}

Reply = aliased(Thread, name="reply")


@dataclass(frozen=True)
class ThreadFilters:
    classroom_id: Optional[UUID] = None
    global_only: bool = False
    unit_id: Optional[UUID] = None
    no_unit: bool = False
    status: Optional[ThreadStatus] = None
    author_id: Optional[UUID] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    # a date-only dateTo covers the whole day: created_at < next midnight
    date_to_exclusive: bool = False
    has_replies: Optional[bool] = None
    has_likes: Optional[bool] = None

    @property
    def unit_given(self) -> bool:
        return self.no_unit or self.unit_id is not None


# ------------------------------
# parsing
# ------------------------------
def _pick(raw: Mapping[str, Any], camel: str, snake: str) -> Optional[str]:
    value = raw.get(camel)
    if value is None:
        value = raw.get(snake)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_bool(value: Optional[str], field: str) -> Optional[bool]:
    if value is None:
        return None
    v = value.lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValidationError(f"{field} must be true or false")


def _parse_moment(value: Optional[str], field: str, end_of_day: bool = False) -> tuple[Optional[datetime], bool]:
    """Returns (moment, exclusive). Date-only values become midnight UTC."""
    if value is None:
        return None, False
    try:
        if len(value) == 10:
            d = date.fromisoformat(value)
            start = datetime.combine(d, time.min, tzinfo=timezone.utc)
            if end_of_day:
                return start + timedelta(days=1), True
            return start, False
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment, False


def parse_thread_filters(raw: Mapping[str, Any]) -> ThreadFilters:
    classroom = _pick(raw, "classroomId", "classroom_id")
    classroom_id = None
    global_only = False
    if classroom is not None:
        if classroom.lower() == GLOBAL_SCOPE:
            global_only = True
        else:
            classroom_id = parse_uuid(classroom, "classroomId")

    unit = _pick(raw, "unitId", "unit_id")
    unit_id = None
    no_unit = False
    if unit is not None:
        if unit.lower() == NO_UNIT:
            no_unit = True
        else:
            unit_id = parse_uuid(unit, "unitId")

    status = _pick(raw, "status", "status")
    if status is not None:
        try:
            status = ThreadStatus(status.upper())
        except ValueError:
            raise ValidationError("status must be UNANSWERED or RESOLVED")

    author = _pick(raw, "authorId", "author_id")
    date_from, _ = _parse_moment(_pick(raw, "dateFrom", "date_from"), "dateFrom")
    date_to, date_to_exclusive = _parse_moment(_pick(raw, "dateTo", "date_to"), "dateTo", end_of_day=True)
    if date_from and date_to and date_from > date_to:
        raise ValidationError("dateFrom must not be after dateTo")

    return ThreadFilters(
        classroom_id=classroom_id,
        global_only=global_only,
        unit_id=unit_id,
        no_unit=no_unit,
        status=status,
        author_id=parse_uuid(author, "authorId") if author is not None else None,
        date_from=date_from,
        date_to=date_to,
        date_to_exclusive=date_to_exclusive,
        has_replies=_parse_bool(_pick(raw, "hasReplies", "has_replies"), "hasReplies"),
        has_likes=_parse_bool(_pick(raw, "hasLikes", "has_likes"), "hasLikes"),
    )


# ------------------------------
# SQL building
# ------------------------------
def replies_count_expr():
    return (
        select(func.count(Reply.id))
        .where(Reply.parent_id == Thread.id)
        .correlate(Thread)
        .scalar_subquery()
    )


def _has_replies():
    return exists().where(Reply.parent_id == Thread.id).correlate(Thread)


def _has_likes():
    return (
        exists()
        .where(ThreadLike.thread_id == Thread.id, ThreadLike.is_liked.is_(True))
        .correlate(Thread)
    )


def build_thread_conditions(filters: ThreadFilters, scoped_by_unit: bool = False) -> list:
    conditions = [Thread.parent_id.is_(None)]

    # unit-scoped access already pins the classroom through membership
    if not scoped_by_unit:
        if filters.classroom_id is not None:
            conditions.append(Thread.classroom_id == filters.classroom_id)
        elif filters.global_only:
            conditions.append(Thread.classroom_id.is_(None))
        else:
            conditions.append(Thread.classroom_id.is_(None))
            if not filters.unit_given:
                conditions.append(Thread.unit_id.is_(None))

    if filters.no_unit:
        conditions.append(Thread.unit_id.is_(None))
    elif filters.unit_id is not None:
        conditions.append(Thread.unit_id == filters.unit_id)

    if filters.status is not None:
        conditions.append(Thread.status == filters.status)
    if filters.author_id is not None:
        conditions.append(Thread.author_id == filters.author_id)
    if filters.date_from is not None:
        conditions.append(Thread.created_at >= filters.date_from)
    if filters.date_to is not None:
        if filters.date_to_exclusive:
            conditions.append(Thread.created_at < filters.date_to)
        else:
            conditions.append(Thread.created_at <= filters.date_to)

    if filters.has_replies is True:
        conditions.append(_has_replies())
    elif filters.has_replies is False:
        conditions.append(~_has_replies())

    if filters.has_likes is True:
        conditions.append(_has_likes())
    elif filters.has_likes is False:
        conditions.append(~_has_likes())

    return conditions


# sortBy value -> (sort key, default direction)
SORT_ALIASES = {
    "mostReplied": ("replies", "desc"),
    "mostLiked": ("likes", "desc"),
    "alphabetical": ("alpha", "asc"),
    "mostRecent": ("updated", "desc"),
    "newest": ("created", "desc"),
    "oldest": ("created", "asc"),
    "createdAt": ("created", "desc"),
    "updatedAt": ("updated", "desc"),
    "title": ("alpha", "asc"),
}

THREAD_DEFAULT_SORT = ("created", "desc")
REPLY_DEFAULT_SORT = ("created", "asc")


def resolve_ordering(
    sort_by: Optional[str],
    sort_order: Optional[str],
    replies_count=None,
    likes_count=None,
    default: tuple[str, str] = THREAD_DEFAULT_SORT,
) -> list:
    """
    Resolve sort directives to ORDER BY clauses.

    ``replies_count`` / ``likes_count`` are the labelled count columns of the
    enclosing select; a key whose column is not available falls back to the
    default. An unknown ``sort_by`` also falls back to the default, ignoring
    ``sort_order``. The thread id is always the final tie-breaker.
    """
    if sort_order is not None and sort_order.lower() not in ("asc", "desc"):
        raise ValidationError("sortOrder must be asc or desc")

    key, direction = default
    if sort_by is None:
        if sort_order is not None:
            direction = sort_order.lower()
    elif sort_by in SORT_ALIASES:
        key, direction = SORT_ALIASES[sort_by]
        if sort_order is not None:
            direction = sort_order.lower()

    columns = {
        "created": Thread.created_at,
        "updated": Thread.updated_at,
        "alpha": func.lower(func.coalesce(Thread.title, Thread.content)),
        "replies": replies_count,
        "likes": likes_count,
    }
    column = columns.get(key)
    if column is None:
        key, direction = default
        column = columns[key]

    if direction == "asc":
        return [column.asc(), Thread.id.asc()]
    return [column.desc(), Thread.id.desc()]
