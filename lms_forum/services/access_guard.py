# lms_forum/services/access_guard.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_forum.logging_config import get_logger
from lms_forum.models.classroom_model import (
    Faculty,
    Student,
    Unit,
    VirtualClassroom,
    VirtualClassroomStudent,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class UnitRef:
    id: UUID
    classroom_id: Optional[UUID]


class UnitDirectory:
    """Unit lookups against the course service's tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, unit_id: UUID) -> Optional[UnitRef]:
        row = (
            await self.db.execute(select(Unit.id, Unit.classroom_id).where(Unit.id == unit_id))
        ).first()
        if row is None:
            return None
        return UnitRef(id=row.id, classroom_id=row.classroom_id)


class AccessGuard:
    """
    Decides whether a user belongs to a virtual classroom.

    A user is a member when they have a student enrollment in the classroom
    or own it as its faculty. Users without a student or faculty profile
    are simply not members through that path.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def check_classroom_membership(self, user_id: UUID, classroom_id: UUID) -> bool:
        try:
            enrolled = (
                await self.db.execute(
                    select(VirtualClassroomStudent.id)
                    .join(Student, Student.id == VirtualClassroomStudent.student_id)
                    .where(
                        Student.user_id == user_id,
                        VirtualClassroomStudent.classroom_id == classroom_id,
                    )
                    .limit(1)
                )
            ).scalar_one_or_none()
            if enrolled is not None:
                return True

            teaches = (
                await self.db.execute(
                    select(VirtualClassroom.id)
                    .join(Faculty, Faculty.id == VirtualClassroom.faculty_id)
                    .where(Faculty.user_id == user_id, VirtualClassroom.id == classroom_id)
                    .limit(1)
                )
            ).scalar_one_or_none()
            return teaches is not None
        except SQLAlchemyError:
            logger.exception(
                "classroom_membership_check_failed",
                user_id=str(user_id),
                classroom_id=str(classroom_id),
            )
            raise

    async def classroom_exists(self, classroom_id: UUID) -> bool:
        found = (
            await self.db.execute(select(VirtualClassroom.id).where(VirtualClassroom.id == classroom_id))
        ).scalar_one_or_none()
        return found is not None
