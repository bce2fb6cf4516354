# lms_forum/models/classroom_model.py
"""
Read-only mappings of the classroom tables owned by the course service.

The forum only needs enough of them to answer two questions: which
classroom a unit belongs to, and whether a user is enrolled in (or
teaches) a classroom.
"""
import uuid

from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from lms_forum.config import DB_SCHEMA
from lms_forum.database import Base

SCHEMA = DB_SCHEMA


class Student(Base):
    __tablename__ = "students"
    __table_args__ = ({"schema": SCHEMA},)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )


class Faculty(Base):
    __tablename__ = "faculty"
    __table_args__ = ({"schema": SCHEMA},)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )


class VirtualClassroom(Base):
    __tablename__ = "virtual_classrooms"
    __table_args__ = ({"schema": SCHEMA},)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    faculty_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.faculty.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class VirtualClassroomStudent(Base):
    __tablename__ = "virtual_classroom_students"
    __table_args__ = (
        UniqueConstraint("classroom_id", "student_id", name="uq_classroom_student"),
        {"schema": SCHEMA},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    classroom_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.virtual_classrooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class Unit(Base):
    __tablename__ = "units"
    __table_args__ = ({"schema": SCHEMA},)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    classroom_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.virtual_classrooms.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
