import enum
import uuid

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    ForeignKey,
    func,
    UniqueConstraint,
    Boolean,
    Enum as SqlEnum,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from lms_forum.config import DB_SCHEMA
from lms_forum.database import Base

SCHEMA = DB_SCHEMA


class ThreadStatus(str, enum.Enum):
    UNANSWERED = "UNANSWERED"
    RESOLVED = "RESOLVED"


class Thread(Base):
    """A top-level thread, or a reply when ``parent_id`` is set."""

    __tablename__ = "threads"
    __table_args__ = ({"schema": SCHEMA},)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # null on replies
    title = Column(String(200), nullable=True, index=True)
    content = Column(Text, nullable=False)

    author_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # null classroom_id = global thread
    classroom_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.virtual_classrooms.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    unit_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.units.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    parent_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.threads.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    status = Column(
        SqlEnum(ThreadStatus, name="thread_status", schema=SCHEMA),
        nullable=False,
        default=ThreadStatus.UNANSWERED,
        server_default=ThreadStatus.UNANSWERED.value,
    )
    accepted_answer_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.threads.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_reply(self) -> bool:
        return self.parent_id is not None


class ThreadLike(Base):
    # one row per (thread, user); unlike flips is_liked instead of deleting
    __tablename__ = "thread_likes"
    __table_args__ = (
        UniqueConstraint("thread_id", "user_id", name="uq_thread_like_user"),
        {"schema": SCHEMA},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    thread_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.threads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey(f"{SCHEMA}.users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_liked = Column(Boolean, nullable=False, server_default=text("true"))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
