import enum
import uuid

from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.dialects.postgresql import UUID

from lms_forum.config import DB_SCHEMA
from lms_forum.database import Base


class UserRole(str, enum.Enum):
    STUDENT = "STUDENT"
    FACULTY = "FACULTY"
    ADMIN = "ADMIN"
    PRINCIPAL = "PRINCIPAL"


class User(Base):
    # owned by the accounts service; read here for identity and author names
    __tablename__ = "users"
    __table_args__ = {"schema": DB_SCHEMA}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    role = Column(String, nullable=False, default=UserRole.STUDENT.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
