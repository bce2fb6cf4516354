# lms_forum/utils/ids.py
import re
from typing import Optional
from uuid import UUID

from lms_forum.errors import ValidationError

UUID_V4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(UUID_V4_RE.match(value.strip()))


def parse_uuid(value, field: str = "id") -> UUID:
    """
    Validate an id coming from a path, query string or body.
    Raises ValidationError (400) for anything that is not a v4 UUID.
    """
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str) or not is_valid_uuid(value):
        raise ValidationError(f"Invalid {field} format. Must be a valid UUID.")
    return UUID(value.strip())


def parse_optional_uuid(value, field: str = "id") -> Optional[UUID]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_uuid(value, field)
