from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from lms_forum.config import ALGORITHM, SECRET_KEY
from lms_forum.database import get_async_session
from lms_forum.errors import UnauthorizedError
from lms_forum.models.user_model import User

# Tokens are issued by the auth service; this side only verifies them.
# auto_error=False so a missing token is reported as our own 401
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _get_secret_key() -> str:
    if not SECRET_KEY:
        raise RuntimeError("SECRET_KEY is not configured in the backend environment")
    return SECRET_KEY


def decode_user_id(token: str) -> UUID:
    try:
        payload = jwt.decode(token, _get_secret_key(), algorithms=[ALGORITHM])
        user_id = payload.get("id")
        if user_id is None:
            raise UnauthorizedError("Could not validate credentials")
        return UUID(str(user_id))
    except (JWTError, ValueError):
        raise UnauthorizedError("Could not validate credentials")


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> User:
    if not token:
        raise UnauthorizedError("Not authenticated")

    user = await session.get(User, decode_user_id(token))
    if not user:
        raise UnauthorizedError("Could not validate credentials")

    return user


async def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> Optional[User]:
    """Like ``get_current_user`` but anonymous (or bad) tokens just give None."""
    if not token:
        return None
    try:
        user_id = decode_user_id(token)
    except UnauthorizedError:
        return None
    return await session.get(User, user_id)
