# lms_forum/errors.py
"""
Error taxonomy shared by the services and the HTTP boundary.

Services raise these; main.py turns them into ``{"detail": message}``
responses with the matching status code.
"""
from fastapi import status


class ForumError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(ForumError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ForumError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ForumError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ForumError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ForumError):
    # reserved for losers of an accept-answer race
    status_code = status.HTTP_409_CONFLICT


class InternalError(ForumError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
