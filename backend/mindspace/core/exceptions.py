"""Application exceptions rendered as ``{"error": message}`` responses."""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import status
from loguru import logger


class APIError(Exception):
    """Base exception carrying an HTTP status and a client-facing message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(APIError):
    """Malformed input detected before touching the database."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Bad request"


class ForbiddenError(APIError):
    """Caller is not allowed to perform the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    message = "Forbidden"


class NotFoundError(APIError):
    """Referenced record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class InternalServerError(APIError):
    """Unexpected failure while serving a request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def failure_message(message: str) -> Iterator[None]:
    """
    Convert unexpected errors inside the block into an InternalServerError.

    APIError subclasses pass through unchanged so that 400/403/404 responses
    raised inside the block keep their status.

    Usage:
        with failure_message("Failed to fetch posts"):
            posts = await forum.list_posts()
    """
    try:
        yield
    except APIError:
        raise
    except Exception as e:
        logger.opt(exception=e).error(f"{message}: {e}")
        raise InternalServerError(message) from e


__all__ = [
    "APIError",
    "BadRequestError",
    "ForbiddenError",
    "NotFoundError",
    "InternalServerError",
    "failure_message",
]
