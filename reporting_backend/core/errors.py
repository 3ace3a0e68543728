"""HTTP-facing error taxonomy for the reporting API."""

from typing import Any

from fastapi import HTTPException, status


class Unauthenticated(HTTPException):
    """No session token was supplied on a protected call."""

    def __init__(self, detail: Any = None):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail or 'Session ID required')


class InvalidSession(HTTPException):
    """The token is unknown, or the identity behind it no longer exists."""

    def __init__(self, detail: Any = None):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail or 'Invalid or expired session')


class Forbidden(HTTPException):
    """The caller's role or ownership does not satisfy the operation."""

    def __init__(self, detail: Any = None):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail or 'Access denied')


class ValidationError(HTTPException):
    def __init__(self, detail: Any = None):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail or 'Invalid request')


class NotFound(HTTPException):
    def __init__(self, detail: Any = None):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail or 'Not found')


class InternalError(HTTPException):
    """Store failure or unexpected exception. The detail never carries the cause."""

    def __init__(self, detail: Any = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail or 'Internal server error',
        )
