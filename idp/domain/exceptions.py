# idp/domain/exceptions.py

"""
Application exceptions.

This module defines the application-specific exceptions. Each one carries
the HTTP status code it maps to and a stable ``internal_code`` that the
exception middleware returns to the client alongside the message.
"""

from fastapi import HTTPException, status
from typing import Any, Dict, Optional


class IDPException(HTTPException):
    """
    Base exception for every identity-provider error.
    Extends FastAPI's HTTPException to carry an internal error code.
    """

    def __init__(
            self,
            status_code: int,
            detail: Any = None,
            headers: Optional[Dict[str, Any]] = None,
            internal_code: Optional[str] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.internal_code = internal_code

    def __str__(self) -> str:
        return str(self.detail)


class InvalidCredentialsException(IDPException):
    """Wrong e-mail/password pair. Never tells which half was wrong."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            internal_code="INVALID_CREDENTIALS"
        )


class AccountBlockedException(IDPException):
    """Account is temporarily blocked after too many failed logins."""

    def __init__(self, detail: str = "Account is blocked"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            internal_code="ACCOUNT_BLOCKED"
        )


class TooManyAttemptsException(IDPException):
    """Login attempted again before the minimum interval elapsed."""

    def __init__(self, detail: str = "Please wait a moment before trying again"):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            internal_code="TOO_MANY_ATTEMPTS"
        )


class InvalidTokenException(IDPException):
    """Malformed, wrongly signed or expired token."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            internal_code="INVALID_TOKEN"
        )


class TokenRevokedException(IDPException):
    """Token identifier is present in the block list."""

    def __init__(self, detail: str = "Token has been revoked"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            internal_code="TOKEN_REVOKED"
        )


class TokenExpiredException(IDPException):
    """Password-reset token is past its expiry."""

    def __init__(self, detail: str = "Token expired"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            internal_code="TOKEN_EXPIRED"
        )


class UserNotFoundException(IDPException):
    """User not found."""

    def __init__(self, detail: str = "User not found", user_id: Any = None):
        user_info = f" (ID: {user_id})" if user_id is not None else ""
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{detail}{user_info}",
            internal_code="USER_NOT_FOUND"
        )


class ResourceAlreadyExistsException(IDPException):
    """Resource already exists."""

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            internal_code="RESOURCE_ALREADY_EXISTS"
        )


class InvalidInputException(IDPException):
    """Invalid input data."""

    def __init__(self, detail: str = "Invalid input data", fields: Optional[Dict[str, str]] = None):
        field_errors = ""
        if fields:
            field_errors = ": " + ", ".join([f"{field}: {error}" for field, error in fields.items()])

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{detail}{field_errors}",
            internal_code="INVALID_INPUT"
        )


class InternalFailureException(IDPException):
    """Store, hasher, block-list or event-bus failure. The cause stays in the logs."""

    def __init__(self, detail: str = "Internal error", original_error: Optional[Exception] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            internal_code="INTERNAL_FAILURE"
        )
        self.original_error = original_error
