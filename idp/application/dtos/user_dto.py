# idp/application/dtos/user_dto.py

"""
User and authentication DTOs.

Pydantic schemas used to validate and serialize registration, login,
token and password-reset data.
"""

from uuid import UUID
from datetime import datetime, timezone
from typing import Optional
from idp.application.dtos.base_dto import CustomBaseModel
from idp.domain.models.token_domain_model import TokenPair
from pydantic import EmailStr, Field


class UserBase(CustomBaseModel):
    email: EmailStr = Field(..., description="User email. Must be valid and unique.")


class UserCreate(UserBase):
    """
    Schema for registering a new user.
    """
    password: str = Field(..., min_length=1, max_length=72, description="User password.")


class UserUpdate(CustomBaseModel):
    """
    Schema for updating the authenticated user. Omitted fields stay unchanged.
    """
    email: Optional[EmailStr] = Field(None, description="New e-mail. Must not belong to another account.")
    password: Optional[str] = Field(None, min_length=1, max_length=72, description="New password.")


class UserOutput(UserBase):
    """
    Schema for returning user data without exposing credentials.
    """
    id: UUID = Field(..., description="Unique identifier of the user.")
    is_blocked: bool = Field(False, description="Whether the account is temporarily blocked.")
    created_at: Optional[datetime] = Field(None, description="Creation time.")


class TokenData(CustomBaseModel):
    """
    Schema for authentication token data.
    """
    access_token: str = Field(..., description="JWT access token.")
    refresh_token: str = Field(..., description="Refresh token used to obtain new access tokens.")
    token_type: str = Field("bearer", description="Token type.")
    expires_at: datetime = Field(..., description="Access token expiration time.")
    refresh_expires_at: datetime = Field(..., description="Refresh token expiration time.")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenData":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_at=datetime.fromtimestamp(pair.access_expires, tz=timezone.utc),
            refresh_expires_at=datetime.fromtimestamp(pair.refresh_expires, tz=timezone.utc),
        )


class RefreshTokenRequest(CustomBaseModel):
    """
    Schema for a refresh request. The cookie is used when the body omits the token.
    """
    refresh_token: Optional[str] = Field(None, description="Refresh token to obtain a new access token.")


class PasswordResetTicket(CustomBaseModel):
    """Reset token issued for an account, and its expiry."""
    reset_token: str
    expires_at: datetime


class AuthenticationStatus(CustomBaseModel):
    """
    Outcome of an authentication check.

    ``access_token``/``expires_at`` are only set when a new access token had
    to be minted from the refresh token.
    """
    authenticated: bool
    access_token: Optional[str] = None
    expires_at: Optional[datetime] = None


class MessageResponse(CustomBaseModel):
    detail: str
