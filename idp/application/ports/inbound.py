# idp/application/ports/inbound.py

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from idp.application.dtos.user_dto import (
    AuthenticationStatus,
    PasswordResetTicket,
    TokenData,
    UserCreate,
    UserOutput,
    UserUpdate,
)


class IAuthUseCase(ABC):
    """Interface for authentication use cases."""

    @abstractmethod
    async def register(self, user_input: UserCreate) -> UserOutput:
        """Register a new user."""
        pass

    @abstractmethod
    async def login(self, email: str, password: str) -> TokenData:
        """Authenticate a user and return a token pair."""
        pass

    @abstractmethod
    async def logout(self, access_token: str) -> None:
        """Revoke an access token and its refresh token."""
        pass

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> TokenData:
        """Mint a new access token from a refresh token."""
        pass

    @abstractmethod
    async def is_user_authenticated(
            self, access_token: Optional[str], refresh_token: Optional[str] = None
    ) -> AuthenticationStatus:
        """Check an access token, falling back to the refresh token."""
        pass

    @abstractmethod
    async def request_password_reset(self, email: str) -> PasswordResetTicket:
        """Issue a password-reset token."""
        pass

    @abstractmethod
    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        """Set a new password using a reset token."""
        pass

    @abstractmethod
    async def change_password(self, user_id: UUID, new_password: str) -> None:
        """Set a new password for an authenticated user."""
        pass

    @abstractmethod
    async def get_current_user(self, user_id: UUID) -> UserOutput:
        """Get the profile of an authenticated user."""
        pass

    @abstractmethod
    async def update_current_user(self, user_id: UUID, user_input: UserUpdate) -> UserOutput:
        """Change the e-mail and/or password of an authenticated user."""
        pass
