# idp/application/ports/outbound.py

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from idp.domain.models.user_domain_model import User
from idp.domain.models.token_domain_model import AccessClaims, RefreshClaims, TokenPair


class ICredentialStore(ABC):
    """User record persistence."""

    @abstractmethod
    async def get(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        pass

    @abstractmethod
    async def get_by_reset_token(self, token: str) -> Optional[User]:
        """Get user by password-reset token."""
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        """Create a new user."""
        pass

    @abstractmethod
    async def update(self, user: User) -> User:
        """Persist every field of an existing user."""
        pass


class IPasswordHasher(ABC):
    """One-way password hashing."""

    @abstractmethod
    def hash(self, password: str) -> str:
        pass

    @abstractmethod
    def compare(self, hashed_password: str, plain_password: str) -> bool:
        pass


class ITokenBlockList(ABC):
    """Revocation registry keyed by token id, entries expire on their own."""

    @abstractmethod
    async def add(self, token_id: str, ttl: timedelta) -> None:
        pass

    @abstractmethod
    async def contains(self, token_id: str) -> bool:
        pass


class IEventPublisher(ABC):
    """Fire-and-forget domain event emission."""

    @abstractmethod
    async def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        pass


class ITokenService(ABC):
    """Token handling interface."""

    @abstractmethod
    def mint_pair(self, subject: UUID) -> TokenPair:
        """Create an access token and the refresh token it is bound to."""
        pass

    @abstractmethod
    def mint_access(self, subject: UUID, refresh_uuid: str, refresh_exp: int) -> Tuple[str, int]:
        """Create an access token bound to an existing refresh token."""
        pass

    @abstractmethod
    def parse_access(self, token: str) -> AccessClaims:
        """Verify and decode an access token."""
        pass

    @abstractmethod
    def parse_refresh(self, token: str) -> RefreshClaims:
        """Verify and decode a refresh token."""
        pass

    @abstractmethod
    async def is_valid(self, access_token: str) -> bool:
        """Check an access token against its signature, expiry and the block list."""
        pass

    @abstractmethod
    async def refresh(self, refresh_token: str) -> Tuple[str, int, RefreshClaims]:
        """Mint a new access token from a non-revoked refresh token."""
        pass

    @abstractmethod
    async def revoke(self, access_token: str) -> AccessClaims:
        """Block an access token and its bound refresh token."""
        pass
