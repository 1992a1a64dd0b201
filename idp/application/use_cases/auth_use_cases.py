# idp/application/use_cases/auth_use_cases.py (async version)

"""
Service for user authentication.

This module implements the authentication operations exposed to the API:
registration, throttled login, logout, token refresh, authentication
checks and the password reset/change flows.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from idp.adapters.configuration.config import AuthConfig
from idp.application.dtos.user_dto import (
    AuthenticationStatus,
    PasswordResetTicket,
    TokenData,
    UserCreate,
    UserOutput,
    UserUpdate,
)
from idp.application.ports.inbound import IAuthUseCase
from idp.application.ports.outbound import (
    ICredentialStore,
    IEventPublisher,
    IPasswordHasher,
    ITokenService,
)
from idp.domain.exceptions import (
    AccountBlockedException,
    IDPException,
    InternalFailureException,
    InvalidCredentialsException,
    InvalidInputException,
    InvalidTokenException,
    ResourceAlreadyExistsException,
    TokenExpiredException,
    TokenRevokedException,
    TooManyAttemptsException,
    UserNotFoundException,
)
from idp.domain.models.user_domain_model import User
from idp.domain.services.auth_service import LoginThrottle

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AsyncAuthService(IAuthUseCase):
    """
    Service for user authentication.

    Composes the credential store, password hasher, token manager and event
    publisher. Holds no mutable state of its own: every request works on the
    user record it loads.
    """

    def __init__(
            self,
            user_store: ICredentialStore,
            hasher: IPasswordHasher,
            tokens: ITokenService,
            publisher: IEventPublisher,
            config: AuthConfig,
            clock: Callable[[], datetime] = utc_now,
    ):
        self.users = user_store
        self.hasher = hasher
        self.tokens = tokens
        self.publisher = publisher
        self.config = config
        self.throttle = LoginThrottle(
            max_attempts_before_block=config.max_login_attempts_before_block,
            base_block_duration=config.base_block_duration,
            min_time_between_attempts=config.min_time_between_attempts,
        )
        self._now = clock

    async def _publish_quietly(self, topic: str, payload: Dict[str, Any]) -> None:
        # Notification failures must not abort the operation that triggered them.
        try:
            await self.publisher.publish(topic, payload)
        except InternalFailureException as e:
            logger.error(f"Error sending message to topic '{topic}': {e}")

    def _hash_password(self, password: str) -> str:
        if not password:
            raise InvalidInputException(detail="Password must not be empty")
        return self.hasher.hash(password)

    async def register(self, user_input: UserCreate) -> UserOutput:
        """
        Register a new user and announce it on the account-created topic.

        Raises:
            ResourceAlreadyExistsException: If the email is already in use
        """
        hashed_password = self._hash_password(user_input.password)
        user = await self.users.create(User(id=None, email=user_input.email, password=hashed_password))

        logger.info(f"Successfully registered user: {user.email}")
        await self._publish_quietly(self.config.account_created_topic, {"email": user.email})

        return UserOutput.model_validate(user)

    async def login(self, email: str, password: str) -> TokenData:
        """
        Authenticate a user and generate access and refresh tokens.

        Raises:
            InvalidCredentialsException: Unknown email or wrong password
            AccountBlockedException: Account is inside a block window
            TooManyAttemptsException: Previous attempt is too recent
        """
        user = await self.users.get_by_email(email)
        if user is None:
            logger.warning(f"Login attempt with non-existent email: {email}")
            raise InvalidCredentialsException()

        now = self._now()
        if self.throttle.is_blocked(user, now):
            logger.warning(f"Login attempt for blocked user: {email}")
            raise AccountBlockedException()

        if self.throttle.is_debounced(user, now):
            logger.warning(f"Rapid subsequent login attempt detected for user: {email}")
            raise TooManyAttemptsException()

        if self.throttle.should_auto_unblock(user, now):
            self.throttle.auto_unblock(user)
            try:
                user = await self.users.update(user)
            except IDPException as e:
                logger.error(f"Failed to unblock account {email}: {e}")
                raise InternalFailureException(detail="Failed to unblock account", original_error=e)
            logger.info(f"Block expired, account unblocked: {email}")

        if not self.hasher.compare(user.password, password):
            await self._register_failed_attempt(user, now)
            raise InvalidCredentialsException()

        self.throttle.register_success(user, now)
        try:
            await self.users.update(user)
        except IDPException as e:
            logger.error(f"Failed to reset failed attempts for user {email}: {e}")

        pair = self.tokens.mint_pair(user.id)
        logger.info(f"Successfully logged in user: {email}")
        return TokenData.from_pair(pair)

    async def _register_failed_attempt(self, user: User, now: datetime) -> None:
        blocked_until = self.throttle.register_failure(user, now)
        if blocked_until is not None:
            logger.warning(f"User {user.email} is blocked until {blocked_until.isoformat()}")
            await self._publish_quietly(
                self.config.account_blocked_topic,
                {"email": user.email, "blocked_until": blocked_until},
            )
        else:
            logger.warning(f"Password mismatch for user {user.email} ({user.failed_attempts} failed attempt(s))")

        try:
            await self.users.update(user)
        except IDPException as e:
            logger.error(f"Failed to update user after failed login: {e}")

    async def logout(self, access_token: str) -> None:
        """
        Revoke the access token and its refresh token until they expire.

        Raises:
            InvalidTokenException: If the access token does not verify
        """
        claims = await self.tokens.revoke(access_token)
        logger.info(
            f"Successfully logged out user {claims.sub}: blocked access {claims.access_uuid} "
            f"and refresh {claims.refresh_uuid}"
        )

    async def refresh_token(self, refresh_token: str) -> TokenData:
        """
        Generate a new access token from a valid refresh token.

        The refresh token is returned unchanged.

        Raises:
            InvalidTokenException: If the refresh token does not verify
            TokenRevokedException: If the refresh token was revoked
        """
        access_token, expires, claims = await self.tokens.refresh(refresh_token)
        logger.info(f"Successfully renewed access token for user: {claims.sub}")
        return TokenData(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=datetime.fromtimestamp(expires, tz=timezone.utc),
            refresh_expires_at=datetime.fromtimestamp(claims.exp, tz=timezone.utc),
        )

    async def is_user_authenticated(
            self, access_token: Optional[str], refresh_token: Optional[str] = None
    ) -> AuthenticationStatus:
        """
        Check the access token; when it is not valid, try to mint a new one
        from the refresh token.

        Raises:
            InternalFailureException: If the block list cannot be queried
        """
        if access_token and await self.tokens.is_valid(access_token):
            return AuthenticationStatus(authenticated=True)

        if not refresh_token:
            return AuthenticationStatus(authenticated=False)

        try:
            renewed = await self.refresh_token(refresh_token)
        except (InvalidTokenException, TokenRevokedException) as e:
            logger.info(f"Refresh fallback rejected: {e}")
            return AuthenticationStatus(authenticated=False)

        return AuthenticationStatus(
            authenticated=True,
            access_token=renewed.access_token,
            expires_at=renewed.expires_at,
        )

    async def request_password_reset(self, email: str) -> PasswordResetTicket:
        """
        Issue a reset token and publish it for delivery to the user.

        Raises:
            InvalidInputException: Unknown email (generic message)
            InternalFailureException: If the token could not be stored or published
        """
        user = await self.users.get_by_email(email)
        if user is None:
            logger.warning(f"Password reset requested for non-existent email: {email}")
            raise InvalidInputException(detail="Unable to process password reset request")

        user.reset_password_token = secrets.token_urlsafe(32)
        user.reset_token_expires = self._now() + self.config.reset_token_duration
        await self.users.update(user)

        # The token is undeliverable without the notification, so failure here is fatal.
        try:
            await self.publisher.publish(
                self.config.password_reset_topic,
                {
                    "email": user.email,
                    "reset_token": user.reset_password_token,
                    "token_expires_in": int(user.reset_token_expires.timestamp()),
                },
            )
        except InternalFailureException as e:
            logger.error(f"Error sending reset token message: {e}")
            raise InternalFailureException(detail="Failed to send reset token", original_error=e)

        logger.info(f"Successfully sent reset token to user: {email}")
        return PasswordResetTicket(reset_token=user.reset_password_token, expires_at=user.reset_token_expires)

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        """
        Set a new password using a reset token. The token is single-use.

        Raises:
            InvalidTokenException: Unknown token
            TokenExpiredException: Token past its expiry
        """
        user = await self.users.get_by_reset_token(token) if token else None
        if user is None:
            raise InvalidTokenException(detail="Invalid reset token")

        if user.reset_token_expires is None or user.reset_token_expires < self._now():
            raise TokenExpiredException()

        user.password = self._hash_password(new_password)
        user.clear_reset_token()
        await self.users.update(user)
        logger.info(f"Password reset confirmed for user: {user.id}")

    async def change_password(self, user_id: UUID, new_password: str) -> None:
        """
        Set a new password for an authenticated user.

        Raises:
            UserNotFoundException: If the user no longer exists
        """
        user = await self.users.get(user_id)
        if user is None:
            raise UserNotFoundException(user_id=user_id)

        user.password = self._hash_password(new_password)
        user.clear_reset_token()
        await self.users.update(user)
        logger.info(f"Successfully changed password for user: {user.email}")

    async def get_current_user(self, user_id: UUID) -> UserOutput:
        user = await self.users.get(user_id)
        if user is None:
            raise UserNotFoundException(user_id=user_id)
        return UserOutput.model_validate(user)

    async def update_current_user(self, user_id: UUID, user_input: UserUpdate) -> UserOutput:
        """
        Update the e-mail and/or password of an authenticated user.

        The e-mail is checked before anything is written, so a clash leaves
        the password untouched.

        Raises:
            UserNotFoundException: If the user no longer exists
            ResourceAlreadyExistsException: If another account uses the new e-mail
        """
        user = await self.users.get(user_id)
        if user is None:
            raise UserNotFoundException(user_id=user_id)

        new_email = user_input.email
        if new_email and new_email != user.email:
            existing = await self.users.get_by_email(new_email)
            if existing is not None and existing.id != user.id:
                logger.warning(f"Profile update rejected, e-mail already in use: {new_email}")
                raise ResourceAlreadyExistsException(detail=f"User with email '{new_email}' already exists")

        if user_input.password:
            await self.change_password(user_id, user_input.password)
            user = await self.users.get(user_id)

        if new_email and new_email != user.email:
            user.email = new_email
            user = await self.users.update(user)
            logger.info(f"User {user_id} changed e-mail to {new_email}")

        return UserOutput.model_validate(user)
