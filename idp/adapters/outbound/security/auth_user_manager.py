# idp/adapters/outbound/security/auth_user_manager.py

import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Tuple, Type, TypeVar
from uuid import UUID

from jose import jwt, JWTError, ExpiredSignatureError
from jose.constants import ALGORITHMS
from pydantic import ValidationError

from idp.adapters.configuration.config import AuthConfig
from idp.application.ports.outbound import ITokenBlockList, ITokenService
from idp.domain.exceptions import (
    InvalidTokenException,
    InternalFailureException,
    TokenRevokedException,
)
from idp.domain.models.token_domain_model import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    AccessClaims,
    BaseClaims,
    RefreshClaims,
    TokenPair,
)

logger = logging.getLogger(__name__)

ClaimsT = TypeVar("ClaimsT", bound=BaseClaims)

# Any HMAC variant is accepted on decode, nothing outside the family.
ACCEPTED_ALGORITHMS = sorted(ALGORITHMS.HMAC)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserAuthManager(ITokenService):
    """
    JWT session token manager for users.

    Mints access/refresh pairs signed with the shared secret and turns
    incoming token strings back into typed claims.
    """

    def __init__(
            self,
            config: AuthConfig,
            block_list: ITokenBlockList,
            clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.block_list = block_list
        self._now = clock

    def _encode(self, payload: Dict[str, Any]) -> str:
        try:
            return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)
        except JWTError as e:
            logger.error(f"Failed to sign token: {e}")
            raise InternalFailureException(detail="Failed to generate token", original_error=e)

    def create_refresh_token(self, subject: UUID) -> Tuple[str, str, int]:
        """
        Create a JWT refresh token.

        - subject: the user's UUID.

        Returns the encoded token, its refresh_uuid and its expiry (unix seconds).
        """
        refresh_uuid = str(uuid.uuid4())
        expires = int((self._now() + self.config.refresh_token_duration).timestamp())
        payload = {
            "sub": str(subject),
            "refresh_uuid": refresh_uuid,
            "exp": expires,
            "type": REFRESH_TOKEN_TYPE,
        }
        return self._encode(payload), refresh_uuid, expires

    def create_access_token(self, subject: UUID, refresh_uuid: str, refresh_exp: int) -> Tuple[str, str, int]:
        """
        Create a JWT access token bound to a refresh token.

        Returns the encoded token, its access_uuid and its expiry (unix seconds).
        """
        access_uuid = str(uuid.uuid4())
        expires = int((self._now() + self.config.access_token_duration).timestamp())
        payload = {
            "sub": str(subject),
            "access_uuid": access_uuid,
            "refresh_uuid": refresh_uuid,
            "refresh_exp": int(refresh_exp),
            "exp": expires,
            "type": ACCESS_TOKEN_TYPE,
        }
        return self._encode(payload), access_uuid, expires

    def mint_pair(self, subject: UUID) -> TokenPair:
        refresh_token, refresh_uuid, refresh_expires = self.create_refresh_token(subject)
        access_token, access_uuid, access_expires = self.create_access_token(
            subject, refresh_uuid, refresh_expires
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_uuid=access_uuid,
            refresh_uuid=refresh_uuid,
            access_expires=access_expires,
            refresh_expires=refresh_expires,
        )

    def mint_access(self, subject: UUID, refresh_uuid: str, refresh_exp: int) -> Tuple[str, int]:
        access_token, _, expires = self.create_access_token(subject, refresh_uuid, refresh_exp)
        return access_token, expires

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify signature, algorithm family and expiry of a JWT.

        Raises:
            InvalidTokenException: For any token that does not verify
        """
        if not token:
            raise InvalidTokenException(detail="Missing token")
        try:
            return jwt.decode(token, self.config.jwt_secret, algorithms=ACCEPTED_ALGORITHMS)
        except ExpiredSignatureError:
            raise InvalidTokenException(detail="Token expired")
        except JWTError as e:
            logger.warning(f"Rejected token: {e}")
            raise InvalidTokenException(detail="Invalid or expired token")

    def _parse(self, token: str, claims_type: Type[ClaimsT]) -> ClaimsT:
        payload = self.decode(token)
        try:
            return claims_type.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Token claims do not match {claims_type.__name__}: {e.error_count()} error(s)")
            raise InvalidTokenException(detail="Invalid token claims")

    def parse_access(self, token: str) -> AccessClaims:
        return self._parse(token, AccessClaims)

    def parse_refresh(self, token: str) -> RefreshClaims:
        return self._parse(token, RefreshClaims)

    async def is_valid(self, access_token: str) -> bool:
        """
        True iff the access token verifies and its access_uuid is not blocked.

        Raises:
            InternalFailureException: If the block list cannot be queried
        """
        try:
            claims = self.parse_access(access_token)
        except InvalidTokenException:
            return False

        if await self.block_list.contains(claims.access_uuid):
            logger.warning(f"Access token {claims.access_uuid} is blocked")
            return False
        return True

    async def refresh(self, refresh_token: str) -> Tuple[str, int, RefreshClaims]:
        """
        Mint a new access token from a refresh token.

        The refresh token itself is not reissued: the new access token is
        bound to the same refresh_uuid and keeps its original expiry.

        Raises:
            InvalidTokenException: If the refresh token does not verify
            TokenRevokedException: If the refresh token was revoked
        """
        claims = self.parse_refresh(refresh_token)
        if await self.block_list.contains(claims.refresh_uuid):
            logger.warning(f"Refresh token {claims.refresh_uuid} is blocked")
            raise TokenRevokedException(detail="Refresh token is blocked")

        access_token, expires = self.mint_access(claims.sub, claims.refresh_uuid, claims.exp)
        return access_token, expires, claims

    async def revoke(self, access_token: str) -> AccessClaims:
        """
        Block the access token and the refresh token it is bound to.

        Each entry lives exactly as long as the token it blocks. The two
        writes are not atomic: if the second one fails the access token
        stays blocked and the error propagates.
        """
        claims = self.parse_access(access_token)
        now = int(self._now().timestamp())
        access_ttl = timedelta(seconds=claims.exp - now)
        refresh_ttl = timedelta(seconds=claims.refresh_exp - now)

        await self.block_list.add(claims.access_uuid, access_ttl)
        try:
            await self.block_list.add(claims.refresh_uuid, refresh_ttl)
        except InternalFailureException:
            logger.error(
                f"Access token {claims.access_uuid} blocked but refresh token "
                f"{claims.refresh_uuid} could not be blocked for user {claims.sub}"
            )
            raise
        return claims
