# idp/adapters/inbound/api/deps.py (async version)

"""
Dependencies for injection into API endpoints.

This module wires the production adapters into the auth service and
resolves the authenticated user of a request from its access token.
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Cookie, Depends, Response, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from idp.adapters.configuration.config import settings
from idp.adapters.outbound.cache.redis_block_list import RedisTokenBlockList
from idp.adapters.outbound.messaging.redis_event_publisher import RedisEventPublisher
from idp.adapters.outbound.persistence.database import get_db
from idp.adapters.outbound.persistence.repositories.user_repository import AsyncUserRepository
from idp.adapters.outbound.security.auth_user_manager import UserAuthManager
from idp.adapters.outbound.security.password_hasher import BcryptPasswordHasher
from idp.application.ports.inbound import IAuthUseCase
from idp.application.use_cases.auth_use_cases import AsyncAuthService
from idp.domain.exceptions import InvalidTokenException, TokenRevokedException

# Configure logger
logger = logging.getLogger(__name__)

# Bearer scheme; optional so the cookie can be used instead
bearer_scheme = HTTPBearer(auto_error=False)

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


########################################################################
# Process-wide adapters
########################################################################

@lru_cache
def get_block_list() -> RedisTokenBlockList:
    return RedisTokenBlockList.from_url(settings.REDIS_URL, key_prefix=settings.BLOCK_LIST_KEY_PREFIX)


@lru_cache
def get_event_publisher() -> RedisEventPublisher:
    return RedisEventPublisher.from_url(settings.REDIS_URL)


@lru_cache
def get_password_hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS)


@lru_cache
def get_token_manager() -> UserAuthManager:
    return UserAuthManager(settings.auth_config(), block_list=get_block_list())


########################################################################
# Auth service
########################################################################

async def get_auth_service(db: AsyncSession = Depends(get_db)) -> IAuthUseCase:
    """
    Build the auth service for one request, on that request's session.
    """
    return AsyncAuthService(
        user_store=AsyncUserRepository(db),
        hasher=get_password_hasher(),
        tokens=get_token_manager(),
        publisher=get_event_publisher(),
        config=settings.auth_config(),
    )


async def get_token_service() -> UserAuthManager:
    return get_token_manager()


########################################################################
# User Token Authentication
########################################################################

def set_token_cookie(response: Response, name: str, value: str, expires_at: datetime) -> None:
    response.set_cookie(
        key=name,
        value=value,
        expires=expires_at,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        path="/",
    )


def _bearer_or_cookie(
        credentials: Optional[HTTPAuthorizationCredentials], access_token: Optional[str]
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return access_token or None


def get_access_token(
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
        access_token: Optional[str] = Cookie(None),
) -> str:
    """
    Extract the access token from the Authorization header, or from the
    ``access_token`` cookie when the header is absent.

    Raises:
        InvalidTokenException: If neither carries a token
    """
    token = _bearer_or_cookie(credentials, access_token)
    if not token:
        raise InvalidTokenException(detail="Invalid or malformed auth token")
    return token


async def get_current_user_id(
        response: Response,
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
        access_token: Optional[str] = Cookie(None),
        refresh_token: Optional[str] = Cookie(None),
        tokens: UserAuthManager = Depends(get_token_service),
) -> UUID:
    """
    Resolve the authenticated user id.

    A valid, non-revoked access token is enough. Otherwise the
    ``refresh_token`` cookie is used to mint a new access token, which is
    set as the ``access_token`` cookie of the response.

    Raises:
        InvalidTokenException: If neither token gets the request through
    """
    token = _bearer_or_cookie(credentials, access_token)
    if token and await tokens.is_valid(token):
        return tokens.parse_access(token).sub

    if not refresh_token:
        logger.warning("Rejected request with invalid or revoked access token")
        raise InvalidTokenException(detail="Invalid or expired token")

    try:
        new_access_token, expires, claims = await tokens.refresh(refresh_token)
    except (InvalidTokenException, TokenRevokedException) as e:
        logger.warning(f"Access token invalid and refresh fallback rejected: {e}")
        raise InvalidTokenException(detail="Invalid or expired token")

    set_token_cookie(
        response,
        ACCESS_TOKEN_COOKIE,
        new_access_token,
        datetime.fromtimestamp(expires, tz=timezone.utc),
    )
    logger.info(f"Access token renewed from refresh cookie for user: {claims.sub}")
    return claims.sub
