# idp/domain/models/token_domain_model.py

"""
Typed JWT claim sets.

A decoded token payload is only ever read through one of these models, so a
missing or mistyped claim surfaces as a validation error at decode time
instead of at the first field access.
"""

from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class BaseClaims(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    sub: UUID
    exp: int


class RefreshClaims(BaseClaims):
    """Claims of a refresh token: subject, its own id and expiry."""
    type: Literal["refresh"]
    refresh_uuid: str


class AccessClaims(BaseClaims):
    """
    Claims of an access token.

    ``refresh_uuid``/``refresh_exp`` bind the access token to the refresh
    token it was minted with, so logout can revoke both.
    """
    type: Literal["access"]
    access_uuid: str
    refresh_uuid: str
    refresh_exp: int


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh tokens minted together. Expiries are unix seconds."""
    access_token: str
    refresh_token: str
    access_uuid: str
    refresh_uuid: str
    access_expires: int
    refresh_expires: int
