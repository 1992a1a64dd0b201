# idp/domain/__init__.py

"""
Domain components: entities, the login throttle and the exception taxonomy.
"""

from idp.domain.exceptions import (
    IDPException,
    InvalidCredentialsException,
    AccountBlockedException,
    TooManyAttemptsException,
    InvalidTokenException,
    TokenRevokedException,
    TokenExpiredException,
    UserNotFoundException,
    ResourceAlreadyExistsException,
    InvalidInputException,
    InternalFailureException,
)

__all__ = [
    "IDPException",
    "InvalidCredentialsException",
    "AccountBlockedException",
    "TooManyAttemptsException",
    "InvalidTokenException",
    "TokenRevokedException",
    "TokenExpiredException",
    "UserNotFoundException",
    "ResourceAlreadyExistsException",
    "InvalidInputException",
    "InternalFailureException",
]
