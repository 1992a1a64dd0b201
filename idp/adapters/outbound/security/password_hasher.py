# idp/adapters/outbound/security/password_hasher.py

import logging

from passlib.context import CryptContext

from idp.application.ports.outbound import IPasswordHasher
from idp.domain.exceptions import InternalFailureException

logger = logging.getLogger(__name__)


class BcryptPasswordHasher(IPasswordHasher):
    """
    Password hasher backed by passlib's bcrypt scheme.
    """

    def __init__(self, rounds: int = 12):
        self.crypt_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        """Return the bcrypt hash of a plain text password."""
        try:
            return self.crypt_context.hash(password)
        except (ValueError, TypeError) as e:
            logger.error(f"Error hashing password: {e}")
            raise InternalFailureException(detail="Failed to hash password", original_error=e)

    def compare(self, hashed_password: str, plain_password: str) -> bool:
        """Verify if the plain text password matches the stored hash."""
        try:
            return self.crypt_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            # Unknown or corrupt hash: treat as a mismatch, never as a match.
            logger.error(f"Stored password hash could not be verified: {e}")
            return False
