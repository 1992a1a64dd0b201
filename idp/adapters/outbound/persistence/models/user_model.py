# idp/adapters/outbound/persistence/models/user_model.py

"""
User model.

Holds the credentials of an account together with its login-throttling
state and the pending password-reset token, if any.
"""

from sqlalchemy import Column, Boolean, String, DateTime, Integer, func
from sqlalchemy.dialects.postgresql import UUID
import uuid
from idp.adapters.outbound.persistence.models.base_model import Base


class User(Base):
    """
    User account.

    Attributes:
        id: Unique identifier (UUID)
        email: Login e-mail, unique
        password: Password hash
        failed_attempts: Consecutive failed logins
        last_attempt: Time of the most recent login attempt
        is_blocked: Whether the account is temporarily blocked
        blocked_until: End of the current block
        reset_password_token: Pending single-use password-reset token
        reset_token_expires: Expiry of the reset token
        created_at: Creation time
        updated_at: Last update time
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    failed_attempts = Column(Integer, default=0, nullable=False)
    last_attempt = Column(DateTime(timezone=True), nullable=True)
    is_blocked = Column(Boolean, default=False, nullable=False)
    blocked_until = Column(DateTime(timezone=True), nullable=True)
    reset_password_token = Column(String(255), nullable=True, index=True)
    reset_token_expires = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<User(email={self.email}, blocked={self.is_blocked})>"
