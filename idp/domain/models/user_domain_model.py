# idp/domain/models/user_domain_model.py

from uuid import UUID
from dataclasses import dataclass
from typing import Optional
from datetime import datetime


@dataclass
class User:
    """Domain model for a user entity."""
    id: Optional[UUID]
    email: str
    password: str  # This would be hashed already
    failed_attempts: int = 0
    last_attempt: Optional[datetime] = None
    is_blocked: bool = False
    blocked_until: Optional[datetime] = None
    reset_password_token: Optional[str] = None
    reset_token_expires: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def clear_reset_token(self) -> None:
        self.reset_password_token = None
        self.reset_token_expires = None
