# idp/adapters/outbound/persistence/repositories/user_repository.py (async version)

"""
Repository for user operations.

This module implements the repository that performs database operations
related to users, implementing the ICredentialStore interface. ORM rows
never leave this module: every method returns domain users.
"""

import logging
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from idp.adapters.outbound.persistence.models import User
from idp.application.ports.outbound import ICredentialStore
from idp.domain.models.user_domain_model import User as DomainUser
from idp.domain.exceptions import (
    UserNotFoundException,
    ResourceAlreadyExistsException,
    InternalFailureException,
)

# Columns copied verbatim between the ORM row and the domain model on update
MUTABLE_FIELDS = (
    "email",
    "password",
    "failed_attempts",
    "last_attempt",
    "is_blocked",
    "blocked_until",
    "reset_password_token",
    "reset_token_expires",
)


def to_domain(db_obj: User) -> DomainUser:
    return DomainUser(
        id=db_obj.id,
        email=db_obj.email,
        password=db_obj.password,
        failed_attempts=db_obj.failed_attempts or 0,
        last_attempt=db_obj.last_attempt,
        is_blocked=bool(db_obj.is_blocked),
        blocked_until=db_obj.blocked_until,
        reset_password_token=db_obj.reset_password_token,
        reset_token_expires=db_obj.reset_token_expires,
        created_at=db_obj.created_at,
        updated_at=db_obj.updated_at,
    )


def apply_domain(db_obj: User, user: DomainUser) -> User:
    for field in MUTABLE_FIELDS:
        setattr(db_obj, field, getattr(user, field))
    return db_obj


class AsyncUserRepository(ICredentialStore):
    """
    Async SQLAlchemy implementation of the credential store.
    """

    def __init__(self, db: AsyncSession):
        """
        Args:
            db: Active SQLAlchemy async session
        """
        self.db = db
        self.logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    async def _get_by(self, column, value, label: str) -> Optional[User]:
        try:
            query = select(User).where(column == value)
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching user by {label}: {e}")
            raise InternalFailureException(detail=f"Error fetching user by {label}", original_error=e)

    async def get(self, user_id: UUID) -> Optional[DomainUser]:
        db_obj = await self._get_by(User.id, user_id, "id")
        return to_domain(db_obj) if db_obj else None

    async def get_by_email(self, email: str) -> Optional[DomainUser]:
        db_obj = await self._get_by(User.email, email, "email")
        return to_domain(db_obj) if db_obj else None

    async def get_by_reset_token(self, token: str) -> Optional[DomainUser]:
        if not token:
            return None
        db_obj = await self._get_by(User.reset_password_token, token, "reset token")
        return to_domain(db_obj) if db_obj else None

    async def create(self, user: DomainUser) -> DomainUser:
        """
        Insert a new user.

        Raises:
            ResourceAlreadyExistsException: If the email is already in use
            InternalFailureException: In case of database error
        """
        db_obj = apply_domain(User(), user)
        if user.id is not None:
            db_obj.id = user.id
        try:
            self.db.add(db_obj)
            await self.db.commit()
            await self.db.refresh(db_obj)
        except IntegrityError as e:
            await self.db.rollback()
            self.logger.warning(f"Attempt to create user with existing email: {user.email}")
            raise ResourceAlreadyExistsException(detail=f"User with email '{user.email}' already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error(f"Error creating user: {e}")
            raise InternalFailureException(detail="Error creating user", original_error=e)

        self.logger.info(f"User created with email: {db_obj.email}")
        return to_domain(db_obj)

    async def update(self, user: DomainUser) -> DomainUser:
        """
        Persist every mutable field of a domain user.

        Raises:
            UserNotFoundException: If the user no longer exists
            InternalFailureException: In case of database error
        """
        db_obj = await self._get_by(User.id, user.id, "id")
        if db_obj is None:
            raise UserNotFoundException(user_id=user.id)

        try:
            apply_domain(db_obj, user)
            await self.db.commit()
            await self.db.refresh(db_obj)
        except IntegrityError as e:
            await self.db.rollback()
            raise ResourceAlreadyExistsException(detail=f"Email '{user.email}' is already in use") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error(f"Error updating user {user.id}: {e}")
            raise InternalFailureException(detail="Error updating user", original_error=e)

        return to_domain(db_obj)
