# idp/domain/services/auth_service.py

from datetime import datetime, timedelta
from typing import Optional

from idp.domain.models.user_domain_model import User


class LoginThrottle:
    """
    Domain service for brute-force mitigation.

    Per-account state machine with two states, normal and blocked. Every
    method is a pure function of the user record and the current time; the
    caller decides when to persist the mutated record.
    """

    def __init__(
            self,
            max_attempts_before_block: int,
            base_block_duration: timedelta,
            min_time_between_attempts: timedelta = timedelta(0),
    ):
        """
        Args:
            max_attempts_before_block: Failed attempts that trigger the first block
            base_block_duration: Duration of the first block
            min_time_between_attempts: Debounce window between two attempts
        """
        self.max_attempts_before_block = max_attempts_before_block
        self.base_block_duration = base_block_duration
        self.min_time_between_attempts = min_time_between_attempts

    def calculate_block_duration(self, failed_attempts: int) -> timedelta:
        """
        Exponential backoff: the first block lasts the base duration and
        every further failure doubles it.
        """
        exponent = max(failed_attempts - self.max_attempts_before_block, 0)
        return self.base_block_duration * (2 ** exponent)

    @staticmethod
    def is_blocked(user: User, now: datetime) -> bool:
        """True while an active block window is still running."""
        return user.is_blocked and user.blocked_until is not None and now < user.blocked_until

    def is_debounced(self, user: User, now: datetime) -> bool:
        """True when the previous attempt is younger than the debounce window."""
        return user.last_attempt is not None and now - user.last_attempt < self.min_time_between_attempts

    @staticmethod
    def should_auto_unblock(user: User, now: datetime) -> bool:
        # At exactly ``blocked_until`` the account is neither rejected nor unblocked.
        return user.is_blocked and (user.blocked_until is None or now > user.blocked_until)

    @staticmethod
    def auto_unblock(user: User) -> None:
        user.is_blocked = False
        user.failed_attempts = 0
        user.blocked_until = None

    def register_failure(self, user: User, now: datetime) -> Optional[datetime]:
        """
        Record a password mismatch.

        Returns:
            The new ``blocked_until`` when this failure (re)blocks the account,
            None otherwise.
        """
        user.failed_attempts += 1
        user.last_attempt = now
        if user.failed_attempts < self.max_attempts_before_block:
            return None

        user.blocked_until = now + self.calculate_block_duration(user.failed_attempts)
        user.is_blocked = True
        return user.blocked_until

    @staticmethod
    def register_success(user: User, now: datetime) -> None:
        user.failed_attempts = 0
        user.last_attempt = now
