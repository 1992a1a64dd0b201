"""Tests for AsyncAuthService against in-memory ports."""

import dataclasses
import uuid
from datetime import timedelta

import pytest

from idp.application.dtos.user_dto import UserCreate, UserUpdate
from idp.application.use_cases.auth_use_cases import AsyncAuthService
from idp.domain.exceptions import (
    AccountBlockedException,
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

EMAIL = "alice@example.com"
PASSWORD = "correct-horse"


async def _register(service, email=EMAIL, password=PASSWORD):
    return await service.register(UserCreate(email=email, password=password))


class TestRegister:
    async def test_register_stores_hashed_password_and_publishes(self, auth_service, user_store, publisher):
        created = await _register(auth_service)

        stored = user_store.stored(EMAIL)
        assert created.email == EMAIL
        assert created.id == stored.id
        assert stored.password == f"hashed::{PASSWORD}"
        assert stored.failed_attempts == 0
        assert stored.is_blocked is False
        assert publisher.on("account-created") == [{"email": EMAIL}]

    async def test_duplicate_email_is_rejected(self, auth_service, publisher):
        await _register(auth_service)

        with pytest.raises(ResourceAlreadyExistsException):
            await _register(auth_service, password="other")

        assert len(publisher.on("account-created")) == 1

    async def test_publish_failure_does_not_fail_registration(self, auth_service, user_store, publisher):
        publisher.fail_topics.add("account-created")

        await _register(auth_service)

        assert user_store.stored(EMAIL)


class TestLogin:
    async def test_successful_login_returns_valid_tokens(self, auth_service, token_manager, user_store):
        await _register(auth_service)

        tokens = await auth_service.login(EMAIL, PASSWORD)

        assert tokens.token_type == "bearer"
        assert await token_manager.is_valid(tokens.access_token) is True
        assert token_manager.parse_access(tokens.access_token).sub == user_store.stored(EMAIL).id

    async def test_unknown_email_is_invalid_credentials(self, auth_service):
        with pytest.raises(InvalidCredentialsException):
            await auth_service.login("nobody@example.com", PASSWORD)

    async def test_blocking_escalation_and_auto_unblock(self, auth_service, user_store, publisher, clock):
        await _register(auth_service)
        start = clock.now

        for _ in range(2):
            with pytest.raises(InvalidCredentialsException):
                await auth_service.login(EMAIL, "wrong")
        assert user_store.stored(EMAIL).failed_attempts == 2
        assert user_store.stored(EMAIL).is_blocked is False

        with pytest.raises(InvalidCredentialsException):
            await auth_service.login(EMAIL, "wrong")
        stored = user_store.stored(EMAIL)
        assert stored.is_blocked is True
        assert stored.blocked_until == start + timedelta(minutes=1)
        assert publisher.on("account-blocked") == [{"email": EMAIL, "blocked_until": start + timedelta(minutes=1)}]

        clock.advance(seconds=30)
        with pytest.raises(AccountBlockedException):
            await auth_service.login(EMAIL, PASSWORD)

        # At exactly blocked_until a mismatch escalates instead of unblocking.
        clock.now = start + timedelta(minutes=1)
        with pytest.raises(InvalidCredentialsException):
            await auth_service.login(EMAIL, "wrong")
        stored = user_store.stored(EMAIL)
        assert stored.failed_attempts == 4
        assert stored.blocked_until == clock.now + timedelta(minutes=2)

        clock.advance(minutes=2, seconds=1)
        tokens = await auth_service.login(EMAIL, PASSWORD)
        stored = user_store.stored(EMAIL)
        assert tokens.access_token
        assert stored.is_blocked is False
        assert stored.failed_attempts == 0
        assert stored.blocked_until is None
        assert stored.last_attempt == clock.now

    async def test_blocked_account_is_rejected_even_with_right_password(self, auth_service, clock):
        await _register(auth_service)
        for _ in range(3):
            with pytest.raises(InvalidCredentialsException):
                await auth_service.login(EMAIL, "wrong")

        clock.advance(seconds=59)
        with pytest.raises(AccountBlockedException):
            await auth_service.login(EMAIL, PASSWORD)

    async def test_rapid_attempts_are_debounced(self, user_store, hasher, token_manager, publisher, auth_config, clock):
        config = dataclasses.replace(auth_config, min_time_between_attempts=timedelta(seconds=5))
        service = AsyncAuthService(user_store, hasher, token_manager, publisher, config, clock=clock)
        await _register(service)

        with pytest.raises(InvalidCredentialsException):
            await service.login(EMAIL, "wrong")

        clock.advance(seconds=2)
        with pytest.raises(TooManyAttemptsException):
            await service.login(EMAIL, PASSWORD)
        assert user_store.stored(EMAIL).failed_attempts == 1

        clock.advance(seconds=3)
        assert (await service.login(EMAIL, PASSWORD)).access_token

    async def test_update_failure_after_mismatch_still_reports_credentials(self, auth_service, user_store):
        await _register(auth_service)
        user_store.fail_updates = True

        with pytest.raises(InvalidCredentialsException):
            await auth_service.login(EMAIL, "wrong")

    async def test_update_failure_after_success_still_logs_in(self, auth_service, user_store):
        await _register(auth_service)
        user_store.fail_updates = True

        assert (await auth_service.login(EMAIL, PASSWORD)).access_token

    async def test_blocked_publish_failure_is_swallowed(self, auth_service, user_store, publisher):
        await _register(auth_service)
        publisher.fail_topics.add("account-blocked")

        for _ in range(3):
            with pytest.raises(InvalidCredentialsException):
                await auth_service.login(EMAIL, "wrong")

        assert user_store.stored(EMAIL).is_blocked is True

    async def test_failed_unblock_write_is_internal_failure(self, auth_service, user_store, clock):
        await _register(auth_service)
        for _ in range(3):
            with pytest.raises(InvalidCredentialsException):
                await auth_service.login(EMAIL, "wrong")

        clock.advance(minutes=5)
        user_store.fail_updates = True
        with pytest.raises(InternalFailureException):
            await auth_service.login(EMAIL, PASSWORD)


class TestSessions:
    async def test_logout_revokes_both_tokens(self, auth_service, token_manager):
        await _register(auth_service)
        tokens = await auth_service.login(EMAIL, PASSWORD)

        await auth_service.logout(tokens.access_token)

        assert await token_manager.is_valid(tokens.access_token) is False
        with pytest.raises(TokenRevokedException):
            await auth_service.refresh_token(tokens.refresh_token)

    async def test_logout_with_invalid_token(self, auth_service, block_list):
        with pytest.raises(InvalidTokenException):
            await auth_service.logout("garbage")
        assert block_list.entries == {}

    async def test_refresh_returns_same_refresh_token(self, auth_service, token_manager):
        await _register(auth_service)
        tokens = await auth_service.login(EMAIL, PASSWORD)

        renewed = await auth_service.refresh_token(tokens.refresh_token)

        assert renewed.refresh_token == tokens.refresh_token
        assert renewed.refresh_expires_at == tokens.refresh_expires_at
        assert await token_manager.is_valid(renewed.access_token) is True

    async def test_authenticated_with_valid_access_token(self, auth_service):
        await _register(auth_service)
        tokens = await auth_service.login(EMAIL, PASSWORD)

        status = await auth_service.is_user_authenticated(tokens.access_token, tokens.refresh_token)

        assert status.authenticated is True
        assert status.access_token is None

    async def test_refresh_fallback_mints_new_access_token(self, auth_service, token_manager):
        await _register(auth_service)
        tokens = await auth_service.login(EMAIL, PASSWORD)

        status = await auth_service.is_user_authenticated("expired-or-garbage", tokens.refresh_token)

        assert status.authenticated is True
        assert status.access_token
        assert await token_manager.is_valid(status.access_token) is True

    async def test_not_authenticated_without_tokens(self, auth_service):
        assert (await auth_service.is_user_authenticated(None, None)).authenticated is False
        assert (await auth_service.is_user_authenticated("garbage", "garbage")).authenticated is False

    async def test_not_authenticated_after_logout(self, auth_service):
        await _register(auth_service)
        tokens = await auth_service.login(EMAIL, PASSWORD)
        await auth_service.logout(tokens.access_token)

        status = await auth_service.is_user_authenticated(tokens.access_token, tokens.refresh_token)

        assert status.authenticated is False


class TestPasswordReset:
    async def test_reset_round_trip(self, auth_service, user_store, publisher, clock):
        await _register(auth_service)

        ticket = await auth_service.request_password_reset(EMAIL)

        [event] = publisher.on("password-reset")
        assert event["email"] == EMAIL
        assert event["reset_token"] == ticket.reset_token
        assert event["token_expires_in"] == int((clock.now + timedelta(hours=24)).timestamp())

        await auth_service.confirm_password_reset(ticket.reset_token, "new-secret")

        stored = user_store.stored(EMAIL)
        assert stored.password == "hashed::new-secret"
        assert stored.reset_password_token is None
        assert stored.reset_token_expires is None
        assert (await auth_service.login(EMAIL, "new-secret")).access_token

    async def test_reset_token_is_single_use(self, auth_service):
        await _register(auth_service)
        ticket = await auth_service.request_password_reset(EMAIL)
        await auth_service.confirm_password_reset(ticket.reset_token, "new-secret")

        with pytest.raises(InvalidTokenException):
            await auth_service.confirm_password_reset(ticket.reset_token, "another")

    async def test_unknown_email_gets_generic_error(self, auth_service, publisher):
        with pytest.raises(InvalidInputException) as exc_info:
            await auth_service.request_password_reset("nobody@example.com")

        assert exc_info.value.detail == "Unable to process password reset request"
        assert publisher.events == []

    async def test_publish_failure_is_fatal(self, auth_service, publisher):
        await _register(auth_service)
        publisher.fail_topics.add("password-reset")

        with pytest.raises(InternalFailureException) as exc_info:
            await auth_service.request_password_reset(EMAIL)

        assert exc_info.value.detail == "Failed to send reset token"

    async def test_unknown_reset_token(self, auth_service):
        with pytest.raises(InvalidTokenException):
            await auth_service.confirm_password_reset("does-not-exist", "new-secret")
        with pytest.raises(InvalidTokenException):
            await auth_service.confirm_password_reset("", "new-secret")

    async def test_expired_reset_token(self, auth_service, user_store, clock):
        await _register(auth_service)
        ticket = await auth_service.request_password_reset(EMAIL)

        clock.advance(hours=24, seconds=1)
        with pytest.raises(TokenExpiredException):
            await auth_service.confirm_password_reset(ticket.reset_token, "new-secret")

        assert user_store.stored(EMAIL).password == f"hashed::{PASSWORD}"

    async def test_empty_new_password_is_rejected(self, auth_service):
        await _register(auth_service)
        ticket = await auth_service.request_password_reset(EMAIL)

        with pytest.raises(InvalidInputException):
            await auth_service.confirm_password_reset(ticket.reset_token, "")


class TestChangePassword:
    async def test_change_password(self, auth_service, user_store):
        created = await _register(auth_service)
        await auth_service.request_password_reset(EMAIL)

        await auth_service.change_password(created.id, "changed")

        stored = user_store.stored(EMAIL)
        assert stored.password == "hashed::changed"
        assert stored.reset_password_token is None
        with pytest.raises(InvalidCredentialsException):
            await auth_service.login(EMAIL, PASSWORD)

    async def test_change_password_for_missing_user(self, auth_service):
        with pytest.raises(UserNotFoundException):
            await auth_service.change_password(uuid.uuid4(), "changed")

    async def test_get_current_user(self, auth_service):
        created = await _register(auth_service)

        current = await auth_service.get_current_user(created.id)

        assert current.email == EMAIL
        assert current.is_blocked is False


class TestUpdateCurrentUser:
    async def test_change_email(self, auth_service, user_store):
        created = await _register(auth_service)

        updated = await auth_service.update_current_user(created.id, UserUpdate(email="alice@new.example.com"))

        assert updated.email == "alice@new.example.com"
        assert user_store.stored("alice@new.example.com").password == f"hashed::{PASSWORD}"
        assert (await auth_service.login("alice@new.example.com", PASSWORD)).access_token

    async def test_email_of_another_account_is_rejected(self, auth_service, user_store):
        created = await _register(auth_service)
        await _register(auth_service, email="taken@example.com")

        with pytest.raises(ResourceAlreadyExistsException):
            await auth_service.update_current_user(
                created.id, UserUpdate(email="taken@example.com", password="changed")
            )

        stored = user_store.stored(EMAIL)
        assert stored.password == f"hashed::{PASSWORD}"

    async def test_same_email_is_not_a_clash(self, auth_service, user_store):
        created = await _register(auth_service)

        updated = await auth_service.update_current_user(created.id, UserUpdate(email=EMAIL))

        assert updated.email == EMAIL
        assert user_store.update_calls == 0

    async def test_password_and_email_together(self, auth_service, user_store):
        created = await _register(auth_service)

        await auth_service.update_current_user(
            created.id, UserUpdate(email="alice@new.example.com", password="changed")
        )

        stored = user_store.stored("alice@new.example.com")
        assert stored.password == "hashed::changed"

    async def test_missing_user(self, auth_service):
        with pytest.raises(UserNotFoundException):
            await auth_service.update_current_user(uuid.uuid4(), UserUpdate(email="x@example.com"))
