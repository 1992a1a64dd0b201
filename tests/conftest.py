import asyncio
import inspect
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Settings are read at import time, so the environment comes first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("POSTGRES_USER", "idp")
os.environ.setdefault("POSTGRES_PASSWORD", "idp")
os.environ.setdefault("POSTGRES_DB", "idp_test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_PORT", "5432")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("BLOCKING_TIME_EXPONENTIATION_BASIS", "1")
os.environ.setdefault("MAX_LOGIN_ATTEMPTS_BEFORE_BLOCK", "3")
os.environ.setdefault("COOKIE_SECURE", "false")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from idp.adapters.configuration.config import AuthConfig  # noqa: E402
from idp.adapters.outbound.security.auth_user_manager import UserAuthManager  # noqa: E402
from idp.application.use_cases.auth_use_cases import AsyncAuthService  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakePasswordHasher,
    FrozenClock,
    InMemoryBlockList,
    InMemoryUserStore,
    RecordingEventPublisher,
)


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def auth_config():
    """Throttle of 3 attempts, 1 minute base block, no debounce."""
    return AuthConfig(
        jwt_secret="Test-Secret-Key_for-Automation-Only-987654321!",
        jwt_algorithm="HS256",
        access_token_duration=timedelta(minutes=15),
        refresh_token_duration=timedelta(days=4),
        base_block_duration=timedelta(minutes=1),
        max_login_attempts_before_block=3,
        min_time_between_attempts=timedelta(0),
        reset_token_duration=timedelta(hours=24),
    )


@pytest.fixture
def clock():
    return FrozenClock(datetime.now(timezone.utc))


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def hasher():
    return FakePasswordHasher()


@pytest.fixture
def block_list():
    return InMemoryBlockList()


@pytest.fixture
def publisher():
    return RecordingEventPublisher()


@pytest.fixture
def token_manager(auth_config, block_list):
    return UserAuthManager(auth_config, block_list=block_list)


@pytest.fixture
def auth_service(user_store, hasher, token_manager, publisher, auth_config, clock):
    return AsyncAuthService(
        user_store=user_store,
        hasher=hasher,
        tokens=token_manager,
        publisher=publisher,
        config=auth_config,
        clock=clock,
    )
