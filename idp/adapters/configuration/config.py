# idp/adapters/configuration/config.py

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from logging import getLevelName
from pydantic import ConfigDict, Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


@dataclass(frozen=True)
class AuthConfig:
    """Immutable token and throttling parameters injected into the auth components."""
    jwt_secret: str
    jwt_algorithm: str
    access_token_duration: timedelta
    refresh_token_duration: timedelta
    base_block_duration: timedelta
    max_login_attempts_before_block: int
    min_time_between_attempts: timedelta
    reset_token_duration: timedelta
    password_reset_topic: str = "password-reset"
    account_blocked_topic: str = "account-blocked"
    account_created_topic: str = "account-created"


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"

    # Environment
    ENVIRONMENT: str = "development"  # "development", "production", "testing"
    DEBUG: bool = False

    # Database
    DB_DRIVER: str = "asyncpg"
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int
    DATABASE_URL: Optional[PostgresDsn] = Field(None, validate_default=True)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False

    # Redis (block list + event bus)
    REDIS_URL: str = "redis://localhost:6379/0"
    BLOCK_LIST_KEY_PREFIX: str = "token_block_list:"

    # Auth
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_DURATION_MINUTES: int = 15
    REFRESH_TOKEN_DURATION_DAYS: int = 4
    BCRYPT_ROUNDS: int = 12
    COOKIE_SECURE: bool = True

    # Login throttling
    BLOCKING_TIME_EXPONENTIATION_BASIS: int
    MAX_LOGIN_ATTEMPTS_BEFORE_BLOCK: int
    MIN_TIME_BETWEEN_ATTEMPTS_IN_SECONDS: int = 0

    # Password reset
    EXPIRATION_TIME_RESET_TOKEN_IN_HOURS: int = 24

    # Event topics
    PASSWORD_RESET_TOPIC: str = "password-reset"
    ACCOUNT_BLOCKED_TOPIC: str = "account-blocked"
    ACCOUNT_CREATED_TOPIC: str = "account-created"

    @field_validator("DATABASE_URL", mode="before")
    def assemble_db_url(cls, value, info):
        if value:
            return value

        data = info.data
        return PostgresDsn.build(
            scheme=f"postgresql+{data.get('DB_DRIVER', 'asyncpg')}",
            username=data["POSTGRES_USER"],
            password=data["POSTGRES_PASSWORD"],
            host=data["POSTGRES_HOST"],
            port=data["POSTGRES_PORT"],
            path=data["POSTGRES_DB"],
        )

    @field_validator("LOG_LEVEL", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """Ensure the value is a valid logging level."""
        lvl = v.upper()
        getLevelName(lvl)
        return lvl

    @field_validator("JWT_SECRET")
    def validate_jwt_secret(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("JWT_SECRET must not be empty")
        return v

    @field_validator("JWT_ALGORITHM")
    def validate_jwt_algorithm(cls, v: str) -> str:
        alg = v.upper()
        if alg not in HMAC_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be one of {', '.join(HMAC_ALGORITHMS)}, got {v!r}")
        return alg

    @field_validator("BLOCKING_TIME_EXPONENTIATION_BASIS", "MAX_LOGIN_ATTEMPTS_BEFORE_BLOCK")
    def validate_positive(cls, v: int, info) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name} should be greater than 0")
        return v

    @field_validator(
        "MIN_TIME_BETWEEN_ATTEMPTS_IN_SECONDS",
        "ACCESS_TOKEN_DURATION_MINUTES",
        "REFRESH_TOKEN_DURATION_DAYS",
        "EXPIRATION_TIME_RESET_TOKEN_IN_HOURS",
    )
    def validate_non_negative(cls, v: int, info) -> int:
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    def auth_config(self) -> AuthConfig:
        return AuthConfig(
            jwt_secret=self.JWT_SECRET,
            jwt_algorithm=self.JWT_ALGORITHM,
            access_token_duration=timedelta(minutes=self.ACCESS_TOKEN_DURATION_MINUTES),
            refresh_token_duration=timedelta(days=self.REFRESH_TOKEN_DURATION_DAYS),
            base_block_duration=timedelta(minutes=self.BLOCKING_TIME_EXPONENTIATION_BASIS),
            max_login_attempts_before_block=self.MAX_LOGIN_ATTEMPTS_BEFORE_BLOCK,
            min_time_between_attempts=timedelta(seconds=self.MIN_TIME_BETWEEN_ATTEMPTS_IN_SECONDS),
            reset_token_duration=timedelta(hours=self.EXPIRATION_TIME_RESET_TOKEN_IN_HOURS),
            password_reset_topic=self.PASSWORD_RESET_TOPIC,
            account_blocked_topic=self.ACCOUNT_BLOCKED_TOPIC,
            account_created_topic=self.ACCOUNT_CREATED_TOPIC,
        )

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
