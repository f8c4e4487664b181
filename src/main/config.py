from functools import lru_cache
import json
import logging
import os
from typing import Any, Self

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.jwt.codec import parse_timespan
from src.core.jwt.signature import Algorithm

logger = logging.getLogger(__name__)


class RedisConfig(BaseModel):
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_CELERY_DATABASE: str = "1"

    model_config = ConfigDict(extra="ignore")

    @property
    def celery_dsn(self) -> str:
        return (
            f"redis://:"
            f"{self.REDIS_PASSWORD}@"
            f"{self.REDIS_HOST}:"
            f"{self.REDIS_PORT}/"
            f"{self.REDIS_CELERY_DATABASE}"
        )


class RabbitMQConfig(BaseModel):
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn(self) -> str:
        return (
            f"amqp://"
            f"{self.RABBITMQ_USER}:"
            f"{self.RABBITMQ_PASSWORD}@"
            f"{self.RABBITMQ_HOST}:"
            f"{self.RABBITMQ_PORT}//"
        )


class SentryConfig(BaseModel):
    SENTRY_DSN: str | None = None
    SENTRY_ENV: str = "development"
    SENTRY_ENABLED: bool = False

    model_config = ConfigDict(extra="ignore")


class JWTConfig(BaseModel):
    # Empty secrets are accepted here; the operation that needs one fails instead
    ACCESS_TOKEN_SECRET: str = ""
    REFRESH_TOKEN_SECRET: str = ""

    ALGORITHM: Algorithm = Algorithm.HS256
    ACCESS_TOKEN_EXPIRES_IN: str = "1h"
    ISSUER: str = "auth-service"
    CLOCK_TOLERANCE_SECONDS: int = Field(0, ge=0)

    model_config = ConfigDict(extra="ignore")

    @field_validator("ACCESS_TOKEN_EXPIRES_IN")
    @classmethod
    def validate_timespan(cls, value: str) -> str:
        parse_timespan(value)
        return value

    @model_validator(mode="after")
    def validate_distinct_secrets(self) -> Self:
        if (
            self.ACCESS_TOKEN_SECRET
            and self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET
        ):
            raise ValueError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different"
            )
        return self


class PostgresConfig(BaseModel):
    DB_ECHO: bool = False

    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "auth"

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn_async(self) -> str:
        return (
            f"postgresql+asyncpg://"
            f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )


class AppConfig(BaseModel):
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    TESTING: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_LEVEL_FILE: str = "WARNING"

    CORS_ALLOWED_ORIGINS: list[str] = Field(["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOWED_METHODS: list[str] = Field(["*"])
    CORS_ALLOWED_HEADERS: list[str] = Field(["*"])
    CORS_EXPOSE_HEADERS: list[str] = Field(["*"])

    PROJECT_NAME: str = "Token Auth Service"

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "CORS_ALLOWED_ORIGINS",
        "CORS_ALLOWED_METHODS",
        "CORS_ALLOWED_HEADERS",
        "CORS_EXPOSE_HEADERS",
        mode="before",
    )
    @classmethod
    def parse_cors_list(cls, v: Any) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip().startswith("[") and v.strip().endswith("]"):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(item) for item in parsed]
            except json.JSONDecodeError:
                pass
        sep = "," if "," in v else ";"
        return [item.strip() for item in v.split(sep) if item.strip()]


class Config(BaseModel):
    app: AppConfig
    jwt: JWTConfig
    redis: RedisConfig
    sentry: SentryConfig
    postgres: PostgresConfig
    rabbitmq: RabbitMQConfig

    model_config = ConfigDict(extra="ignore")


@lru_cache
def get_settings() -> Config:
    """
    Cached settings factory. Override in tests via monkeypatching or dependency overrides.
    """
    env_filename = ".env.test" if os.getenv("TESTING") == "true" else ".env"
    env_file_values = dotenv_values(env_filename)
    merged_env: dict[str, Any] = {
        k: v
        for k, v in {**env_file_values, **dict(os.environ)}.items()
        if v is not None
    }

    settings = Config(
        app=AppConfig(**merged_env),
        jwt=JWTConfig(**merged_env),
        redis=RedisConfig(**merged_env),
        sentry=SentryConfig(**merged_env),
        postgres=PostgresConfig(**merged_env),
        rabbitmq=RabbitMQConfig(**merged_env),
    )
    if not settings.jwt.ACCESS_TOKEN_SECRET or not settings.jwt.REFRESH_TOKEN_SECRET:
        logger.warning(
            "Token secrets are not fully configured (loaded from %s); "
            "signing will fail until both are set.",
            env_filename,
        )
    return settings


config = get_settings()
