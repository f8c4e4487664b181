from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from loggers import get_logger
from src.core.database.engine import engine
from src.main.config import config
from src.main.sentry import init_sentry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    init_sentry()
    if not config.jwt.ACCESS_TOKEN_SECRET or not config.jwt.REFRESH_TOKEN_SECRET:
        logger.warning("Token secrets are not configured, auth endpoints will fail.")

    yield

    await engine.dispose()
    logger.info("Database engine disposed.")
