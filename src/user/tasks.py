import sentry_sdk

from celery_tasks.main import (
    celery_app,  # noqa: F401
    local_async_session,
)
from celery_tasks.types import typed_shared_task
from loggers import get_logger
from src.core.errors.exceptions import InfrastructureException
from src.core.utils.coroutine_runner import execute_coroutine_sync
from src.main.config import config
from src.user.auth.refresh_tokens import RefreshTokenService
from src.user.auth.repositories import RefreshTokenRepository

logger = get_logger(__name__)


@typed_shared_task(name="sweep_expired_refresh_tokens")
def sweep_expired_refresh_tokens() -> str:
    result = execute_coroutine_sync(coroutine=_sweep_expired_refresh_tokens)
    return f"Deleted {result} expired refresh tokens."


async def _sweep_expired_refresh_tokens() -> int:
    async with local_async_session() as session:
        service = RefreshTokenService(RefreshTokenRepository(session), config.jwt)
        try:
            return await service.sweep_expired()
        except InfrastructureException as e:
            # The repository already rolled back, the next run retries
            logger.exception("Expired refresh token sweep failed: %s", e)
            sentry_sdk.capture_exception(e)
            return 0
