import sentry_sdk
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.errors.exceptions import InfrastructureException
from src.system.schemas import HealthCheckResponse

logger = get_logger(__name__)


class HealthService:
    async def get_status(self, session: AsyncSession) -> HealthCheckResponse:
        if not await self._check_postgres(session):
            raise InfrastructureException(
                "System health check failed",
                additional_info={"postgres": False},
            )
        return HealthCheckResponse(status="ok")

    async def _check_postgres(self, session: AsyncSession) -> bool:
        try:
            await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.error("Postgres health check failed", exc_info=exc)
            sentry_sdk.capture_exception(exc)
            return False
