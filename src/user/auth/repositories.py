from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.database.repositories import (
    UNIQUE_VIOLATION_SQLSTATE,
    BaseRepository,
)
from src.core.errors.exceptions import (
    InstanceAlreadyExistsException,
    RefreshTokenStoreError,
)
from src.user.auth.interfaces import RefreshTokenRecord
from src.user.auth.models import RefreshToken

logger = get_logger(__name__)


def to_record(instance: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        id=instance.id,
        user_id=instance.user_id,
        token_hash=instance.token_hash,
        expires_at=instance.expires_at,
        created_at=instance.created_at,
    )


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """
    SQLAlchemy implementation of the refresh token store.

    Every operation commits on its own. Driver errors never leave this class:
    they are rolled back and re-raised as the service's exception types.
    """

    model = RefreshToken

    def __init__(self, session: AsyncSession) -> None:
        super().__init__()
        self.session = session

    async def insert(self, record: RefreshTokenRecord) -> RefreshTokenRecord:
        try:
            instance = await self.create(
                self.session,
                data={
                    "user_id": record.user_id,
                    "token_hash": record.token_hash,
                    "expires_at": record.expires_at,
                    "created_at": record.created_at,
                },
                commit=True,
            )
        except IntegrityError as e:
            if getattr(e.orig, "sqlstate", None) != UNIQUE_VIOLATION_SQLSTATE:
                # Most likely the owning user was deleted in the meantime
                logger.error("Refresh token insert violated a constraint: %s", e.orig)
                raise RefreshTokenStoreError("Could not store refresh token")
            logger.warning(
                "Refresh token insert rejected for user %s: %s",
                record.user_id,
                e.orig,
            )
            raise InstanceAlreadyExistsException(
                "Refresh token already stored",
                additional_info={"user_id": record.user_id},
            )
        except SQLAlchemyError as e:
            logger.error("Refresh token insert failed: %s", e)
            raise RefreshTokenStoreError("Could not store refresh token")
        return to_record(instance)

    async def find_active_by_hash(
        self, token_hash: str, now: datetime
    ) -> RefreshTokenRecord | None:
        query = (
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.expires_at > now)
            .limit(1)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Refresh token lookup failed: %s", e)
            raise RefreshTokenStoreError("Could not read refresh token")
        instance = result.scalars().first()
        return to_record(instance) if instance else None

    async def delete_by_hash(self, token_hash: str) -> bool:
        stmt = delete(RefreshToken).where(RefreshToken.token_hash == token_hash)
        return await self._delete(stmt) > 0

    async def delete_by_user(self, user_id: int) -> int:
        stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
        return await self._delete(stmt)

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(RefreshToken).where(RefreshToken.expires_at <= now)
        return await self._delete(stmt)

    async def _delete(self, stmt: Any) -> int:
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Refresh token delete failed: %s", e)
            raise RefreshTokenStoreError("Could not delete refresh tokens")
        return result.rowcount if hasattr(result, "rowcount") else 0
