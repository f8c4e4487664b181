from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.database.session import get_session
from src.core.errors.exceptions import UnauthorizedException
from src.core.jwt import decode
from src.core.schemas import TokenModel
from src.main.config import config
from src.user.auth.dependencies import get_refresh_token_service
from src.user.auth.refresh_tokens import RefreshTokenService
from src.user.auth.schemas import RefreshTokenModel
from src.user.auth.security import create_access_token
from src.user.repositories import UserRepository

INVALID_REFRESH_TOKEN_MESSAGE = "Refresh token is invalid or expired"
logger = get_logger(__name__)


class RefreshTokensUseCase:
    """Use case for exchanging a refresh token for a new token pair."""

    def __init__(
        self,
        session: AsyncSession,
        repository: UserRepository,
        refresh_tokens: RefreshTokenService,
    ) -> None:
        self.session = session
        self.repository = repository
        self.refresh_tokens = refresh_tokens

    async def execute(self, data: RefreshTokenModel) -> TokenModel:
        # Unverified read, only to learn who claims to own the token;
        # rotate() verifies signature, claims and the stored owner.
        claims = decode(data.refresh_token) or {}
        user_id = claims.get("userId")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise UnauthorizedException(INVALID_REFRESH_TOKEN_MESSAGE)

        access_lifetime = config.jwt.ACCESS_TOKEN_EXPIRES_IN
        new_refresh_token = await self.refresh_tokens.rotate(
            data.refresh_token, user_id, access_lifetime
        )
        if new_refresh_token is None:
            raise UnauthorizedException(INVALID_REFRESH_TOKEN_MESSAGE)

        user = await self.repository.get_single(self.session, id=user_id)
        if not user:
            # The user is gone, their refresh tokens went with them
            await self.refresh_tokens.revoke(new_refresh_token)
            raise UnauthorizedException(INVALID_REFRESH_TOKEN_MESSAGE)

        logger.debug("[RefreshTokens] Issued a new token pair for user %s", user_id)
        return TokenModel(
            access_token=create_access_token(user.id, user.username),
            refresh_token=new_refresh_token,
        )


def get_refresh_tokens_use_case(
    session: AsyncSession = Depends(get_session),
    refresh_tokens: RefreshTokenService = Depends(get_refresh_token_service),
) -> RefreshTokensUseCase:
    return RefreshTokensUseCase(
        session=session,
        repository=UserRepository(),
        refresh_tokens=refresh_tokens,
    )
