from fastapi import Depends

from loggers import get_logger
from src.core.schemas import RevokedSessionsResponse, SuccessResponse
from src.user.auth.dependencies import get_refresh_token_service
from src.user.auth.refresh_tokens import RefreshTokenService
from src.user.auth.schemas import RefreshTokenModel

logger = get_logger(__name__)


class LogoutUseCase:
    """Use case for revoking refresh tokens."""

    def __init__(self, refresh_tokens: RefreshTokenService) -> None:
        self.refresh_tokens = refresh_tokens

    async def execute(self, data: RefreshTokenModel) -> SuccessResponse:
        # Idempotent: an unknown token is reported the same way
        await self.refresh_tokens.revoke(data.refresh_token)
        return SuccessResponse(success=True)

    async def execute_all(self, user_id: int) -> RevokedSessionsResponse:
        revoked = await self.refresh_tokens.revoke_all(user_id)
        return RevokedSessionsResponse(revoked=revoked)


def get_logout_use_case(
    refresh_tokens: RefreshTokenService = Depends(get_refresh_token_service),
) -> LogoutUseCase:
    return LogoutUseCase(refresh_tokens=refresh_tokens)
