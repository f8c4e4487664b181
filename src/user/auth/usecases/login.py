from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from loggers import get_logger
from src.core.database.session import get_session
from src.core.errors.exceptions import InstanceProcessingException
from src.core.schemas import TokenModel
from src.core.utils.security import hash_password_async, verify_password_async
from src.main.config import config
from src.user.auth.dependencies import get_refresh_token_service
from src.user.auth.refresh_tokens import RefreshTokenService
from src.user.auth.schemas import LoginUserModel
from src.user.auth.security import create_access_token
from src.user.repositories import UserRepository

INVALID_CREDENTIALS_MESSAGE = "Incorrect username or password."
DUMMY_PASSWORD = "dummy-password"
logger = get_logger(__name__)

_dummy_password_hash: str | None = None


async def get_dummy_password_hash() -> str:
    """Hash checked against when the user does not exist, derived on first use."""
    global _dummy_password_hash

    if _dummy_password_hash is None:
        _dummy_password_hash = await hash_password_async(DUMMY_PASSWORD)
    return _dummy_password_hash


class LoginUserUseCase:
    """Use case for logging in user."""

    def __init__(
        self,
        session: AsyncSession,
        repository: UserRepository,
        refresh_tokens: RefreshTokenService,
    ) -> None:
        self.session = session
        self.repository = repository
        self.refresh_tokens = refresh_tokens

    async def execute(self, data: LoginUserModel) -> TokenModel:
        user = await self.repository.get_single(self.session, username=data.username)
        if not user:
            logger.debug("[LoginUser] User '%s' not found.", data.username)
            # Same amount of work as a wrong password
            await verify_password_async(data.password, await get_dummy_password_hash())
            raise InstanceProcessingException(INVALID_CREDENTIALS_MESSAGE)

        if not await verify_password_async(data.password, user.password_hash):
            logger.debug("[LoginUser] Incorrect password for user '%s'", data.username)
            raise InstanceProcessingException(INVALID_CREDENTIALS_MESSAGE)

        access_lifetime = config.jwt.ACCESS_TOKEN_EXPIRES_IN
        refresh_token = await self.refresh_tokens.create(
            user.id, user.username, access_lifetime
        )

        logger.info("[LoginUser] User '%s' logged in.", data.username)
        return TokenModel(
            access_token=create_access_token(user.id, user.username),
            refresh_token=refresh_token,
        )


def get_login_user_use_case(
    session: AsyncSession = Depends(get_session),
    refresh_tokens: RefreshTokenService = Depends(get_refresh_token_service),
) -> LoginUserUseCase:
    return LoginUserUseCase(
        session=session,
        repository=UserRepository(),
        refresh_tokens=refresh_tokens,
    )
