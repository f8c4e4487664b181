from fastapi import Depends, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_session
from src.core.errors.exceptions import UnauthorizedException
from src.main.config import config
from src.user.auth.refresh_tokens import RefreshTokenService
from src.user.auth.repositories import RefreshTokenRepository
from src.user.auth.security import ACCESS_TOKEN_TYPE, verify_access_token
from src.user.models import User
from src.user.repositories import UserRepository

access_token_header = APIKeyHeader(name="Authorization", scheme_name="access-token")


def get_refresh_token_service(
    session: AsyncSession = Depends(get_session),
) -> RefreshTokenService:
    return RefreshTokenService(
        store=RefreshTokenRepository(session), settings=config.jwt
    )


async def get_current_user(
    token: str = Security(access_token_header),
    session: AsyncSession = Depends(get_session),
) -> User:
    """
    Get the current authenticated user from the access token.

    Args:
        token: The access token, with or without the ``Bearer`` prefix
        session: Database session

    Returns:
        User: The authenticated user

    Raises:
        TokenError: If the token does not verify (expired, forged, malformed...)
        UnauthorizedException: If the token is not an access token or its
            user no longer exists
    """
    credentials_exception = UnauthorizedException(
        "Could not validate credentials",
    )

    payload = verify_access_token(token)

    user_id = payload.get("userId")
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise credentials_exception
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise credentials_exception

    user = await UserRepository().get_single(session, id=user_id)
    if not user:
        raise credentials_exception

    return user
