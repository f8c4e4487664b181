from typing import Any

from src.core.jwt import SignOptions, VerifyOptions, sign, verify
from src.main.config import JWTConfig, config

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    user_id: int, username: str, settings: JWTConfig | None = None
) -> str:
    """
    Create a new access token for the user.

    Args:
        user_id: Primary key of the user, also written to ``sub``
        username: Carried as a claim for display purposes
        settings: JWT settings, the application settings by default

    Returns:
        str: Encoded access token
    """
    settings = settings or config.jwt
    return sign(
        {"userId": user_id, "username": username, "type": ACCESS_TOKEN_TYPE},
        settings.ACCESS_TOKEN_SECRET,
        SignOptions(
            algorithm=settings.ALGORITHM,
            expires_in=settings.ACCESS_TOKEN_EXPIRES_IN,
            issuer=settings.ISSUER,
            subject=str(user_id),
        ),
    )


def verify_access_token(
    token: str, settings: JWTConfig | None = None
) -> dict[str, Any]:
    """
    Verify an access token and return its payload.

    A leading ``Bearer`` scheme is stripped. Failures propagate as the token
    engine's ``TokenError`` subclasses so callers can tell an expired token
    (refreshable) from a forged one.
    """
    settings = settings or config.jwt
    if token.lower().startswith("bearer "):
        token = token[7:].strip()

    return verify(
        token,
        settings.ACCESS_TOKEN_SECRET,
        VerifyOptions(
            algorithms=[settings.ALGORITHM],
            issuer=settings.ISSUER,
            clock_tolerance=settings.CLOCK_TOLERANCE_SECONDS,
        ),
    )
