import pytest

from src.core.errors.exceptions import (
    AlgorithmMismatchError,
    ExpiredError,
    InvalidClaimError,
    InvalidSignatureError,
    MissingSecretError,
)
from src.core.jwt import Algorithm, SignOptions, decode, sign
from src.main.config import JWTConfig
from src.user.auth.security import create_access_token, verify_access_token


def test_create_access_token_claims(jwt_settings: JWTConfig) -> None:
    token = create_access_token(7, "alice", jwt_settings)

    payload = decode(token)
    assert payload is not None
    assert payload["userId"] == 7
    assert payload["username"] == "alice"
    assert payload["type"] == "access"
    assert payload["sub"] == "7"
    assert payload["iss"] == jwt_settings.ISSUER
    assert payload["exp"] - payload["iat"] == 3600


@pytest.mark.parametrize("prefix", ["", "Bearer ", "bearer "])
def test_verify_access_token_round_trip(jwt_settings: JWTConfig, prefix: str) -> None:
    token = create_access_token(7, "alice", jwt_settings)

    payload = verify_access_token(prefix + token, jwt_settings)

    assert payload["userId"] == 7


def test_verify_access_token_rejects_refresh_secret(jwt_settings: JWTConfig) -> None:
    token = sign({"userId": 7}, jwt_settings.REFRESH_TOKEN_SECRET)

    with pytest.raises(InvalidSignatureError):
        verify_access_token(token, jwt_settings)


def test_verify_access_token_pins_configured_algorithm(jwt_settings: JWTConfig) -> None:
    token = sign(
        {"userId": 7},
        jwt_settings.ACCESS_TOKEN_SECRET,
        SignOptions(algorithm=Algorithm.HS512, issuer=jwt_settings.ISSUER),
    )

    with pytest.raises(AlgorithmMismatchError):
        verify_access_token(token, jwt_settings)


def test_verify_access_token_checks_issuer(jwt_settings: JWTConfig) -> None:
    token = sign(
        {"userId": 7}, jwt_settings.ACCESS_TOKEN_SECRET, SignOptions(issuer="someone")
    )

    with pytest.raises(InvalidClaimError):
        verify_access_token(token, jwt_settings)


def test_verify_access_token_expired(jwt_settings: JWTConfig) -> None:
    token = sign(
        {"userId": 7},
        jwt_settings.ACCESS_TOKEN_SECRET,
        SignOptions(issuer=jwt_settings.ISSUER, expires_in=10, clock_timestamp=1_000),
    )

    with pytest.raises(ExpiredError) as exc_info:
        verify_access_token(token, jwt_settings)

    assert exc_info.value.is_temporal is True


def test_missing_access_secret() -> None:
    settings = JWTConfig(ACCESS_TOKEN_SECRET="", REFRESH_TOKEN_SECRET="refresh")

    with pytest.raises(MissingSecretError):
        create_access_token(7, "alice", settings)
