from typing import Any, NamedTuple, TypedDict

from pydantic import BaseModel, ConfigDict, Field

from src.core.jwt.codec import Timespan
from src.core.jwt.signature import DEFAULT_ALGORITHM

NumericDate = int | float
Audience = str | list[str]


class JWTHeader(TypedDict, total=False):
    """Type definition for a token header"""

    alg: str
    typ: str
    kid: str


class JWTPayload(TypedDict, total=False):
    """
    Reserved claims of a token payload.

    Any other claim travels untouched: at runtime the payload is a plain dict.
    """

    iss: str
    sub: str
    aud: Audience
    exp: NumericDate
    nbf: NumericDate
    iat: NumericDate
    jti: str


class DecodedToken(NamedTuple):
    header: dict[str, Any]
    payload: dict[str, Any]
    signature: str | None  # still base64url encoded


class SignOptions(BaseModel):
    algorithm: str = DEFAULT_ALGORITHM.value
    expires_in: Timespan | None = None
    not_before: Timespan | None = None
    issuer: str | None = None
    subject: str | None = None
    audience: Audience | None = None
    jwtid: str | None = None
    no_timestamp: bool = False
    header: dict[str, Any] = Field(default_factory=dict)
    keyid: str | None = None
    clock_timestamp: NumericDate | None = None  # seconds since epoch

    model_config = ConfigDict(extra="forbid", frozen=True)


class VerifyOptions(BaseModel):
    algorithms: list[str] | None = None
    issuer: str | list[str] | None = None
    subject: str | None = None
    audience: Audience | None = None
    clock_timestamp: NumericDate | None = None
    clock_tolerance: NumericDate = Field(0, ge=0)
    max_age: Timespan | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)
