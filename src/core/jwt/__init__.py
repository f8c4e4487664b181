from src.core.jwt.codec import (
    base64url_decode,
    base64url_encode,
    parse_timespan,
    render_timespan,
)
from src.core.jwt.engine import decode, sign, verify
from src.core.jwt.schemas import (
    DecodedToken,
    JWTHeader,
    JWTPayload,
    SignOptions,
    VerifyOptions,
)
from src.core.jwt.signature import Algorithm, compute_hmac, constant_time_equal

__all__ = [
    "Algorithm",
    "DecodedToken",
    "JWTHeader",
    "JWTPayload",
    "SignOptions",
    "VerifyOptions",
    "base64url_decode",
    "base64url_encode",
    "compute_hmac",
    "constant_time_equal",
    "decode",
    "parse_timespan",
    "render_timespan",
    "sign",
    "verify",
]
