"""
HMAC token engine.

Tokens are the compact three-part form
``base64url(header) "." base64url(payload) "." base64url(signature)``.
The signature always covers the literal first two segments of the token, so
verification never re-serializes the payload.
"""

from collections.abc import Mapping
import math
import time
from typing import Any, Literal, cast, overload

from src.core.errors.exceptions import (
    AlgorithmMismatchError,
    DecodeError,
    ExpiredError,
    InvalidClaimError,
    InvalidSignatureError,
    MalformedTokenError,
    MissingSecretError,
    NotYetValidError,
)
from src.core.jwt.codec import (
    base64url_encode,
    decode_segment,
    encode_segment,
    parse_timespan,
)
from src.core.jwt.schemas import (
    DecodedToken,
    JWTHeader,
    JWTPayload,
    NumericDate,
    SignOptions,
    VerifyOptions,
)
from src.core.jwt.signature import compute_hmac, constant_time_equal, resolve_algorithm

TOKEN_TYPE = "JWT"


def current_timestamp() -> int:
    return int(time.time())


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


def build_header(algorithm: str, options: SignOptions) -> JWTHeader:
    header: dict[str, Any] = {"alg": algorithm, "typ": TOKEN_TYPE, **options.header}
    # Extra fields may not re-declare the algorithm the token is signed with
    header["alg"] = algorithm
    if options.keyid:
        header["kid"] = options.keyid
    return cast(JWTHeader, header)


def build_payload(
    payload: Mapping[str, Any] | None, options: SignOptions, now: NumericDate
) -> JWTPayload:
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise TypeError("Payload must be a mapping of claims")

    claims: dict[str, Any] = dict(payload)

    if options.issuer:
        claims["iss"] = options.issuer
    if options.subject:
        claims["sub"] = options.subject
    if options.audience:
        claims["aud"] = options.audience
    if options.jwtid:
        claims["jti"] = options.jwtid

    if not options.no_timestamp and "iat" not in claims:
        claims["iat"] = now
    if options.expires_in is not None:
        claims["exp"] = now + parse_timespan(options.expires_in)
    if options.not_before is not None:
        claims["nbf"] = now + parse_timespan(options.not_before)

    return cast(JWTPayload, claims)


def sign(
    payload: Mapping[str, Any] | None,
    secret: str | bytes,
    options: SignOptions | None = None,
) -> str:
    """
    Build and sign a token.

    The caller's payload is copied, never mutated. Standard claims given in
    ``options`` override the ones already present in the payload.

    Raises:
        MissingSecretError: ``secret`` is empty.
        UnsupportedAlgorithmError: ``options.algorithm`` is not an HMAC variant.
        InvalidTimespanError: ``expires_in`` or ``not_before`` can not be parsed.
        DecodeError: a claim can not be written as JSON (NaN, infinity).
    """
    options = options or SignOptions()
    if not secret:
        raise MissingSecretError()

    algorithm = resolve_algorithm(options.algorithm)
    now = (
        options.clock_timestamp
        if options.clock_timestamp is not None
        else current_timestamp()
    )

    header = build_header(algorithm.value, options)
    claims = build_payload(payload, options, now)

    signing_input = f"{encode_segment(dict(header))}.{encode_segment(dict(claims))}"
    signature = compute_hmac(algorithm, secret, signing_input)

    return f"{signing_input}.{base64url_encode(signature)}"


def split_token(token: str) -> tuple[str, str, str]:
    if not isinstance(token, str):
        raise MalformedTokenError("jwt must be a string")

    parts = token.split(".")
    if len(parts) != 3 or not all(parts):
        raise MalformedTokenError()

    encoded_header, encoded_payload, encoded_signature = parts
    return encoded_header, encoded_payload, encoded_signature


def verify(
    token: str,
    secret: str | bytes,
    options: VerifyOptions | None = None,
) -> dict[str, Any]:
    """
    Verify a token and return its decoded payload.

    Checks run in a fixed order: structure, algorithm, signature, time claims,
    then ``iss``/``sub``/``aud``. The first failing check raises.

    Raises:
        MissingSecretError, MalformedTokenError, UnsupportedAlgorithmError,
        AlgorithmMismatchError, InvalidSignatureError, NotYetValidError,
        ExpiredError, InvalidClaimError
    """
    options = options or VerifyOptions()
    if not secret:
        raise MissingSecretError("Secret is required for HMAC verification")

    encoded_header, encoded_payload, encoded_signature = split_token(token)

    try:
        header = decode_segment(encoded_header)
        payload = decode_segment(encoded_payload)
    except DecodeError as e:
        raise MalformedTokenError(f"jwt malformed: {e.message}")

    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise MalformedTokenError("jwt header and payload must be JSON objects")

    algorithm = resolve_algorithm(header.get("alg"))
    if options.algorithms and algorithm.value not in options.algorithms:
        raise AlgorithmMismatchError(algorithm.value)

    expected = base64url_encode(
        compute_hmac(algorithm, secret, f"{encoded_header}.{encoded_payload}")
    )
    if not constant_time_equal(expected, encoded_signature):
        raise InvalidSignatureError()

    validate_time_claims(payload, options)
    validate_standard_claims(payload, options)

    return payload


def validate_time_claims(payload: Mapping[str, Any], options: VerifyOptions) -> None:
    now = (
        options.clock_timestamp
        if options.clock_timestamp is not None
        else current_timestamp()
    )
    tolerance = options.clock_tolerance or 0

    if "nbf" in payload:
        nbf = payload["nbf"]
        if not is_numeric(nbf):
            raise InvalidClaimError("nbf", "Invalid nbf")
        if now + tolerance < nbf:
            raise NotYetValidError(valid_at=nbf)

    if "exp" in payload:
        exp = payload["exp"]
        if not is_numeric(exp):
            raise InvalidClaimError("exp", "Invalid exp")
        if now - tolerance >= exp:
            raise ExpiredError(expired_at=exp)

    max_age = parse_timespan(options.max_age) if options.max_age is not None else 0
    if max_age:
        iat = payload.get("iat")
        if not is_numeric(iat):
            raise InvalidClaimError("iat", "iat required when using maxAge")
        if now - iat > max_age + tolerance:
            raise ExpiredError(expired_at=iat + max_age, message="maxAge exceeded")


def validate_standard_claims(
    payload: Mapping[str, Any], options: VerifyOptions
) -> None:
    if options.issuer:
        valid_issuers = (
            options.issuer if isinstance(options.issuer, list) else [options.issuer]
        )
        if payload.get("iss") not in valid_issuers:
            raise InvalidClaimError("iss", "invalid issuer")

    if options.subject and payload.get("sub") != options.subject:
        raise InvalidClaimError("sub", "invalid subject")

    if options.audience:
        valid_audiences = (
            options.audience
            if isinstance(options.audience, list)
            else [options.audience]
        )
        token_audience = payload.get("aud")
        targets = (
            token_audience if isinstance(token_audience, list) else [token_audience]
        )
        if not any(
            isinstance(aud, str) and aud in valid_audiences for aud in targets
        ):
            raise InvalidClaimError("aud", "invalid audience")


@overload
def decode(
    token: str, *, complete: Literal[False] = False
) -> dict[str, Any] | None: ...


@overload
def decode(token: str, *, complete: Literal[True]) -> DecodedToken | None: ...


def decode(
    token: str, *, complete: bool = False
) -> dict[str, Any] | DecodedToken | None:
    """
    Decode a token WITHOUT checking its signature or claims.

    Meant for inspecting untrusted or expired tokens, never for
    authentication. Returns ``None`` instead of raising on any malformed input.
    """
    if not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) < 2:
        return None

    try:
        header = decode_segment(parts[0])
        payload = decode_segment(parts[1])
    except DecodeError:
        return None

    if not isinstance(header, dict) or not isinstance(payload, dict):
        return None

    if complete:
        signature = parts[2] if len(parts) > 2 and parts[2] else None
        return DecodedToken(header=header, payload=payload, signature=signature)

    return payload
