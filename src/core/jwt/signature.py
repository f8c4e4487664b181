from collections.abc import Callable
from enum import StrEnum
import hashlib
import hmac
from typing import Any

from src.core.errors.exceptions import UnsupportedAlgorithmError


class Algorithm(StrEnum):
    HS256 = "HS256"
    HS384 = "HS384"
    HS512 = "HS512"


HASH_FUNCTIONS: dict[Algorithm, Callable[..., Any]] = {
    Algorithm.HS256: hashlib.sha256,
    Algorithm.HS384: hashlib.sha384,
    Algorithm.HS512: hashlib.sha512,
}

DEFAULT_ALGORITHM = Algorithm.HS256


def resolve_algorithm(value: Any) -> Algorithm:
    """
    Map an ``alg`` value to a supported HMAC algorithm.

    Raises:
        UnsupportedAlgorithmError: when the value names anything else.
    """
    if not isinstance(value, str):
        raise UnsupportedAlgorithmError(value)
    try:
        return Algorithm(value)
    except ValueError:
        raise UnsupportedAlgorithmError(value)


def to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def compute_hmac(
    algorithm: Algorithm | str, secret: str | bytes, signing_input: str | bytes
) -> bytes:
    """Compute the raw HMAC digest of ``signing_input`` keyed by ``secret``."""
    digestmod = HASH_FUNCTIONS[resolve_algorithm(algorithm)]
    return hmac.new(to_bytes(secret), to_bytes(signing_input), digestmod).digest()


def constant_time_equal(a: str | bytes, b: str | bytes) -> bool:
    """
    Compare two values without leaking where they differ.

    Values of unequal length still go through a comparison of the same
    cost before ``False`` is returned.
    """
    left = to_bytes(a)
    right = to_bytes(b)

    if len(left) != len(right):
        hmac.compare_digest(left, left)
        return False

    return hmac.compare_digest(left, right)
