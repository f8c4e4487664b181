from enum import StrEnum
from typing import Any


class CoreException(Exception):
    def __init__(
        self, message: str | None = None, additional_info: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.additional_info = additional_info


class InfrastructureException(CoreException):
    pass


class InstanceAlreadyExistsException(CoreException):
    pass


class InstanceProcessingException(CoreException):
    pass


class UnauthorizedException(CoreException):
    pass


# ----- Configuration / infrastructure ----- #
class ConfigurationError(InfrastructureException):
    """A required setting (e.g. a signing secret) is missing or invalid."""


class HashingError(InfrastructureException):
    """Password key derivation failed."""


class RefreshTokenStoreError(InfrastructureException):
    """The refresh token store could not complete an operation."""


class InvalidTimespanError(CoreException, ValueError):
    def __init__(self, value: Any) -> None:
        super().__init__(f"Invalid timespan format: {value!r}")
        self.value = value


# ----- Token errors ----- #
class TokenErrorKind(StrEnum):
    MISSING_SECRET = "missing_secret"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    ALGORITHM_MISMATCH = "algorithm_mismatch"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
    INVALID_CLAIM = "invalid_claim"


class TokenError(UnauthorizedException):
    """
    Base class for every failure raised by the token engine.

    ``kind`` is the discriminant callers should match on; subclasses only add
    kind-specific attributes (``expired_at``, ``valid_at``, ``claim``...).
    """

    kind: TokenErrorKind

    def __init__(
        self, message: str | None = None, additional_info: dict[str, Any] | None = None
    ):
        super().__init__(message, additional_info)

    @property
    def is_temporal(self) -> bool:
        """True when the token is otherwise sound but outside its validity window."""
        return self.kind in (TokenErrorKind.EXPIRED, TokenErrorKind.NOT_YET_VALID)


class MissingSecretError(TokenError):
    kind = TokenErrorKind.MISSING_SECRET

    def __init__(self, message: str = "Secret is required for HMAC signing") -> None:
        super().__init__(message)


class UnsupportedAlgorithmError(TokenError):
    kind = TokenErrorKind.UNSUPPORTED_ALGORITHM

    def __init__(self, algorithm: Any) -> None:
        super().__init__(f"Unsupported algorithm: {algorithm}")
        self.algorithm = algorithm


class AlgorithmMismatchError(TokenError):
    kind = TokenErrorKind.ALGORITHM_MISMATCH

    def __init__(self, algorithm: Any) -> None:
        super().__init__(f"Invalid algorithm: {algorithm}")
        self.algorithm = algorithm


class MalformedTokenError(TokenError):
    kind = TokenErrorKind.MALFORMED

    def __init__(self, message: str = "jwt malformed") -> None:
        super().__init__(message)


class InvalidSignatureError(TokenError):
    kind = TokenErrorKind.INVALID_SIGNATURE

    def __init__(self, message: str = "invalid signature") -> None:
        super().__init__(message)


class ExpiredError(TokenError):
    kind = TokenErrorKind.EXPIRED

    def __init__(self, expired_at: int | float, message: str = "jwt expired") -> None:
        super().__init__(message, {"expired_at": expired_at})
        self.expired_at = expired_at


class NotYetValidError(TokenError):
    kind = TokenErrorKind.NOT_YET_VALID

    def __init__(self, valid_at: int | float, message: str = "jwt not active") -> None:
        super().__init__(message, {"valid_at": valid_at})
        self.valid_at = valid_at


class InvalidClaimError(TokenError):
    kind = TokenErrorKind.INVALID_CLAIM

    def __init__(self, claim: str, message: str | None = None) -> None:
        super().__init__(message or f"invalid {claim}", {"claim": claim})
        self.claim = claim


class DecodeError(CoreException, ValueError):
    """A token segment is not valid base64url or not valid JSON."""
