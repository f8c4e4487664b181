"""
Refresh token lifecycle.

Refresh tokens are ordinary signed tokens issued under their own secret.
The store only ever sees the SHA-256 hex digest of a token, so a leaked
table does not yield usable credentials. Validation failures are reported as
``None`` without a reason, the reason only goes to the debug log.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
import math
from typing import NamedTuple
from uuid import uuid4

from loggers import get_logger
from src.core.errors.exceptions import ConfigurationError, TokenError
from src.core.jwt import (
    Algorithm,
    SignOptions,
    VerifyOptions,
    parse_timespan,
    render_timespan,
    sign,
    verify,
)
from src.core.jwt.codec import Timespan
from src.core.utils.datetime_utils import get_utc_now
from src.core.utils.security import sha256_hex, token_fingerprint
from src.main.config import JWTConfig
from src.user.auth.interfaces import RefreshTokenRecord, RefreshTokenStore

logger = get_logger(__name__)

REFRESH_TOKEN_TYPE = "refresh"
REFRESH_TOKEN_ISSUER = "refresh"
REFRESH_TOKEN_ALGORITHM = Algorithm.HS256
REFRESH_LIFETIME_MULTIPLIER = 30
MIN_REFRESH_LIFETIME_SECONDS = 30 * 60
SECONDS_PER_DAY = 24 * 60 * 60


class RefreshTokenOwner(NamedTuple):
    user_id: int
    username: str


def derive_refresh_lifetime(access_lifetime: Timespan) -> str:
    """
    Derive the refresh token lifetime from the access token lifetime.

    Thirty times the access lifetime, never less than 30 minutes, rendered in
    the largest whole unit (``"1h"`` -> ``"30h"``, ``"5s"`` -> ``"30m"``).
    """
    seconds = parse_timespan(access_lifetime) * REFRESH_LIFETIME_MULTIPLIER
    return render_timespan(max(seconds, MIN_REFRESH_LIFETIME_SECONDS))


def lifetime_in_days(lifetime: Timespan) -> int:
    return math.ceil(parse_timespan(lifetime) / SECONDS_PER_DAY)


def hash_refresh_token(token: str) -> str:
    return sha256_hex(token)


class RefreshTokenService:
    def __init__(
        self,
        store: RefreshTokenStore,
        settings: JWTConfig,
        clock: Callable[[], datetime] = get_utc_now,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock

    @property
    def secret(self) -> str:
        secret = self.settings.REFRESH_TOKEN_SECRET
        if not secret:
            raise ConfigurationError("REFRESH_TOKEN_SECRET is not configured")
        if secret == self.settings.ACCESS_TOKEN_SECRET:
            raise ConfigurationError(
                "REFRESH_TOKEN_SECRET must differ from ACCESS_TOKEN_SECRET"
            )
        return secret

    def issue(self, user_id: int, username: str, access_lifetime: Timespan) -> str:
        """
        Sign a new refresh token for the user. Nothing is persisted.

        Raises:
            ConfigurationError: the refresh secret is not configured.
        """
        return sign(
            {"userId": user_id, "username": username, "type": REFRESH_TOKEN_TYPE},
            self.secret,
            SignOptions(
                algorithm=REFRESH_TOKEN_ALGORITHM,
                expires_in=derive_refresh_lifetime(access_lifetime),
                issuer=REFRESH_TOKEN_ISSUER,
                # Two tokens signed within the same second must still differ
                jwtid=uuid4().hex,
                clock_timestamp=int(self.clock().timestamp()),
            ),
        )

    async def persist(
        self, user_id: int, signed_token: str, expires_in_days: int
    ) -> RefreshTokenRecord:
        now = self.clock()
        record = await self.store.insert(
            RefreshTokenRecord(
                user_id=user_id,
                token_hash=hash_refresh_token(signed_token),
                expires_at=now + timedelta(days=expires_in_days),
                created_at=now,
            )
        )
        logger.debug(
            "Stored refresh token %s for user %s",
            token_fingerprint(signed_token),
            user_id,
        )
        return record

    async def create(
        self, user_id: int, username: str, access_lifetime: Timespan
    ) -> str:
        """Issue a refresh token and persist its hash."""
        token = self.issue(user_id, username, access_lifetime)
        await self.persist(
            user_id,
            token,
            lifetime_in_days(derive_refresh_lifetime(access_lifetime)),
        )
        return token

    async def validate(self, signed_token: str) -> RefreshTokenOwner | None:
        """
        Return the owner of a live refresh token, or ``None``.

        ``None`` covers a bad signature, an expired or malformed token, a
        token of another type, a revoked token and a store record that belongs
        to a different user.

        Raises:
            ConfigurationError: the refresh secret is not configured.
            RefreshTokenStoreError: the store could not be queried.
        """
        secret = self.secret
        fingerprint = token_fingerprint(signed_token or "")

        try:
            payload = verify(
                signed_token,
                secret,
                VerifyOptions(
                    algorithms=[REFRESH_TOKEN_ALGORITHM],
                    issuer=REFRESH_TOKEN_ISSUER,
                    clock_timestamp=int(self.clock().timestamp()),
                ),
            )
        except TokenError as e:
            logger.debug("Refresh token %s rejected: %s", fingerprint, e.kind)
            return None

        if payload.get("type") != REFRESH_TOKEN_TYPE:
            logger.debug("Refresh token %s rejected: wrong type", fingerprint)
            return None

        record = await self.store.find_active_by_hash(
            hash_refresh_token(signed_token), self.clock()
        )
        if record is None:
            logger.debug("Refresh token %s rejected: not stored", fingerprint)
            return None

        user_id = payload.get("userId")
        if isinstance(user_id, bool) or record.user_id != user_id:
            logger.warning(
                "Refresh token %s rejected: stored owner %s != claimed owner %s",
                fingerprint,
                record.user_id,
                user_id,
            )
            return None

        return RefreshTokenOwner(
            user_id=record.user_id, username=payload.get("username", "")
        )

    async def revoke(self, signed_token: str) -> bool:
        revoked = await self.store.delete_by_hash(hash_refresh_token(signed_token))
        logger.debug(
            "Revoke refresh token %s: %s", token_fingerprint(signed_token), revoked
        )
        return revoked

    async def revoke_all(self, user_id: int) -> int:
        count = await self.store.delete_by_user(user_id)
        logger.info("Revoked %s refresh tokens of user %s", count, user_id)
        return count

    async def sweep_expired(self) -> int:
        count = await self.store.delete_expired(self.clock())
        logger.info("Swept %s expired refresh tokens", count)
        return count

    async def rotate(
        self,
        old_signed_token: str,
        expected_user_id: int,
        access_lifetime: Timespan = "1h",
    ) -> str | None:
        """
        Exchange a live refresh token for a new one.

        The old record is deleted before the new one is stored, in two
        separate store calls. A failure in between leaves the user without a
        refresh token, which fails safe: they have to log in again.

        Returns:
            The new signed token, or ``None`` when the old token is not valid
            for ``expected_user_id``.
        """
        owner = await self.validate(old_signed_token)
        if owner is None or owner.user_id != expected_user_id:
            return None

        await self.revoke(old_signed_token)
        new_token = self.issue(owner.user_id, owner.username, access_lifetime)
        await self.persist(
            owner.user_id,
            new_token,
            lifetime_in_days(derive_refresh_lifetime(access_lifetime)),
        )
        logger.info("Rotated refresh token of user %s", owner.user_id)
        return new_token
