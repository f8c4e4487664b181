from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    user_id: int
    token_hash: str
    expires_at: datetime
    created_at: datetime
    id: int | None = None


class RefreshTokenStore(Protocol):
    """
    Persistence contract of the refresh token service.

    Implementations must enforce uniqueness of ``token_hash`` themselves and
    raise ``InstanceAlreadyExistsException`` on a duplicate insert. Any other
    storage failure is raised as ``RefreshTokenStoreError``.
    """

    async def insert(self, record: RefreshTokenRecord) -> RefreshTokenRecord: ...
    async def find_active_by_hash(
        self, token_hash: str, now: datetime
    ) -> RefreshTokenRecord | None: ...
    async def delete_by_hash(self, token_hash: str) -> bool: ...
    async def delete_by_user(self, user_id: int) -> int: ...
    async def delete_expired(self, now: datetime) -> int: ...
