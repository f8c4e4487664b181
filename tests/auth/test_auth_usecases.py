from typing import Any
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.core.errors.exceptions import (
    InstanceAlreadyExistsException,
    InstanceProcessingException,
    UnauthorizedException,
)
from src.core.jwt import decode
from src.core.schemas import RevokedSessionsResponse, SuccessResponse
from src.core.utils.security import hash_password, verify_password
from src.user.auth.refresh_tokens import RefreshTokenOwner, RefreshTokenService
from src.user.auth.schemas import LoginUserModel, RefreshTokenModel, SignupUserModel
from src.user.auth.security import verify_access_token
from src.user.auth.usecases import login
from src.user.auth.usecases.login import INVALID_CREDENTIALS_MESSAGE, LoginUserUseCase
from src.user.auth.usecases.logout import LogoutUseCase
from src.user.auth.usecases.refresh import RefreshTokensUseCase
from src.user.auth.usecases.signup import USERNAME_TAKEN_MESSAGE, SignupUseCase
from src.user.models import User
from tests.factories.user_factory import build_user
from tests.fakes.db import FakeAsyncSession
from tests.fakes.refresh_tokens import InMemoryRefreshTokenStore

PASSWORD = "correct horse battery staple"


class FakeUsersRepository:
    def __init__(self, users: list[User] | None = None, exists: bool = False) -> None:
        self.users = {user.id: user for user in users or []}
        self.exists = AsyncMock(return_value=exists)
        self.create = AsyncMock(side_effect=self._create)
        self.get_single = AsyncMock(side_effect=self._get_single)

    async def _create(
        self, session: Any, data: dict[str, Any], commit: bool = False
    ) -> User:
        user = build_user(user_id=len(self.users) + 1, **data)
        self.users[user.id] = user
        return user

    async def _get_single(self, session: Any, **filters: Any) -> User | None:
        for user in self.users.values():
            if all(getattr(user, key) == value for key, value in filters.items()):
                return user
        return None


@pytest.fixture(scope="module")
def password_hash() -> str:
    return hash_password(PASSWORD)


# ----- Signup ----- #
@pytest.mark.asyncio
async def test_signup_hashes_password(fake_session: FakeAsyncSession) -> None:
    repository = FakeUsersRepository()
    use_case = SignupUseCase(session=fake_session, repository=repository)  # type: ignore[arg-type]

    profile = await use_case.execute(
        SignupUserModel(username="alice", password=PASSWORD, secret_message="hi")
    )

    assert profile.username == "alice"
    assert profile.secret_message == "hi"
    stored = repository.users[1]
    assert stored.password_hash != PASSWORD
    assert verify_password(PASSWORD, stored.password_hash) is True
    assert repository.create.await_args.kwargs["commit"] is True


@pytest.mark.asyncio
async def test_signup_duplicate_username(fake_session: FakeAsyncSession) -> None:
    repository = FakeUsersRepository(exists=True)
    use_case = SignupUseCase(session=fake_session, repository=repository)  # type: ignore[arg-type]

    with pytest.raises(InstanceAlreadyExistsException) as exc_info:
        await use_case.execute(
            SignupUserModel(username="alice", password=PASSWORD, secret_message="hi")
        )

    assert exc_info.value.message == USERNAME_TAKEN_MESSAGE
    repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_signup_lost_race(fake_session: FakeAsyncSession) -> None:
    repository = FakeUsersRepository()
    repository.create.side_effect = IntegrityError("INSERT", {}, Exception("dup"))
    use_case = SignupUseCase(session=fake_session, repository=repository)  # type: ignore[arg-type]

    with pytest.raises(InstanceAlreadyExistsException):
        await use_case.execute(
            SignupUserModel(username="alice", password=PASSWORD, secret_message="hi")
        )


# ----- Login ----- #
@pytest.mark.asyncio
async def test_login_returns_token_pair(
    fake_session: FakeAsyncSession,
    refresh_service: RefreshTokenService,
    password_hash: str,
) -> None:
    repository = FakeUsersRepository([build_user(user_id=7, password_hash=password_hash)])
    use_case = LoginUserUseCase(
        session=fake_session, repository=repository, refresh_tokens=refresh_service  # type: ignore[arg-type]
    )

    tokens = await use_case.execute(LoginUserModel(username="alice", password=PASSWORD))

    assert tokens.token_type == "bearer"
    assert verify_access_token(tokens.access_token)["userId"] == 7
    assert await refresh_service.validate(tokens.refresh_token) == RefreshTokenOwner(
        7, "alice"
    )


@pytest.mark.asyncio
async def test_login_wrong_password(
    fake_session: FakeAsyncSession,
    refresh_service: RefreshTokenService,
    refresh_store: InMemoryRefreshTokenStore,
    password_hash: str,
) -> None:
    repository = FakeUsersRepository([build_user(user_id=7, password_hash=password_hash)])
    use_case = LoginUserUseCase(
        session=fake_session, repository=repository, refresh_tokens=refresh_service  # type: ignore[arg-type]
    )

    with pytest.raises(InstanceProcessingException) as exc_info:
        await use_case.execute(LoginUserModel(username="alice", password="nope"))

    assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE
    assert refresh_store.records == {}


@pytest.mark.asyncio
async def test_login_unknown_user_runs_dummy_verification(
    fake_session: FakeAsyncSession,
    refresh_service: RefreshTokenService,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    verify_mock = AsyncMock(return_value=False)
    monkeypatch.setattr("src.user.auth.usecases.login.verify_password_async", verify_mock)
    use_case = LoginUserUseCase(
        session=fake_session, repository=FakeUsersRepository(), refresh_tokens=refresh_service  # type: ignore[arg-type]
    )

    with pytest.raises(InstanceProcessingException) as exc_info:
        await use_case.execute(LoginUserModel(username="ghost", password=PASSWORD))

    assert exc_info.value.message == INVALID_CREDENTIALS_MESSAGE
    verify_mock.assert_awaited_once()


@pytest.mark.asyncio
async def test_dummy_password_hash_is_derived_once_on_demand(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    hash_mock = AsyncMock(return_value="00:11")
    monkeypatch.setattr(login, "_dummy_password_hash", None)
    monkeypatch.setattr(login, "hash_password_async", hash_mock)

    assert await login.get_dummy_password_hash() == "00:11"
    assert await login.get_dummy_password_hash() == "00:11"
    hash_mock.assert_awaited_once_with(login.DUMMY_PASSWORD)


# ----- Refresh ----- #
@pytest.mark.asyncio
async def test_refresh_rotates_and_issues_access_token(
    fake_session: FakeAsyncSession, refresh_service: RefreshTokenService
) -> None:
    repository = FakeUsersRepository([build_user(user_id=7)])
    old = await refresh_service.create(7, "alice", "1h")
    use_case = RefreshTokensUseCase(
        session=fake_session, repository=repository, refresh_tokens=refresh_service  # type: ignore[arg-type]
    )

    tokens = await use_case.execute(RefreshTokenModel(refresh_token=old))

    assert tokens.refresh_token != old
    assert await refresh_service.validate(old) is None
    assert verify_access_token(tokens.access_token)["userId"] == 7


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["garbage", "a.b.c"])
async def test_refresh_rejects_unreadable_token(
    fake_session: FakeAsyncSession, refresh_service: RefreshTokenService, token: str
) -> None:
    use_case = RefreshTokensUseCase(
        session=fake_session, repository=FakeUsersRepository(), refresh_tokens=refresh_service  # type: ignore[arg-type]
    )

    with pytest.raises(UnauthorizedException):
        await use_case.execute(RefreshTokenModel(refresh_token=token))


@pytest.mark.asyncio
async def test_refresh_rejects_revoked_token(
    fake_session: FakeAsyncSession, refresh_service: RefreshTokenService
) -> None:
    old = await refresh_service.create(7, "alice", "1h")
    await refresh_service.revoke(old)
    use_case = RefreshTokensUseCase(
        session=fake_session,
        repository=FakeUsersRepository([build_user(user_id=7)]),  # type: ignore[arg-type]
        refresh_tokens=refresh_service,
    )

    with pytest.raises(UnauthorizedException):
        await use_case.execute(RefreshTokenModel(refresh_token=old))


@pytest.mark.asyncio
async def test_refresh_for_deleted_user_revokes_new_token(
    fake_session: FakeAsyncSession,
    refresh_service: RefreshTokenService,
    refresh_store: InMemoryRefreshTokenStore,
) -> None:
    old = await refresh_service.create(7, "alice", "1h")
    use_case = RefreshTokensUseCase(
        session=fake_session, repository=FakeUsersRepository(), refresh_tokens=refresh_service  # type: ignore[arg-type]
    )

    with pytest.raises(UnauthorizedException):
        await use_case.execute(RefreshTokenModel(refresh_token=old))

    assert refresh_store.records == {}


# ----- Logout ----- #
@pytest.mark.asyncio
async def test_logout_is_idempotent(refresh_service: RefreshTokenService) -> None:
    token = await refresh_service.create(7, "alice", "1h")
    use_case = LogoutUseCase(refresh_tokens=refresh_service)

    data = RefreshTokenModel(refresh_token=token)

    assert await use_case.execute(data) == SuccessResponse(success=True)
    assert await use_case.execute(data) == SuccessResponse(success=True)
    assert await refresh_service.validate(token) is None


@pytest.mark.asyncio
async def test_logout_everywhere(refresh_service: RefreshTokenService) -> None:
    await refresh_service.create(7, "alice", "1h")
    await refresh_service.create(7, "alice", "1h")
    use_case = LogoutUseCase(refresh_tokens=refresh_service)

    assert await use_case.execute_all(7) == RevokedSessionsResponse(revoked=2)


def test_refresh_token_claims_are_readable_without_secret(
    refresh_service: RefreshTokenService,
) -> None:
    token = refresh_service.issue(7, "alice", "1h")

    assert decode(token)["userId"] == 7  # type: ignore[index]
