from collections.abc import AsyncGenerator, Generator
import os

# Settings are read once at import time, so the test environment has to be
# selected before anything from src is imported.
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")

from fastapi import FastAPI  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.core.database.session import get_session  # noqa: E402
from src.main.config import Config, JWTConfig, get_settings  # noqa: E402
from src.main.web import get_application  # noqa: E402
from src.user.auth.dependencies import get_refresh_token_service  # noqa: E402
from src.user.auth.refresh_tokens import RefreshTokenService  # noqa: E402
from tests.fakes.clock import FrozenClock  # noqa: E402
from tests.fakes.db import FakeAsyncSession  # noqa: E402
from tests.fakes.refresh_tokens import InMemoryRefreshTokenStore  # noqa: E402
from tests.helpers.overrides import DependencyOverrides  # noqa: E402
from tests.helpers.providers import ProvideAsyncValue, ProvideValue  # noqa: E402


@pytest.fixture(scope="session")
def settings() -> Config:
    return get_settings()


@pytest.fixture
def jwt_settings() -> JWTConfig:
    return JWTConfig(
        ACCESS_TOKEN_SECRET="access-secret-for-tests",
        REFRESH_TOKEN_SECRET="refresh-secret-for-tests",
        ACCESS_TOKEN_EXPIRES_IN="1h",
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def refresh_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture
def refresh_service(
    refresh_store: InMemoryRefreshTokenStore,
    jwt_settings: JWTConfig,
    clock: FrozenClock,
) -> RefreshTokenService:
    return RefreshTokenService(store=refresh_store, settings=jwt_settings, clock=clock)


@pytest.fixture
def app() -> FastAPI:
    return get_application()


@pytest.fixture
def dependency_overrides(app: FastAPI) -> Generator[DependencyOverrides]:
    overrides = DependencyOverrides(app)
    yield overrides
    overrides.reset()


@pytest.fixture
def fake_session() -> FakeAsyncSession:
    return FakeAsyncSession()


@pytest.fixture
def app_with_fakes(
    app: FastAPI,
    dependency_overrides: DependencyOverrides,
    fake_session: FakeAsyncSession,
    refresh_service: RefreshTokenService,
) -> FastAPI:
    dependency_overrides.set(get_session, ProvideAsyncValue(fake_session))
    dependency_overrides.set(get_refresh_token_service, ProvideValue(refresh_service))
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client


@pytest_asyncio.fixture
async def async_client_with_fakes(
    app_with_fakes: FastAPI,
) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app_with_fakes)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
