import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_unit_of_work
from tests.fixtures.api_helpers import (
    ADMIN_API_KEY,
    CONFIDENTIAL_CLIENT_ID,
    CONFIDENTIAL_CLIENT_SECRET,
)
from tests.fixtures.wallet import Wallet


@pytest.fixture
def test_config(tmp_path):
    db_path = tmp_path / "wallet_auth_test.db"

    class TestConfig(ApplicationConfig):
        DB_URI = f"sqlite+aiosqlite:///{db_path}"
        ENVIRONMENT = "development"
        CACHE_BACKEND = "memory"
        ENABLE_SENTRY = 0
        JWT_ACCESS_SECRET = "Zq8vN3kLp2Wx7RmB4tYh9cJd6FgS1aUe"
        JWT_REFRESH_SECRET = "Hb5Qw9Er2Ty7Ui4Op1As8Df3Gh6Jk0Lz"
        ADMIN_API_KEY = ADMIN_API_KEY
        CLEANUP_INTERVAL_SECONDS = 0
        RATE_LIMITS = {}
        CLIENTS = [
            {
                "client_id": "demo-client",
                "name": "Demo Client App",
                "redirect_url": "http://localhost:3001/callback",
            },
            {
                "client_id": CONFIDENTIAL_CLIENT_ID,
                "name": "Partner Backend",
                "redirect_url": "https://partner.example/callback",
                "client_secret": CONFIDENTIAL_CLIENT_SECRET,
            },
        ]

    return TestConfig


@pytest_asyncio.fixture
async def engine(test_config):
    engine = create_async_engine(test_config.DB_URI)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
async def app(test_config, engine):
    from src.api.app import create_app

    app = create_app(test_config)
    yield app
    await app.state.container.close()


@pytest_asyncio.fixture
async def client(app, db_session):
    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def wallet():
    return Wallet()


@pytest.fixture
def admin_headers():
    return {"X-Admin-API-Key": ADMIN_API_KEY}
