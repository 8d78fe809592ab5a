import os

os.environ["POSTGRES_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "secret-de-test"
os.environ["SEND_EMAILS"] = "false"
os.environ["APP_URL"] = "https://concerts.exemple.fr"

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db import all_models  # noqa: F401
from app.db.session import Base, get_db
from app.utils.rate_limit import auth_rate_limiter, inscription_rate_limiter

from helpers import register_user


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mongo(monkeypatch):
    database = AsyncMongoMockClient()["concert_chaussettes_test"]
    monkeypatch.setattr("app.utils.audit.audit_logs_collection", database["audit_logs"])
    monkeypatch.setattr("app.analytics.services.analytics_collection", database["analytics"])
    return database


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    auth_rate_limiter.reset()
    inscription_rate_limiter.reset()
    yield
    auth_rate_limiter.reset()
    inscription_rate_limiter.reset()


@pytest.fixture
async def client(session_factory, mongo):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def organisateur_headers(client):
    headers, _ = await register_user(client, "orga@exemple.fr")
    return headers


@pytest.fixture
async def other_organisateur_headers(client):
    headers, _ = await register_user(client, "autre.orga@exemple.fr", name="Paul Durand")
    return headers


@pytest.fixture
async def groupe_headers(client):
    headers, _ = await register_user(client, "groupe@exemple.fr", role="GROUPE", name="Les Chaussettes")
    return headers
