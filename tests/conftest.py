"""
Shared fixtures: a throwaway SQLite database per test.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from auth.jwt import TokenIssuer
from auth.service import SessionService
from config.settings import Settings
from database.helpers import UserStore
from database.session import Database
from main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}",
        database_ssl=False,
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
def issuer(settings) -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


@pytest_asyncio.fixture
async def db(settings):
    database = Database(settings)
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def db_session(db):
    async with db.session_factory() as session:
        yield session
        await session.commit()


@pytest.fixture
def service(db_session, issuer, settings) -> SessionService:
    return SessionService(UserStore(db_session), issuer, bcrypt_rounds=settings.bcrypt_rounds)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as tc:
        yield tc
