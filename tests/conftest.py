from datetime import timedelta

import pytest

from api import create_app
from api.services import AuthService
from models import storage
from models.base_model import Base
from utils.security import TokenSigner

from tests.fakes import FakeClock, InMemoryRefreshSessionRepository, InMemoryUserRepository

TEST_SECRET = "test-secret-0123456789-abcdefghijklmnopqrstuvwxyz-0123456789abc"


@pytest.fixture(scope="function")
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
def users(clock):
    return InMemoryUserRepository(clock)


@pytest.fixture(scope="function")
def sessions():
    return InMemoryRefreshSessionRepository()


@pytest.fixture(scope="function")
def signer(clock):
    return TokenSigner(TEST_SECRET, timedelta(minutes=15), now=clock)


@pytest.fixture(scope="function")
def auth_service(users, sessions, signer, clock):
    return AuthService(users, sessions, signer, refresh_ttl=timedelta(hours=24), now=clock)


@pytest.fixture(scope="function")
def app(clock):
    app = create_app("testing", now=clock)
    yield app
    session = storage.get_session()
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    storage.close()


@pytest.fixture(scope="function")
def client(app):
    # cookies are passed explicitly so tests can replay old refresh tokens
    return app.test_client(use_cookies=False)
