import pytest

from api import create_app
from api.config import DEFAULT_JWT_SECRET, ProductionConfig, TestingConfig, check_production_secret
from models import storage
from utils.exceptions import ConfigurationError

STRONG_SECRET = "production-secret-0123456789-abcdefghijklmnopqrstuvwxyz"


def test_testing_app_uses_in_memory_database(app):
    assert TestingConfig.DATABASE_URL == "sqlite://"
    assert storage.url == "sqlite://"
    assert str(storage.get_session().get_bind().url) == "sqlite://"


@pytest.mark.parametrize("secret", [None, "", "   ", DEFAULT_JWT_SECRET, "too-short-for-production"])
def test_production_refuses_weak_jwt_secret(monkeypatch, secret):
    monkeypatch.setattr(ProductionConfig, "JWT_SECRET", secret)
    monkeypatch.setattr(ProductionConfig, "DATABASE_URL", "sqlite://")

    with pytest.raises(ConfigurationError):
        create_app("production")


def test_production_starts_with_strong_secret(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "JWT_SECRET", STRONG_SECRET)
    monkeypatch.setattr(ProductionConfig, "DATABASE_URL", "sqlite://")

    app = create_app("production")

    assert app.config["REFRESH_COOKIE_SECURE"] is True
    assert "auth_service" in app.extensions


def test_production_requires_database_url(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "JWT_SECRET", STRONG_SECRET)
    monkeypatch.setattr(ProductionConfig, "DATABASE_URL", None)

    with pytest.raises(ConfigurationError):
        create_app("production")


def test_check_production_secret_accepts_only_strong_secrets():
    with pytest.raises(ConfigurationError):
        check_production_secret(DEFAULT_JWT_SECRET)
    check_production_secret(STRONG_SECRET)
