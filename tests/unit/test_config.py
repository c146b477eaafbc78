"""Settings tests."""

from entitystore.config import Settings


def test_database_uri_from_postgres_parts(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = Settings(
        _env_file=None,
        POSTGRES_SERVER="db",
        POSTGRES_USER="shop",
        POSTGRES_PASSWORD="secret",
        POSTGRES_DB="catalog",
    )

    assert config.SQLALCHEMY_DATABASE_URI == (
        "postgresql+psycopg://shop:secret@db:5432/catalog"
    )


def test_database_url_override() -> None:
    config = Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite:///./shop.db")

    assert config.SQLALCHEMY_DATABASE_URI == "sqlite+aiosqlite:///./shop.db"


def test_cache_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("CACHE_BACKEND", "redis")
    monkeypatch.setenv("DEFAULT_CACHE_TIME", "15")

    config = Settings(_env_file=None)

    assert config.CACHE_BACKEND == "redis"
    assert config.DEFAULT_CACHE_TIME == 15
    assert config.SHORT_TERM_CACHE_TIME == 3
