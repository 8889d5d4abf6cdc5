from __future__ import annotations

import logging

import pytest

from src.core.logging import RequestContextFilter, configure_logging, correlation_id_var, user_id_var
from src.db.config import Settings

pytestmark = pytest.mark.unit


def _settings(**overrides):
    values = {
        "POSTGRES_URL": None,
        "POSTGRES_USER": "dyor",
        "POSTGRES_PASSWORD": "secret",
        "POSTGRES_DB": "dyorhub",
        "POSTGRES_HOST": "db",
        "POSTGRES_PORT": 6543,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestDatabaseSettings:
    def test_url_from_parts(self):
        settings = _settings()
        assert settings.database_url == "postgresql://dyor:secret@db:6543/dyorhub"
        assert settings.async_database_url == "postgresql+asyncpg://dyor:secret@db:6543/dyorhub"

    def test_explicit_url_wins(self):
        settings = _settings(POSTGRES_URL="postgres://u:p@remote:5432/x", POSTGRES_USER=None)
        assert settings.async_database_url == "postgresql+asyncpg://u:p@remote:5432/x"
        assert settings.sync_database_url == "postgresql://u:p@remote:5432/x"

    def test_existing_driver_is_replaced(self):
        settings = _settings(POSTGRES_URL="postgresql+psycopg2://u:p@remote/x")
        assert settings.async_database_url == "postgresql+asyncpg://u:p@remote/x"
        assert settings.sync_database_url == "postgresql://u:p@remote/x"

    def test_missing_parts_are_named(self):
        settings = _settings(POSTGRES_USER=None, POSTGRES_DB=None)
        with pytest.raises(ValueError) as exc:
            settings.database_url
        assert "POSTGRES_USER" in str(exc.value)
        assert "POSTGRES_DB" in str(exc.value)
        assert "POSTGRES_PASSWORD" not in str(exc.value)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestLogging:
    def _record(self):
        return logging.LogRecord("dyor", logging.INFO, __file__, 1, "hello", None, None)

    def test_outside_request_uses_placeholders(self):
        record = self._record()
        assert RequestContextFilter().filter(record) is True
        assert (record.correlation_id, record.user_id) == ("-", "-")

    def test_request_context_is_stamped(self):
        cid, uid = correlation_id_var.set("abc123"), user_id_var.set("user-1")
        try:
            record = self._record()
            RequestContextFilter().filter(record)
        finally:
            correlation_id_var.reset(cid)
            user_id_var.reset(uid)
        assert (record.correlation_id, record.user_id) == ("abc123", "user-1")

    def test_level_name_is_accepted(self, restore_root_logger):
        configure_logging("debug")
        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert logging.getLogger("httpx").level == logging.WARNING
