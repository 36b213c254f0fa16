"""
Unit tests for provisioning the target database on its server.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from mrf_loader.catalog import database as database_module
from mrf_loader.catalog.database import DatabaseConnectionError, SchemaError, create_database
from mrf_loader.config.settings import Settings


@pytest.fixture
def fake_server(monkeypatch):
    """Replace create_engine with a mock server connection."""
    engine = MagicMock()
    conn = engine.connect.return_value
    conn.scalar.return_value = None
    calls = []

    def fake_create_engine(url, **kwargs):
        calls.append((url, kwargs))
        return engine

    monkeypatch.setattr(database_module, "create_engine", fake_create_engine)
    return engine, conn, calls


def _postgres_settings(name="rates"):
    return Settings(database_url=None, db_host="localhost", db_name=name)


class TestPostgres:
    def test_creates_missing_database(self, fake_server):
        engine, conn, calls = fake_server

        assert create_database(_postgres_settings()) is True

        url, kwargs = calls[0]
        assert url.database == "postgres"
        assert kwargs["isolation_level"] == "AUTOCOMMIT"
        assert conn.scalar.call_args[0][1] == {"name": "rates"}
        assert conn.execute.call_args[0][0].text == "CREATE DATABASE rates"
        engine.dispose.assert_called_once()

    def test_existing_database_left_alone(self, fake_server):
        engine, conn, _ = fake_server
        conn.scalar.return_value = 1

        assert create_database(_postgres_settings()) is False

        conn.execute.assert_not_called()
        engine.dispose.assert_called_once()

    def test_name_is_quoted(self, fake_server):
        _, conn, _ = fake_server

        create_database(_postgres_settings(name="healthcare-saver"))

        assert conn.execute.call_args[0][0].text == 'CREATE DATABASE "healthcare-saver"'

    def test_unreachable_server(self, fake_server):
        engine, _, _ = fake_server
        engine.connect.side_effect = OperationalError("connect", {}, Exception("refused"))

        with pytest.raises(DatabaseConnectionError, match="refused"):
            create_database(_postgres_settings())

        engine.dispose.assert_called_once()

    def test_create_statement_fails(self, fake_server):
        _, conn, _ = fake_server
        conn.execute.side_effect = ProgrammingError("CREATE DATABASE", {}, Exception("permission denied"))

        with pytest.raises(SchemaError, match="permission denied"):
            create_database(_postgres_settings())


class TestSqlite:
    def test_creates_database_file(self, tmp_path):
        target = tmp_path / "rates.db"
        settings = Settings(database_url=f"sqlite:///{target}")

        assert create_database(settings) is True
        assert target.exists()
        assert create_database(settings) is False

    def test_in_memory_is_never_created(self):
        assert create_database(Settings(database_url="sqlite://")) is False

    def test_missing_directory(self, tmp_path):
        settings = Settings(database_url=f"sqlite:///{tmp_path / 'absent' / 'rates.db'}")

        with pytest.raises(SchemaError):
            create_database(settings)
