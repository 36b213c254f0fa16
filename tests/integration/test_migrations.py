"""
Integration tests for the Alembic migration chain.
"""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from mrf_loader.config.settings import get_settings

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def alembic_config(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()

    # No ini file: keeps alembic from reconfiguring test logging
    config = Config()
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    yield config, url
    get_settings.cache_clear()


def test_upgrade_matches_models(alembic_config):
    config, url = alembic_config

    command.upgrade(config, "head")

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert {"insurance_services", "negotiated_rates"} <= set(inspector.get_table_names())
        indexes = {index["name"] for index in inspector.get_indexes("negotiated_rates")}
        assert indexes == {
            "idx_service_id", "idx_negotiated_type", "idx_billing_class", "idx_expiration_date",
        }
        foreign_keys = inspector.get_foreign_keys("negotiated_rates")
        assert foreign_keys[0]["referred_table"] == "insurance_services"
    finally:
        engine.dispose()


def test_downgrade_to_base(alembic_config):
    config, url = alembic_config
    command.upgrade(config, "head")

    command.downgrade(config, "base")

    engine = create_engine(url)
    try:
        assert set(inspect(engine).get_table_names()) == {"alembic_version"}
    finally:
        engine.dispose()
