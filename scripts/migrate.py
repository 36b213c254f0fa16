#!/usr/bin/env python3
"""
Database migration script using Alembic.

Runs all pending database migrations to upgrade the schema, or downgrades
to a given revision.

Usage:
    python scripts/migrate.py
    python scripts/migrate.py downgrade [revision]
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))


def _alembic_config() -> Config:
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option(
        "script_location", str(project_root / "migrations"))
    return alembic_cfg


def run_migrations() -> None:
    """Upgrade the catalog schema to the latest revision."""
    print("Running database migrations...")
    try:
        command.upgrade(_alembic_config(), "head")
        print("✓ Migrations completed successfully")
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        sys.exit(1)


def downgrade_migrations(revision: str = "-1") -> None:
    """
    Downgrade database migrations.

    Args:
        revision: Target revision to downgrade to (default: -1 for previous version)
    """
    print(f"Downgrading database to revision: {revision}...")
    try:
        command.downgrade(_alembic_config(), revision)
        print("✓ Downgrade completed successfully")
    except Exception as e:
        print(f"✗ Downgrade failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "downgrade":
        revision = sys.argv[2] if len(sys.argv) > 2 else "-1"
        downgrade_migrations(revision)
    else:
        run_migrations()
