"""Alembic migrations build the same schema the models declare."""

import pytest
from sqlalchemy import create_engine, inspect

from src.shepherd.core.config import get_settings
from src.shepherd.core.migrations import run_migrations_sync

pytestmark = pytest.mark.integration


@pytest.fixture
def migrated_db(tmp_path, monkeypatch):
    path = tmp_path / "migrated.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{path}")
    get_settings.cache_clear()
    run_migrations_sync()
    engine = create_engine(f"sqlite:///{path}")
    yield engine
    engine.dispose()
    get_settings.cache_clear()


def test_upgrade_creates_tables(migrated_db):
    tables = set(inspect(migrated_db).get_table_names())

    assert {"tenants", "principals", "invitation_tokens", "followup_assignments"} <= tables
    assert "alembic_version" in tables


def test_invitation_code_is_unique(migrated_db):
    indexes = inspect(migrated_db).get_indexes("invitation_tokens")
    uniques = inspect(migrated_db).get_unique_constraints("invitation_tokens")

    unique_columns = [i["column_names"] for i in indexes if i["unique"]] + [
        u["column_names"] for u in uniques
    ]
    assert ["code"] in unique_columns


def test_upgrade_is_repeatable(migrated_db):
    run_migrations_sync()

    assert "principals" in inspect(migrated_db).get_table_names()
