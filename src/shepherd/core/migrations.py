"""Alembic runner shared by deployment scripts and tests."""

import asyncio
from pathlib import Path

from alembic.config import Config

from alembic import command

ALEMBIC_INI = Path(__file__).resolve().parents[3] / "alembic.ini"


def run_migrations_sync(revision: str = "head") -> None:
    """Upgrade the configured database (``DATABASE_URL``) to ``revision``."""
    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "src" / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, revision)


async def run_migrations_async(revision: str = "head") -> None:
    """Run migrations from async code without blocking the event loop."""
    await asyncio.to_thread(run_migrations_sync, revision)
