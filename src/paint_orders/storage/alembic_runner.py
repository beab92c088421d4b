"""Programmatic Alembic access for the orders database."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[3]


def alembic_config(db_path: Path) -> Config:
    config = Config(str(_PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return config


def head_revision(db_path: Path) -> str | None:
    return ScriptDirectory.from_config(alembic_config(db_path)).get_current_head()


def current_revision(engine: Engine) -> str | None:
    """Revision stamped in the database, ``None`` for a fresh file."""

    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def upgrade_head(db_path: Path, *, engine: Engine | None = None) -> None:
    """Bring the schema to the newest revision; a database already at head is left alone."""

    if engine is not None and current_revision(engine) == head_revision(db_path):
        return
    logger.info("Applying schema migrations to %s", db_path)
    command.upgrade(alembic_config(db_path), "head")
