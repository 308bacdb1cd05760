"""Boot-time guards: refuse to serve against a store the engine cannot trust."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from restaurant_app.core.config import DATABASE_URL, IS_PROD, IS_TEST
from restaurant_app.core.database import Base

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[SCHEMA]"


def validate_database_environment() -> None:
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")
    # SQLite has no row locks; concurrent completions would not serialise
    if IS_PROD and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is not allowed with ENV=prod", STARTUP_PREFIX)
        raise RuntimeError("SQLite is not allowed in production")


def missing_tables(engine: Engine) -> list[str]:
    with engine.connect() as connection:
        existing = set(inspect(connection).get_table_names())
    return sorted(set(Base.metadata.tables) - existing)


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    """Compare the database's alembic revision with the script heads and make
    sure every table the models map is present."""
    if IS_TEST:
        logger.info("%s migration check skipped (ENV=test)", STARTUP_PREFIX)
        return

    if not alembic_config_path.exists():
        logger.critical("%s alembic.ini not found at %s", STARTUP_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    expected_heads = set(ScriptDirectory.from_config(Config(str(alembic_config_path))).get_heads())

    with engine.connect() as connection:
        if not inspect(connection).has_table("alembic_version"):
            logger.critical("%s database was never migrated; run `alembic upgrade head`", STARTUP_PREFIX)
            raise RuntimeError("Database has no migration state")
        current_heads = {
            row[0] for row in connection.exec_driver_sql("SELECT version_num FROM alembic_version") if row[0]
        }

    if current_heads != expected_heads:
        logger.critical(
            "%s database at %s, code expects %s",
            STARTUP_PREFIX,
            sorted(current_heads),
            sorted(expected_heads),
        )
        raise RuntimeError("Pending migrations detected")

    absent = missing_tables(engine)
    if absent:
        logger.critical("%s tables missing after migration: %s", STARTUP_PREFIX, ", ".join(absent))
        raise RuntimeError("Schema is incomplete")

    logger.info("%s revision %s verified", STARTUP_PREFIX, ", ".join(sorted(current_heads)))
