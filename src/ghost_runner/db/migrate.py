"""Schema migrations for the failure and info-gathering stores.

``ghost-runner-migrate`` brings a database to the latest revision. The
dashboard also creates missing tables on startup, so a database may hold the
tables without any Alembic bookkeeping; such databases are adopted by stamping
the initial revision before upgrading.
"""

import argparse
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.exc import OperationalError, ProgrammingError

from ghost_runner.config import Settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# Revision that matches the tables created by Base.metadata.create_all
INITIAL_REVISION = "a1f3c9d2e7b4"


def get_alembic_config(database_url: str | None = None) -> Config:
    """Build an Alembic config pointing at the packaged migrations.

    Args:
        database_url: Async database URL; defaults to the configured one
    """
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", database_url or Settings().database_url)
    return cfg


def _tables_exist_untracked(error: Exception) -> bool:
    return "already exists" in str(error)


def upgrade(revision: str = "head", database_url: str | None = None) -> None:
    """Upgrade the stores' schema, adopting databases made by create_all."""
    cfg = get_alembic_config(database_url)
    try:
        command.upgrade(cfg, revision)
    except (OperationalError, ProgrammingError) as e:
        if not _tables_exist_untracked(e):
            raise
        logger.warning(
            f"Store tables exist without migration history; "
            f"stamping {INITIAL_REVISION} before upgrading"
        )
        command.stamp(cfg, INITIAL_REVISION)
        command.upgrade(cfg, revision)
    logger.info(f"Database schema at revision '{revision}'")


def downgrade(revision: str, database_url: str | None = None) -> None:
    command.downgrade(get_alembic_config(database_url), revision)
    logger.info(f"Database schema downgraded to '{revision}'")


def main() -> None:
    """Entry point for ``ghost-runner-migrate``."""
    parser = argparse.ArgumentParser(description="Migrate the ghost-runner database")
    parser.add_argument("revision", nargs="?", default="head", help="Target revision")
    parser.add_argument("--database-url", help="Overrides GHOST_RUNNER_DATABASE_URL")
    parser.add_argument(
        "--downgrade", action="store_true", help="Downgrade to the target revision"
    )
    args = parser.parse_args()

    if args.downgrade:
        downgrade(args.revision, args.database_url)
    else:
        upgrade(args.revision, args.database_url)


if __name__ == "__main__":
    main()
