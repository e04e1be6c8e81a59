"""Tests for the Alembic migration runner."""

import asyncio

import pytest
import sqlalchemy as sa

from ghost_runner.db import create_engine, create_tables
from ghost_runner.db.migrate import INITIAL_REVISION, downgrade, get_alembic_config, upgrade

STORE_TABLES = {"failures", "info_gathering_results"}


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "ghost_runner.db"


@pytest.fixture
def database_url(db_path):
    return f"sqlite+aiosqlite:///{db_path}"


def table_names(db_path) -> set[str]:
    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        return set(sa.inspect(engine).get_table_names())
    finally:
        engine.dispose()


def stamped_revisions(db_path) -> list[str]:
    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            return list(conn.execute(sa.text("SELECT version_num FROM alembic_version")).scalars())
    finally:
        engine.dispose()


def create_with_metadata(database_url: str) -> None:
    async def _create() -> None:
        engine = create_engine(database_url)
        await create_tables(engine)
        await engine.dispose()

    asyncio.run(_create())


class TestMigrate:
    """Tests for upgrade()/downgrade(). Alembic runs its own event loop, so these are sync."""

    def test_config_points_at_packaged_migrations(self, database_url):
        cfg = get_alembic_config(database_url)

        assert cfg.get_main_option("script_location").endswith("migrations")
        assert cfg.get_main_option("sqlalchemy.url") == database_url

    def test_upgrade_fresh_database(self, db_path, database_url):
        upgrade(database_url=database_url)

        assert STORE_TABLES <= table_names(db_path)
        assert stamped_revisions(db_path) == [INITIAL_REVISION]

    def test_upgrade_adopts_tables_created_on_startup(self, db_path, database_url):
        create_with_metadata(database_url)
        assert "alembic_version" not in table_names(db_path)

        upgrade(database_url=database_url)

        assert stamped_revisions(db_path) == [INITIAL_REVISION]
        assert STORE_TABLES <= table_names(db_path)

    def test_upgrade_is_repeatable(self, db_path, database_url):
        upgrade(database_url=database_url)
        upgrade(database_url=database_url)

        assert stamped_revisions(db_path) == [INITIAL_REVISION]

    def test_downgrade_to_base_drops_store_tables(self, db_path, database_url):
        upgrade(database_url=database_url)

        downgrade("base", database_url=database_url)

        assert not STORE_TABLES & table_names(db_path)
