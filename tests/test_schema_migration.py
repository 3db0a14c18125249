import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlmodel import SQLModel

import packages.db.models  # noqa: F401  registers the tables on the metadata

MIGRATION = (
    Path(__file__).resolve().parents[1] / "infra" / "alembic" / "versions" / "20240301_000001_helpdesk_schema.py"
)


def _load_migration():
    spec = importlib.util.spec_from_file_location("helpdesk_schema_migration", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_migration_matches_model_metadata():
    migration = _load_migration()
    engine = sa.create_engine("sqlite://")

    with engine.begin() as connection:
        with Operations.context(MigrationContext.configure(connection)):
            migration.upgrade()

        inspector = sa.inspect(connection)
        assert set(inspector.get_table_names()) == set(SQLModel.metadata.tables)
        for name, table in SQLModel.metadata.tables.items():
            migrated = {column["name"] for column in inspector.get_columns(name)}
            assert migrated == {column.name for column in table.columns}, name

        roles = connection.execute(sa.text("SELECT name FROM roles ORDER BY id")).scalars().all()
        assert roles == ["admin", "manager", "worker"]

        with Operations.context(MigrationContext.configure(connection)):
            migration.downgrade()
        assert sa.inspect(connection).get_table_names() == []
