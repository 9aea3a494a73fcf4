"""The initial revision builds the same indexes the models declare."""

import importlib.util
import io
import pathlib

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex

from lookup_gateway.core.database import Base

VERSIONS = pathlib.Path(__file__).resolve().parents[1] / "alembic" / "versions"
INITIAL = VERSIONS / "2026_10_19_0900-0001_create_gateway_tables.py"


def _upgrade_sql() -> str:
    """Run upgrade() in offline mode and return the PostgreSQL it emits."""
    buffer = io.StringIO()
    context = MigrationContext.configure(
        dialect_name="postgresql",
        opts={"as_sql": True, "output_buffer": buffer},
    )
    spec = importlib.util.spec_from_file_location("initial_revision", INITIAL)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    with Operations.context(context):
        module.upgrade()
    return buffer.getvalue()


def test_every_model_index_is_created():
    sql = _upgrade_sql()
    dialect = postgresql.dialect()

    for table in Base.metadata.sorted_tables:
        for index in table.indexes:
            assert str(CreateIndex(index).compile(dialect=dialect)) in sql, index.name


def test_key_hash_uniqueness_is_the_index_only():
    sql = _upgrade_sql()

    assert "CREATE UNIQUE INDEX ix_api_keys_key_hash ON api_keys (key_hash)" in sql
    assert "UNIQUE (key_hash)" not in sql
