# casebook/alembic/helpers.py
"""Existence checks so revisions are harmless on a schema created from the models."""
import sqlalchemy as sa
from alembic import op


def has_table(conn, name: str) -> bool:
    return name in sa.inspect(conn).get_table_names()


def has_column(conn, table: str, column: str) -> bool:
    insp = sa.inspect(conn)
    if table not in insp.get_table_names():
        return False
    return column in [c["name"] for c in insp.get_columns(table)]


def index_exists(conn, table: str, index_name: str) -> bool:
    insp = sa.inspect(conn)
    if table not in insp.get_table_names():
        return False
    return any(ix.get("name") == index_name for ix in insp.get_indexes(table))


def create_index_safe(conn, name: str, table: str, columns: list[str], unique: bool = False) -> None:
    if not index_exists(conn, table, name):
        op.create_index(name, table, columns, unique=unique)
