"""Creates the database and the ``documents`` table from ``database/schema.sql``."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .connection import DatabaseConnection, DBConfig
from .mysql_base import db_cursor

logger = logging.getLogger(__name__)

# The file names its own database; the configured one is used instead.
_DATABASE_SELECTION = re.compile(r"(?im)^\s*(CREATE\s+DATABASE|USE)\b[^;]*;[ \t]*$")


def schema_statements(sql: str) -> list[str]:
    """Executable statements of a schema file, without comments or database selection."""
    sql = _DATABASE_SELECTION.sub("", sql)
    body = "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))
    return [stmt.strip() for stmt in body.split(";") if stmt.strip()]


def ensure_database_exists(config: DBConfig) -> None:
    conn = DatabaseConnection(config).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        cur.close()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> list[str]:
    config = DBConfig.from_dict(db_config)
    ensure_database_exists(config)

    statements = schema_statements(Path(schema_path).read_text(encoding="utf-8"))
    with db_cursor(DatabaseConnection(config), dictionary=False) as (_, cur):
        for stmt in statements:
            cur.execute(stmt)
    logger.info("Applied %d schema statement(s) to %s", len(statements), config.describe())
    return statements


def list_collections(db_config: dict) -> list[tuple[str, int]]:
    """(collection, document count) pairs, by collection name."""
    with db_cursor(DatabaseConnection(DBConfig.from_dict(db_config)), dictionary=False) as (_, cur):
        cur.execute("SELECT collection, COUNT(*) FROM documents GROUP BY collection ORDER BY collection")
        return [(row[0], int(row[1])) for row in cur.fetchall()]
