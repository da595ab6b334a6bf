"""
SQLite sink for harvested profiles.

Each collection writes into its own table (`results_<timestamp>`); the table
name is the sink handle recorded in the checkpoint. A batch is inserted in a
single transaction, so a failed append leaves no partial rows behind.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple

from db.connection import get_connection
from models.record import COLUMNS, Record
from utils.errors import SinkIOError


logger = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _profile_to_values(record: Record, columns: Sequence[str]) -> Tuple[Any, ...]:
    row = record.as_row()
    return tuple(row.get(col) for col in columns)


class SQLiteSink:
    def __init__(self, db_path: str, table_prefix: str = "results"):
        self.db_path = db_path
        self.table_prefix = table_prefix
        self.columns: List[str] = list(COLUMNS)
        self._conn = get_connection(self.db_path)

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error as e:
            logger.warning("SQLite connection did not close cleanly: %s", e, extra={"step": "close"})

    @staticmethod
    def _check_table(name: str) -> str:
        if not name or not _TABLE_RE.match(name):
            raise SinkIOError(f"Invalid table name: {name!r}")
        return name

    def create_with_header(self, columns: Sequence[str] = COLUMNS) -> str:
        self.columns = list(columns)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        table = self._check_table(f"{self.table_prefix}_{stamp}")
        columns_sql = ",\n".join(["    id INTEGER PRIMARY KEY AUTOINCREMENT"] + [f"    {col} TEXT" for col in self.columns])
        create_sql = f"""
CREATE TABLE IF NOT EXISTS {table} (
{columns_sql}
);
""".strip()
        try:
            self._conn.execute(create_sql)
            self._conn.commit()
        except sqlite3.Error as e:
            raise SinkIOError(f"Could not create table {table}: {e}") from e
        return table

    def exists(self, handle: str) -> bool:
        if not handle or not _TABLE_RE.match(handle):
            return False
        cur = self._conn.cursor()
        cur.execute("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (handle,))
        return cur.fetchone() is not None

    def append(self, handle: str, records: List[Record]) -> int:
        if not records:
            return 0
        table = self._check_table(handle)
        placeholders = ", ".join(["?" for _ in self.columns])
        sql = f"INSERT INTO {table} ({', '.join(self.columns)}) VALUES ({placeholders})"
        values = [_profile_to_values(r, self.columns) for r in records]
        try:
            with self._conn:
                self._conn.executemany(sql, values)
        except sqlite3.Error as e:
            raise SinkIOError(f"Error appending to table {table}: {e}") from e
        return len(values)

    def fetch_all(self, handle: str) -> List[Dict[str, Any]]:
        table = self._check_table(handle)
        cur = self._conn.cursor()
        cur.execute(f"SELECT {', '.join(self.columns)} FROM {table} ORDER BY id")
        rows = cur.fetchall()
        return [{key: row[idx] for idx, key in enumerate(self.columns)} for row in rows]
