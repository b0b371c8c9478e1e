"""
Thin wrapper around the SQLite database file that plays the warehouse.
"""

import os
import sqlite3
import logging
from typing import Any, List, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)


class Warehouse:
    """One SQLite connection per pipeline invocation."""

    def __init__(self, db_path: str):
        """
        Args:
            db_path: Path to the SQLite database file (":memory:" is accepted)
        """
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def _ensure_db_directory(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory and self.db_path != ":memory:":
            os.makedirs(directory, exist_ok=True)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._ensure_db_directory()
            self._conn = sqlite3.connect(self.db_path)
            logger.debug(f"Connected to warehouse at {self.db_path}")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Warehouse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.conn.execute(sql, params)

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Return the first column of the first row, or None."""
        row = self.execute(sql, params).fetchone()
        return row[0] if row else None

    def read_sql(self, sql: str, params: Optional[Sequence[Any]] = None) -> pd.DataFrame:
        return pd.read_sql(sql, self.conn, params=params)

    def relation_type(self, name: str) -> Optional[str]:
        """Return 'table', 'view' or None when the relation does not exist."""
        return self.scalar(
            "SELECT type FROM sqlite_master WHERE name = ? AND type IN ('table', 'view')",
            (name,),
        )

    def relation_exists(self, name: str) -> bool:
        return self.relation_type(name) is not None

    def drop_relation(self, name: str) -> None:
        kind = self.relation_type(name)
        if kind == "view":
            self.execute(f'DROP VIEW IF EXISTS "{name}"')
        elif kind == "table":
            self.execute(f'DROP TABLE IF EXISTS "{name}"')

    def columns(self, name: str) -> List[str]:
        return [row[1] for row in self.execute(f'PRAGMA table_info("{name}")').fetchall()]

    def row_count(self, name: str) -> int:
        return self.scalar(f'SELECT COUNT(*) FROM "{name}"')

    def list_relations(self, prefix: str = "") -> List[str]:
        rows = self.execute(
            "SELECT name FROM sqlite_master WHERE type IN ('table', 'view') "
            "AND name LIKE ? ORDER BY name",
            (f"{prefix}%",),
        ).fetchall()
        return [row[0] for row in rows]

    def write_frame(self, df: pd.DataFrame, name: str, if_exists: str = "replace") -> int:
        """
        Write a DataFrame to a table inside one transaction.

        Args:
            df: Rows to write
            name: Target table name
            if_exists: 'replace' or 'append', as for DataFrame.to_sql

        Returns:
            Number of rows written
        """
        with self.conn:
            df.to_sql(name, self.conn, if_exists=if_exists, index=False, chunksize=10000)
        return len(df)
