"""
SQLite Database Adapter

Implementation of the DatabaseAdapter interface on the standard library
sqlite3 module. Used for local development and tests (``:memory:``).
"""

import logging
import sqlite3
from typing import Optional, List, Dict, Any

from pbx_gateway.db.base import DatabaseAdapter
from pbx_gateway.db.models import CALL_LOGS_SCHEMA
from pbx_gateway.core.config import settings

logger = logging.getLogger(__name__)


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter holding a single connection."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize SQLite adapter.

        Args:
            db_path: Database file path or ":memory:" (defaults to settings.sqlite_path)
        """
        self.db_path = db_path or settings.sqlite_path
        self._conn: Optional[sqlite3.Connection] = None

    async def connect(self) -> bool:
        """Open the SQLite database."""
        if self._conn is not None:
            return True

        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            logger.info(f"Connected to SQLite database: {self.db_path}")
            return True
        except sqlite3.Error as e:
            logger.error(f"Failed to open SQLite database {self.db_path}: {e}")
            self._conn = None
            return False

    async def disconnect(self) -> None:
        """Close the SQLite connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Disconnected from SQLite database")

    async def initialize_schema(self) -> bool:
        """Create necessary tables if they don't exist."""
        if self._conn is None:
            logger.error("Cannot initialize schema: Not connected")
            return False

        try:
            self._conn.executescript(CALL_LOGS_SCHEMA)
            self._conn.commit()
            logger.info("SQLite schema initialized successfully")
            return True
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize SQLite schema: {e}")
            return False

    async def execute(self, query: str, params: tuple = ()) -> Any:
        """Execute a write query and commit."""
        conn = self._require_connection()
        try:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Query execution failed: {e}\nQuery: {query}")
            raise

    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute query and return single row as dict."""
        row = self._require_connection().execute(query, params).fetchone()
        return dict(row) if row is not None else None

    async def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute query and return all rows as list of dicts."""
        rows = self._require_connection().execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def is_connected(self) -> bool:
        """Check if database connection is active."""
        return self._conn is not None

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise ConnectionError("Not connected to database")
        return self._conn
