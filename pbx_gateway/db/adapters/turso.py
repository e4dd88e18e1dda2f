"""
Turso Database Adapter

Implementation of the DatabaseAdapter interface for Turso (libSQL).
Turso is a SQLite-compatible database with edge replicas.
"""

import logging
import re
from typing import Optional, List, Dict, Any

import libsql_client

from pbx_gateway.db.base import DatabaseAdapter
from pbx_gateway.db.models import CALL_LOGS_SCHEMA
from pbx_gateway.core.config import settings

logger = logging.getLogger(__name__)


class TursoAdapter(DatabaseAdapter):
    """
    Turso (libSQL) database adapter.

    Uses the libsql_client library for async database operations.
    """

    def __init__(self, db_url: Optional[str] = None, auth_token: Optional[str] = None):
        """
        Initialize Turso adapter.

        Args:
            db_url: Turso database URL (defaults to settings.turso_db_url)
            auth_token: Turso auth token (defaults to settings.turso_db_auth_token)
        """
        self.db_url = db_url or settings.turso_db_url
        self.auth_token = auth_token or settings.turso_db_auth_token
        self._client = None
        self._connected = False

    async def connect(self) -> bool:
        """Establish connection to Turso database."""
        if not self.db_url or not self.auth_token:
            logger.error("Cannot connect: Missing TURSO_DB_URL or TURSO_DB_AUTH_TOKEN")
            return False

        try:
            self._client = libsql_client.create_client(
                self.db_url,
                auth_token=self.auth_token
            )
            self._connected = True
            logger.info(f"Connected to Turso database: {self.db_url}")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to Turso: {e}")
            self._connected = False
            return False

    async def disconnect(self) -> None:
        """Close the Turso connection."""
        if self._client:
            try:
                await self._client.close()
            except Exception as e:
                logger.warning(f"Error closing Turso connection: {e}")
            finally:
                self._client = None
                self._connected = False
                logger.info("Disconnected from Turso database")

    async def initialize_schema(self) -> bool:
        """Create necessary tables if they don't exist."""
        if not self._connected or not self._client:
            logger.error("Cannot initialize schema: Not connected")
            return False

        # libSQL executes one statement per request
        schema = re.sub(r'--.*$', '', CALL_LOGS_SCHEMA, flags=re.MULTILINE)
        statements = [stmt.strip() for stmt in schema.split(";") if stmt.strip()]

        try:
            for stmt in statements:
                await self._client.execute(stmt)
        except Exception as e:
            logger.error(f"Failed to initialize Turso schema: {e}")
            return False

        logger.info("Turso schema initialized successfully")
        return True

    async def execute(self, query: str, params: tuple = ()) -> Any:
        """Execute a raw SQL query."""
        client = self._require_client()
        try:
            result = await client.execute(query, list(params))
            return result.rows_affected
        except Exception as e:
            logger.error(f"Query execution failed: {e}\nQuery: {query}")
            raise

    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute query and return single row as dict."""
        rows = await self.fetch_all(query, params)
        return rows[0] if rows else None

    async def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute query and return all rows as list of dicts."""
        client = self._require_client()
        try:
            result = await client.execute(query, list(params))
        except Exception as e:
            logger.error(f"Query execution failed: {e}\nQuery: {query}")
            raise

        columns = list(result.columns or [])
        return [dict(zip(columns, row)) for row in result.rows]

    def is_connected(self) -> bool:
        """Check if database connection is active."""
        return self._connected and self._client is not None

    def _require_client(self):
        if not self._connected or not self._client:
            raise ConnectionError("Not connected to database")
        return self._client
