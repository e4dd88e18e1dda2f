"""
Call Log Repository Implementation

This module provides a concrete implementation of the CallLogRepositoryInterface
that works with any DatabaseAdapter (SQLite, Turso, etc.)
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple

from pbx_gateway.core.config import settings
from pbx_gateway.core.exceptions import LogWriteFailedError
from pbx_gateway.db.base import DatabaseAdapter, CallLogRepositoryInterface
from pbx_gateway.db.models import CALL_LOG_COLUMNS
from pbx_gateway.models.call_log import CallLog, CallLogFormData, CallLogStats, CallLogUpdate, utc_now

logger = logging.getLogger(__name__)

# Singleton instance
_repository_instance: Optional["CallLogRepository"] = None


class CallLogRepository(CallLogRepositoryInterface):
    """
    Repository for managing call logs.

    Call logs are append-only from the session side: a write keyed by an
    existing id is ignored and the stored row is returned, so retrying a
    write never creates a duplicate.
    """

    def __init__(self, adapter: DatabaseAdapter):
        """
        Initialize the repository with a database adapter.

        Args:
            adapter: A DatabaseAdapter implementation (SQLite, Turso, etc.)
        """
        self.adapter = adapter

    async def initialize(self) -> bool:
        """
        Initialize the repository (connect and setup schema).

        Returns:
            True if initialization successful, False otherwise.
        """
        connected = await self.adapter.connect()
        if not connected:
            return False

        return await self.adapter.initialize_schema()

    async def close(self) -> None:
        """Close the database connection."""
        await self.adapter.disconnect()

    def is_ready(self) -> bool:
        return self.adapter.is_connected()

    # ==================== Writes ====================

    async def create_call_log(
        self,
        company_id: str,
        data: CallLogFormData,
        call_log_id: Optional[str] = None
    ) -> CallLog:
        """Create a call log; writing an existing id returns the stored row."""
        call_log = CallLog(
            id=call_log_id or str(uuid.uuid4()),
            company_id=company_id,
            **data.model_dump()
        )

        placeholders = ", ".join("?" for _ in CALL_LOG_COLUMNS)
        query = f"""
            INSERT OR IGNORE INTO call_logs ({", ".join(CALL_LOG_COLUMNS)})
            VALUES ({placeholders})
        """
        params = tuple(self._to_db(getattr(call_log, column)) for column in CALL_LOG_COLUMNS)

        try:
            inserted = await self.adapter.execute(query, params)
            stored = await self.get_call_log_by_id(call_log.id)
        except Exception as e:
            logger.error(f"Failed to write call log {call_log.id}: {e}")
            raise LogWriteFailedError(f"Call log could not be saved: {e}") from e

        if stored is None:
            raise LogWriteFailedError(f"Call log {call_log.id} was not stored")

        if inserted == 0:
            logger.info(f"Call log {call_log.id} already recorded, keeping stored row")
        else:
            logger.info(
                f"Created call log {call_log.id}: {call_log.call_type.value}/"
                f"{call_log.call_status.value} {call_log.duration_seconds}s"
            )
        return stored

    async def update_call_log(self, call_log_id: str, data: CallLogUpdate) -> Optional[CallLog]:
        """Apply the fields set on ``data`` to a call log."""
        updates = data.model_dump(exclude_unset=True)
        if not updates:
            return await self.get_call_log_by_id(call_log_id)

        set_clauses = []
        params: List[Any] = []
        for key, value in updates.items():
            set_clauses.append(f"{key} = ?")
            params.append(self._to_db(value))

        params.append(call_log_id)
        query = f"UPDATE call_logs SET {', '.join(set_clauses)} WHERE id = ?"

        await self.adapter.execute(query, tuple(params))
        logger.info(f"Updated call log: {call_log_id}")
        return await self.get_call_log_by_id(call_log_id)

    async def delete_call_log(self, call_log_id: str) -> bool:
        """Delete a call log. Returns False if it did not exist."""
        if await self.get_call_log_by_id(call_log_id) is None:
            return False

        await self.adapter.execute("DELETE FROM call_logs WHERE id = ?", (call_log_id,))
        logger.info(f"Deleted call log: {call_log_id}")
        return True

    # ==================== Reads ====================

    async def get_call_log_by_id(self, call_log_id: str) -> Optional[CallLog]:
        """Get a call log by id."""
        row = await self.adapter.fetch_one("SELECT * FROM call_logs WHERE id = ?", (call_log_id,))
        return self._row_to_call_log(row) if row else None

    async def get_call_logs(
        self,
        company_id: Optional[str] = None,
        employee_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[CallLog]:
        """List call logs, newest first. Every matching row unless ``limit`` is given."""
        where, params = self._filters(company_id, employee_id)
        query = f"SELECT * FROM call_logs{where} ORDER BY start_time DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_call_log(row) for row in rows]

    async def get_call_log_stats(
        self,
        company_id: Optional[str] = None,
        employee_id: Optional[str] = None
    ) -> CallLogStats:
        """Aggregate counts and durations."""
        where, params = self._filters(company_id, employee_id)
        query = f"""
            SELECT
                COUNT(*) as total,
                SUM(CASE WHEN call_type = 'outgoing' THEN 1 ELSE 0 END) as outgoing,
                SUM(CASE WHEN call_type = 'incoming' THEN 1 ELSE 0 END) as incoming,
                SUM(CASE WHEN call_type = 'missed' THEN 1 ELSE 0 END) as missed,
                SUM(COALESCE(duration_seconds, 0)) as total_duration
            FROM call_logs{where}
        """
        row = await self.adapter.fetch_one(query, tuple(params)) or {}

        total = row.get("total") or 0
        total_duration = row.get("total_duration") or 0
        # Half-up rounding, so 2.5 gives 3 like the dashboards expect
        average = math.floor(total_duration / total + 0.5) if total > 0 else 0

        return CallLogStats(
            total=total,
            outgoing=row.get("outgoing") or 0,
            incoming=row.get("incoming") or 0,
            missed=row.get("missed") or 0,
            total_duration=total_duration,
            average_duration=average,
        )

    # ==================== Helper Methods ====================

    @staticmethod
    def _filters(company_id: Optional[str], employee_id: Optional[str]) -> Tuple[str, List[Any]]:
        conditions = []
        params: List[Any] = []

        if company_id:
            conditions.append("company_id = ?")
            params.append(company_id)

        if employee_id:
            conditions.append("employee_id = ?")
            params.append(employee_id)

        where = " WHERE " + " AND ".join(conditions) if conditions else ""
        return where, params

    @staticmethod
    def _to_db(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            # Aware times are stored in UTC
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc)
            return value.isoformat()
        return value

    def _row_to_call_log(self, row: Dict[str, Any]) -> CallLog:
        """Convert a database row to CallLog."""
        return CallLog(
            id=row["id"],
            company_id=row["company_id"],
            employee_id=row["employee_id"],
            call_type=row["call_type"],
            phone_number=row["phone_number"],
            customer_name=row.get("customer_name"),
            customer_id=row.get("customer_id"),
            duration_seconds=row.get("duration_seconds") or 0,
            call_status=row["call_status"],
            recording_url=row.get("recording_url"),
            notes=row.get("notes"),
            start_time=self._parse_datetime(row["start_time"]),
            end_time=self._parse_datetime(row.get("end_time")),
            created_at=self._parse_datetime(row.get("created_at")) or utc_now(),
        )

    def _parse_datetime(self, value: Any) -> Optional[datetime]:
        """Parse datetime from string or return as-is if already datetime."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            return None


class DatabaseRepository:
    """
    Main database repository factory.

    This class provides a unified interface to get the appropriate
    repository based on configuration.
    """

    @staticmethod
    def create_repository(db_type: str = "sqlite") -> CallLogRepository:
        """
        Create a repository with the specified database type.

        Args:
            db_type: Database type ("sqlite" or "turso")

        Returns:
            CallLogRepository instance with the appropriate adapter.
        """
        if db_type == "turso":
            from pbx_gateway.db.adapters.turso import TursoAdapter
            adapter = TursoAdapter()
        else:
            from pbx_gateway.db.adapters.sqlite import SQLiteAdapter
            adapter = SQLiteAdapter()

        return CallLogRepository(adapter)


def get_repository() -> CallLogRepository:
    """
    Get or create the singleton repository instance.

    The database type is determined by the DATABASE_TYPE setting
    (default: "sqlite"). Turso without credentials falls back to SQLite.

    Returns:
        CallLogRepository singleton instance.
    """
    global _repository_instance

    if _repository_instance is None:
        db_type = settings.database_type.lower()

        if db_type == "turso" and not settings.turso_db_url:
            logger.warning("Turso selected but TURSO_DB_URL not set, falling back to SQLite")
            db_type = "sqlite"

        _repository_instance = DatabaseRepository.create_repository(db_type)
        logger.info(f"Created {db_type} repository instance")

    return _repository_instance


async def initialize_database() -> bool:
    """
    Initialize the database (connect and create schema).

    Call this at application startup.

    Returns:
        True if initialization successful, False otherwise.
    """
    repo = get_repository()
    return await repo.initialize()


async def close_database() -> None:
    """
    Close the database connection.

    Call this at application shutdown.
    """
    global _repository_instance
    if _repository_instance:
        await _repository_instance.close()
        _repository_instance = None
        logger.info("Database connection closed")
