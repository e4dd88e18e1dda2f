"""
Database Adapter Base Classes

This module defines the abstract interfaces that all database adapters
must implement. This enables easy switching between different databases.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

from pbx_gateway.models.call_log import CallLog, CallLogFormData, CallLogStats, CallLogUpdate


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    All database implementations (SQLite, Turso, etc.)
    must implement this interface.
    """

    @abstractmethod
    async def connect(self) -> bool:
        """
        Establish connection to the database.
        Returns True if successful, False otherwise.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the database connection."""
        pass

    @abstractmethod
    async def initialize_schema(self) -> bool:
        """
        Create necessary tables if they don't exist.
        Returns True if successful, False otherwise.
        """
        pass

    @abstractmethod
    async def execute(self, query: str, params: tuple = ()) -> Any:
        """Execute a raw SQL query."""
        pass

    @abstractmethod
    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute query and return single row as dict."""
        pass

    @abstractmethod
    async def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute query and return all rows as list of dicts."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if database connection is active."""
        pass


class CallLogRepositoryInterface(ABC):
    """
    Abstract interface for the append-only call log store.
    """

    @abstractmethod
    async def create_call_log(
        self,
        company_id: str,
        data: CallLogFormData,
        call_log_id: Optional[str] = None
    ) -> CallLog:
        """Create a call log; writing an existing id returns the stored row."""
        pass

    @abstractmethod
    async def get_call_logs(
        self,
        company_id: Optional[str] = None,
        employee_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[CallLog]:
        """List call logs, newest first."""
        pass

    @abstractmethod
    async def get_call_log_by_id(self, call_log_id: str) -> Optional[CallLog]:
        """Get a call log by id."""
        pass

    @abstractmethod
    async def update_call_log(self, call_log_id: str, data: CallLogUpdate) -> Optional[CallLog]:
        """Apply the fields set on ``data`` to a call log."""
        pass

    @abstractmethod
    async def delete_call_log(self, call_log_id: str) -> bool:
        """Delete a call log."""
        pass

    @abstractmethod
    async def get_call_log_stats(
        self,
        company_id: Optional[str] = None,
        employee_id: Optional[str] = None
    ) -> CallLogStats:
        """Aggregate counts and durations."""
        pass
