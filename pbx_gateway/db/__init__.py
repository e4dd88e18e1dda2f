"""
Database Abstraction Layer

This module provides a clean abstraction for the call log store, making it
easy to switch between database backends (SQLite, Turso) with minimal code
changes.

Usage:
    from pbx_gateway.db import get_repository

    repo = get_repository()
    await repo.create_call_log(company_id, form_data)
    stats = await repo.get_call_log_stats(company_id=company_id)
"""

from pbx_gateway.db.repository import (
    DatabaseRepository,
    CallLogRepository,
    get_repository,
    initialize_database,
    close_database,
)
from pbx_gateway.db.base import DatabaseAdapter, CallLogRepositoryInterface

__all__ = [
    "DatabaseRepository",
    "CallLogRepository",
    "get_repository",
    "initialize_database",
    "close_database",
    "DatabaseAdapter",
    "CallLogRepositoryInterface",
]
