"""
Database Adapters

Concrete implementations of the DatabaseAdapter interface. Adapters are
imported lazily by the repository factory so only the configured backend's
driver is loaded.
"""

from pbx_gateway.db.adapters.sqlite import SQLiteAdapter

__all__ = ["SQLiteAdapter"]
