"""Services module"""

from pbx_gateway.services.credentials import resolve_connection_params
from pbx_gateway.services.call_session import (
    CallSessionController,
    CallSessionManager,
    get_session_manager,
    reset_session_manager,
)

__all__ = [
    "resolve_connection_params",
    "CallSessionController",
    "CallSessionManager",
    "get_session_manager",
    "reset_session_manager",
]
