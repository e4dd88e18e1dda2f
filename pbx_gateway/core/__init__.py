"""Core module for configuration, settings, and shared utilities"""

from .config import settings, get_settings, Settings
from .logging import setup_logging, get_logger
from .exceptions import (
    PbxGatewayException,
    MissingParameterError,
    PbxServiceError,
    AttemptFailedError,
    AllEndpointsFailedError,
    CallError,
    CallInitiationError,
    CallCancelledError,
    SessionNotFoundError,
    InvalidSessionStateError,
    SessionEndedError,
    CallLogError,
    LogWriteFailedError,
    CallLogNotFoundError
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    "Settings",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "PbxGatewayException",
    "MissingParameterError",
    "PbxServiceError",
    "AttemptFailedError",
    "AllEndpointsFailedError",
    "CallError",
    "CallInitiationError",
    "CallCancelledError",
    "SessionNotFoundError",
    "InvalidSessionStateError",
    "SessionEndedError",
    "CallLogError",
    "LogWriteFailedError",
    "CallLogNotFoundError"
]
