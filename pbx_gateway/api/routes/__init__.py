"""API Routes"""

from . import calls, sessions, call_logs, health

__all__ = ["calls", "sessions", "call_logs", "health"]
