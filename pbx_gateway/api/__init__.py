"""API module"""

from .routes import calls, sessions, call_logs, health

__all__ = ["calls", "sessions", "call_logs", "health"]
