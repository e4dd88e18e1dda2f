"""
Custom Exceptions for the PBX Call Gateway
Provides structured error handling across the application
"""

from typing import Optional, Dict, Any, List, Sequence


class PbxGatewayException(Exception):
    """Base exception for all gateway errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response"""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


# Validation Exceptions
class MissingParameterError(PbxGatewayException):
    """Raised when a required connection or intent field is absent"""

    def __init__(self, missing: Sequence[str]):
        self.missing: List[str] = list(missing)
        super().__init__(
            message=f"Missing required parameters: {', '.join(self.missing)}",
            error_code="MISSING_PARAMETER",
            details={"missing": self.missing},
            status_code=400
        )


# PBX Exceptions
class PbxServiceError(PbxGatewayException):
    """Base exception for remote PBX errors"""
    pass


class AttemptFailedError(PbxServiceError):
    """Raised when a single probe candidate fails; handled inside the prober"""

    def __init__(self, outcome: Any):
        self.outcome = outcome
        super().__init__(
            message=f"Attempt failed: {outcome.attempt.method} {outcome.attempt.url}",
            error_code="ATTEMPT_FAILED",
            details=outcome.to_dict(),
            status_code=502
        )


class AllEndpointsFailedError(PbxServiceError):
    """Raised when every catalog candidate has been tried without success"""

    def __init__(self, intent: str, outcomes: Sequence[Any], body_limit: Optional[int] = None):
        self.intent = intent
        self.outcomes = list(outcomes)
        super().__init__(
            message=f"All PBX endpoints failed for {intent}",
            error_code="ALL_ENDPOINTS_FAILED",
            details={
                "intent": intent,
                "attempts": [o.to_dict(body_limit=body_limit) for o in self.outcomes]
            },
            status_code=500
        )


# Call Exceptions
class CallError(PbxGatewayException):
    """Base exception for call session errors"""
    pass


class CallInitiationError(CallError):
    """Raised when an outbound session could not start its call"""

    def __init__(self, session_id: str):
        super().__init__(
            message="The call could not be started. Please try again later.",
            error_code="CALL_INITIATION_FAILED",
            details={"session_id": session_id},
            status_code=502
        )


class CallCancelledError(CallError):
    """Raised on a pending dial when the session was hung up first"""

    def __init__(self, session_id: str):
        super().__init__(
            message="The call was cancelled before it connected",
            error_code="CALL_CANCELLED",
            details={"session_id": session_id},
            status_code=409
        )


class SessionNotFoundError(CallError):
    """Raised when a call session is not found"""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Call session not found: {session_id}",
            error_code="SESSION_NOT_FOUND",
            details={"session_id": session_id},
            status_code=404
        )


class InvalidSessionStateError(CallError):
    """Raised when an event is not valid in the session's current state"""

    def __init__(self, session_id: str, state: str, event: str):
        super().__init__(
            message=f"Cannot {event} a call session in state {state}",
            error_code="INVALID_SESSION_STATE",
            details={"session_id": session_id, "state": state, "event": event},
            status_code=409
        )


class SessionEndedError(CallError):
    """Raised when trying to interact with a session that already ended"""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Call session has already ended: {session_id}",
            error_code="SESSION_ENDED",
            details={"session_id": session_id},
            status_code=410
        )


# Call Log Exceptions
class CallLogError(PbxGatewayException):
    """Base exception for call log storage errors"""
    pass


class LogWriteFailedError(CallLogError):
    """Raised when the call log store rejects a write"""

    def __init__(self, message: str = "Call log could not be saved", session_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="LOG_WRITE_FAILED",
            details={"session_id": session_id} if session_id else {},
            status_code=503
        )


class CallLogNotFoundError(CallLogError):
    """Raised when a call log is not found"""

    def __init__(self, call_log_id: str):
        super().__init__(
            message=f"Call log not found: {call_log_id}",
            error_code="CALL_LOG_NOT_FOUND",
            details={"call_log_id": call_log_id},
            status_code=404
        )
