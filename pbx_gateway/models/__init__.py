"""Data models for the PBX Call Gateway"""

from .pbx import (
    CallIntent,
    ConnectionParams,
    ProbeTemplate,
    ProbeAttempt,
    ProbeOutcome,
    CallResult,
    CompanyPbxSettings,
    EmployeeSipSettings
)

from .call import (
    CallDirection,
    SessionState,
    MakeCallRequest,
    EndCallRequest,
    MakeCallResponse,
    EndCallResponse,
    CallSession,
    OutboundSessionRequest,
    InboundSessionRequest,
    ActiveSessionsResponse,
    SessionEventResponse
)

from .call_log import (
    CallType,
    CallLogStatus,
    CallLogFormData,
    CallLogUpdate,
    CallLog,
    CallLogCreateRequest,
    CallLogStats
)

__all__ = [
    # PBX models
    "CallIntent",
    "ConnectionParams",
    "ProbeTemplate",
    "ProbeAttempt",
    "ProbeOutcome",
    "CallResult",
    "CompanyPbxSettings",
    "EmployeeSipSettings",
    # Call models
    "CallDirection",
    "SessionState",
    "MakeCallRequest",
    "EndCallRequest",
    "MakeCallResponse",
    "EndCallResponse",
    "CallSession",
    "OutboundSessionRequest",
    "InboundSessionRequest",
    "ActiveSessionsResponse",
    "SessionEventResponse",
    # Call log models
    "CallType",
    "CallLogStatus",
    "CallLogFormData",
    "CallLogUpdate",
    "CallLog",
    "CallLogCreateRequest",
    "CallLogStats"
]
