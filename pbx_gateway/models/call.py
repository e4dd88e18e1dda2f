"""
Data models for call control and call sessions
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from pbx_gateway.models.pbx import CompanyPbxSettings, ConnectionParams, EmployeeSipSettings


class CallDirection(str, Enum):
    """Direction of the call"""
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class SessionState(str, Enum):
    """State of a call session"""
    # Inbound
    RINGING = "ringing"
    ANSWERED = "answered"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    # Outbound
    DIALING = "dialing"
    CONNECTED = "connected"
    FAILED = "failed"
    # Terminal
    LOG_WRITTEN = "log_written"


class MakeCallRequest(BaseModel):
    """Request model for starting a call on the PBX"""
    model_config = {
        "json_schema_extra": {
            "example": {
                "api_endpoint": "https://pbx.example.com",
                "santral_id": "12345",
                "api_key": "secret",
                "extension": "101",
                "phone_number": "+90 555 123 4567"
            }
        }
    }

    api_endpoint: Optional[str] = Field(None, description="PBX API base URL")
    santral_id: Optional[str] = Field(None, description="PBX tenant (santral) ID")
    api_key: Optional[str] = Field(None, description="PBX API key")
    extension: Optional[str] = Field(None, description="Caller extension")
    phone_number: Optional[str] = Field(None, description="Number to dial")

    def connection_params(self) -> ConnectionParams:
        return ConnectionParams(
            endpoint_base_url=self.api_endpoint,
            tenant_id=self.santral_id,
            api_key=self.api_key,
            extension=self.extension or None,
        )


class EndCallRequest(BaseModel):
    """Request model for ending a call on the PBX"""
    api_endpoint: Optional[str] = Field(None, description="PBX API base URL")
    santral_id: Optional[str] = Field(None, description="PBX tenant (santral) ID")
    api_key: Optional[str] = Field(None, description="PBX API key")
    call_id: Optional[str] = Field(None, description="Call ID returned by make-call")

    def connection_params(self) -> ConnectionParams:
        return ConnectionParams(
            endpoint_base_url=self.api_endpoint,
            tenant_id=self.santral_id,
            api_key=self.api_key,
        )


class MakeCallResponse(BaseModel):
    """Response model after the PBX accepted a call"""
    success: bool = True
    call_id: Optional[str] = None
    data: Any = None


class EndCallResponse(BaseModel):
    """Response model after the PBX ended a call"""
    success: bool = True
    data: Any = None


class CallSession(BaseModel):
    """In-memory lifecycle of one call; only its call log is persisted"""
    session_id: str
    direction: CallDirection
    state: SessionState
    phone_number: str
    customer_name: Optional[str] = None
    customer_id: Optional[str] = None
    employee_id: str
    company_id: str
    started_at: datetime
    connected_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    remote_call_id: Optional[str] = None
    call_log_id: Optional[str] = None
    log_pending: bool = False


class OutboundSessionRequest(BaseModel):
    """Request model for placing an outbound call"""
    company_id: str
    employee_id: str
    phone_number: str
    customer_name: Optional[str] = None
    customer_id: Optional[str] = None
    pbx: CompanyPbxSettings
    sip: EmployeeSipSettings = Field(default_factory=EmployeeSipSettings)


class InboundSessionRequest(BaseModel):
    """Request model for an inbound call that started ringing"""
    company_id: str
    employee_id: str
    phone_number: str
    customer_name: Optional[str] = None
    customer_id: Optional[str] = None
    ring_timeout_seconds: Optional[float] = Field(default=None, gt=0)


class ActiveSessionsResponse(BaseModel):
    """Sessions that have not yet written their call log"""
    sessions: List[CallSession]
    count: int


class SessionEventResponse(BaseModel):
    """Result of a session event"""
    session: CallSession
    call_log_id: Optional[str] = None
    message: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
