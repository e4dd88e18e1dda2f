"""
Data models for call logs
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


class CallType(str, Enum):
    """How the call reached the employee"""
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    MISSED = "missed"


class CallLogStatus(str, Enum):
    """How the call ended"""
    COMPLETED = "completed"
    NO_ANSWER = "no_answer"
    FAILED = "failed"


class CallLogFormData(BaseModel):
    """Writable fields of a call log"""
    employee_id: str
    call_type: CallType
    phone_number: str
    customer_name: Optional[str] = None
    customer_id: Optional[str] = None
    duration_seconds: int = Field(default=0, ge=0)
    call_status: CallLogStatus = CallLogStatus.COMPLETED
    recording_url: Optional[str] = None
    notes: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None


class CallLogUpdate(BaseModel):
    """Partial update of a call log; only fields that are set are applied"""
    call_type: Optional[CallType] = None
    phone_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_id: Optional[str] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    call_status: Optional[CallLogStatus] = None
    recording_url: Optional[str] = None
    notes: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class CallLog(CallLogFormData):
    """Persisted call log"""
    id: str
    company_id: str
    created_at: datetime = Field(default_factory=utc_now)


class CallLogCreateRequest(CallLogFormData):
    """Request model for creating a call log directly"""
    model_config = {
        "json_schema_extra": {
            "example": {
                "company_id": "company-1",
                "employee_id": "employee-1",
                "call_type": "outgoing",
                "phone_number": "+905551234567",
                "customer_name": "Ayse Yilmaz",
                "duration_seconds": 42,
                "call_status": "completed",
                "start_time": "2024-05-01T09:30:00Z",
                "end_time": "2024-05-01T09:30:42Z"
            }
        }
    }

    company_id: str


class CallLogStats(BaseModel):
    """Aggregated call log statistics"""
    total: int = 0
    outgoing: int = 0
    incoming: int = 0
    missed: int = 0
    total_duration: int = 0
    average_duration: int = 0
