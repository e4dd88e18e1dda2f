"""
PBX integration data types

Connection parameters, probe catalog entries and the normalized call result
shared by the dialect prober and the call gateway.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field


class CallIntent(str, Enum):
    """Call-control operation requested from the PBX"""
    START = "start"
    END = "end"


@dataclass(frozen=True)
class ConnectionParams:
    """Per-call PBX connection parameters, supplied fresh for every call"""
    endpoint_base_url: str
    tenant_id: str
    api_key: str
    extension: Optional[str] = None

    @property
    def base_url(self) -> str:
        return self.endpoint_base_url.rstrip("/")

    def __repr__(self) -> str:
        # Keep the API key out of logs and tracebacks
        return (
            f"ConnectionParams(endpoint_base_url={self.endpoint_base_url!r}, "
            f"tenant_id={self.tenant_id!r}, api_key='***', extension={self.extension!r})"
        )


@dataclass(frozen=True)
class ProbeTemplate:
    """
    One candidate request shape.

    ``url_template`` is formatted with the percent-encoded render values
    (``base``, ``tenant_id``, ``extension``, ``destination``, ``call_id``).
    ``body_fields`` maps each JSON body field to the render value it carries.
    """
    url_template: str
    body_fields: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ProbeAttempt:
    """A rendered, concrete request"""
    url: str
    method: str
    body: Optional[Dict[str, Any]] = None


@dataclass
class ProbeOutcome:
    """Result of a single probe attempt"""
    attempt: ProbeAttempt
    succeeded: bool
    http_status: Optional[int] = None
    raw_body: Optional[str] = None
    transport_error: Optional[str] = None

    def to_dict(self, body_limit: Optional[int] = None) -> Dict[str, Any]:
        raw_body = self.raw_body
        if raw_body is not None and body_limit is not None and len(raw_body) > body_limit:
            raw_body = raw_body[:body_limit] + "..."
        return {
            "endpoint": self.attempt.url,
            "method": self.attempt.method,
            "succeeded": self.succeeded,
            "status": self.http_status,
            "body": raw_body,
            "error": self.transport_error,
        }


# Response keys that may carry the PBX's own call identifier, by priority
CALL_ID_ALIASES = ("call_id", "id", "uuid")


@dataclass
class CallResult:
    """Normalized success value of a start or end operation"""
    remote_call_id: Optional[str]
    raw: Any = field(default=None)

    @classmethod
    def from_response(cls, data: Any) -> "CallResult":
        """Build a result, taking the remote call id from the first alias present"""
        remote_call_id = None
        if isinstance(data, dict):
            for key in CALL_ID_ALIASES:
                value = data.get(key)
                if value is not None and value != "":
                    remote_call_id = str(value)
                    break
        return cls(remote_call_id=remote_call_id, raw=data)


class CompanyPbxSettings(BaseModel):
    """PBX API settings stored on a company profile"""
    api_endpoint: Optional[str] = Field(None, description="PBX API base URL")
    santral_id: Optional[str] = Field(None, description="PBX tenant (santral) ID")
    api_key: Optional[str] = Field(None, description="PBX API key")


class EmployeeSipSettings(BaseModel):
    """SIP settings stored on an employee profile"""
    extension: Optional[str] = None
    sip_username: Optional[str] = None
