"""
Pytest configuration and fixtures
"""

import inspect
import os
import json
from datetime import datetime, timedelta
from typing import Callable, List

import httpx
import pytest
import pytest_asyncio

# Set test environment variables before importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_TYPE", "sqlite")
os.environ.setdefault("SQLITE_PATH", ":memory:")
os.environ.setdefault("ALLOWED_ORIGINS", "*")

from fastapi.testclient import TestClient

from pbx_gateway.db.adapters.sqlite import SQLiteAdapter
from pbx_gateway.db.repository import CallLogRepository
from pbx_gateway.models.pbx import CompanyPbxSettings, ConnectionParams, EmployeeSipSettings
from pbx_gateway.services.pbx.gateway import CallGateway
from pbx_gateway.services.pbx.prober import DialectProber

PBX_BASE = "https://pbx.example.com"


class FakePbx:
    """
    httpx MockTransport handler that records every request it receives.

    ``responses`` is consumed in order; once exhausted, ``default`` answers.
    Each entry is an ``httpx.Response`` or a callable taking the request.
    """

    def __init__(self, responses: List = None, default: httpx.Response = None):
        self.responses = list(responses or [])
        self.default = default if default is not None else httpx.Response(404, text="Not Found")
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = self.default
        if callable(response):
            response = response(request)
            if inspect.isawaitable(response):
                response = await response
            return response
        # Fresh copy, the default response may answer many requests
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    @property
    def urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]

    def body(self, index: int) -> dict:
        return json.loads(self.requests[index].content)


class Clock:
    """Deterministic clock for session durations"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 5, 1, 9, 30, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def connection_params():
    """PBX connection parameters"""
    return ConnectionParams(
        endpoint_base_url=PBX_BASE + "/",
        tenant_id="12345",
        api_key="secret-key",
        extension="101",
    )


@pytest.fixture
def company_pbx():
    """Complete company PBX settings"""
    return CompanyPbxSettings(api_endpoint=PBX_BASE, santral_id="12345", api_key="secret-key")


@pytest.fixture
def employee_sip():
    """Employee SIP settings"""
    return EmployeeSipSettings(extension="101", sip_username="emp101")


@pytest.fixture
def make_gateway() -> Callable[..., CallGateway]:
    """Factory for a CallGateway talking to a FakePbx"""

    def _make(pbx: FakePbx, attempt_timeout: float = 1.0, **kwargs) -> CallGateway:
        prober = DialectProber(
            attempt_timeout=attempt_timeout,
            transport=httpx.MockTransport(pbx),
            body_limit=500,
        )
        return CallGateway(prober=prober, **kwargs)

    return _make


@pytest.fixture
def clock():
    """Deterministic clock"""
    return Clock()


@pytest_asyncio.fixture
async def repository():
    """Call log repository on an in-memory SQLite database"""
    repo = CallLogRepository(SQLiteAdapter(":memory:"))
    assert await repo.initialize()
    yield repo
    await repo.close()


@pytest.fixture
def test_client():
    """Fixture for test client with a fresh in-memory database"""
    from pbx_gateway.main import app
    from pbx_gateway.services.call_session import reset_session_manager

    reset_session_manager()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    reset_session_manager()


@pytest.fixture
def sample_call_log():
    """Sample call log request data"""
    return {
        "company_id": "company-1",
        "employee_id": "employee-1",
        "call_type": "outgoing",
        "phone_number": "+905551234567",
        "customer_name": "Ayse Yilmaz",
        "duration_seconds": 42,
        "call_status": "completed",
        "start_time": "2024-05-01T09:30:00",
        "end_time": "2024-05-01T09:30:42"
    }
