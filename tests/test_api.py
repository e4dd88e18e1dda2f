"""
Tests for API endpoints
"""

import httpx
import pytest

from pbx_gateway.api.routes import calls, sessions
from pbx_gateway.db.repository import get_repository
from pbx_gateway.services.call_session import CallSessionManager
from pbx_gateway.services.pbx.catalog import END_CALL_CATALOG, START_CALL_CATALOG

from conftest import FakePbx, PBX_BASE

MAKE_CALL = {
    "api_endpoint": PBX_BASE,
    "santral_id": "12345",
    "api_key": "secret-key",
    "extension": "101",
    "phone_number": "+90 555 123 4567",
}

PBX_SETTINGS = {"api_endpoint": PBX_BASE, "santral_id": "12345", "api_key": "secret-key"}


@pytest.fixture
def use_pbx(test_client, make_gateway):
    """Route the call and session endpoints to a FakePbx"""
    from pbx_gateway.main import app

    def _use(pbx: FakePbx):
        gateway = make_gateway(pbx)
        manager = CallSessionManager(gateway, get_repository())
        app.dependency_overrides[calls.get_gateway] = lambda: gateway
        app.dependency_overrides[sessions.get_manager] = lambda: manager
        return manager

    return _use


class TestHealthEndpoints:
    """Tests for health check endpoints"""

    def test_health_check(self, test_client):
        """Test basic health check"""
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_readiness_checks_database(self, test_client):
        response = test_client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["database"] is True

    def test_info_lists_probe_catalogs(self, test_client):
        data = test_client.get("/info").json()
        assert data["service"] == "PBX Call Gateway"
        assert data["probe_candidates"] == {
            "start": len(START_CALL_CATALOG),
            "end": len(END_CALL_CATALOG),
        }

    def test_root_endpoint(self, test_client):
        """Test root endpoint"""
        response = test_client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "PBX Call Gateway"
        assert "version" in data


class TestCallEndpoints:
    """Tests for make-call and end-call"""

    def test_make_call_success(self, test_client, use_pbx):
        pbx = FakePbx([httpx.Response(200, json={"success": True, "call_id": "abc-123"})])
        use_pbx(pbx)

        response = test_client.post("/api/v1/make-call", json=MAKE_CALL)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["call_id"] == "abc-123"
        assert data["data"] == {"success": True, "call_id": "abc-123"}
        assert pbx.requests[0].url.params["phone_number"] == "+905551234567"

    def test_make_call_missing_parameters(self, test_client, use_pbx):
        pbx = FakePbx()
        use_pbx(pbx)

        response = test_client.post("/api/v1/make-call", json={"api_endpoint": PBX_BASE})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "MISSING_PARAMETER"
        assert data["details"]["missing"] == ["santral_id", "api_key", "phone_number"]
        assert pbx.requests == []

    def test_make_call_all_endpoints_failed(self, test_client, use_pbx):
        """The response lists every attempt with truncated bodies"""
        use_pbx(FakePbx(default=httpx.Response(404, text="n" * 800)))

        response = test_client.post("/api/v1/make-call", json=MAKE_CALL)

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "ALL_ENDPOINTS_FAILED"
        attempts = data["details"]["attempts"]
        assert len(attempts) == len(START_CALL_CATALOG)
        assert attempts[0]["method"] == "GET"
        assert attempts[0]["status"] == 404
        assert len(attempts[0]["body"]) == 503

    def test_end_call_success(self, test_client, use_pbx):
        pbx = FakePbx([httpx.Response(200, json={"success": True})])
        use_pbx(pbx)

        response = test_client.post("/api/v1/end-call", json={
            "api_endpoint": PBX_BASE,
            "santral_id": "12345",
            "api_key": "secret-key",
            "call_id": "abc-123",
        })

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"success": True}}
        assert pbx.body(0)["call_id"] == "abc-123"

    def test_end_call_missing_call_id(self, test_client, use_pbx):
        use_pbx(FakePbx())

        response = test_client.post("/api/v1/end-call", json=PBX_SETTINGS)

        assert response.status_code == 400
        assert response.json()["details"]["missing"] == ["call_id"]

    @pytest.mark.parametrize("path", ["/api/v1/make-call", "/api/v1/end-call"])
    def test_options_returns_cors_headers(self, test_client, path):
        response = test_client.options(path)

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-headers"] == (
            "authorization, x-client-info, apikey, content-type"
        )

    def test_browser_preflight(self, test_client):
        response = test_client.options(
            "/api/v1/make-call",
            headers={
                "Origin": "https://crm.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type, apikey",
            }
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestSessionEndpoints:
    """Tests for call session endpoints"""

    def test_inbound_reject_writes_missed_log(self, test_client, use_pbx):
        use_pbx(FakePbx())

        response = test_client.post("/api/v1/sessions/inbound", json={
            "company_id": "company-1",
            "employee_id": "employee-1",
            "phone_number": "+905551234567",
        })
        assert response.status_code == 200
        session_id = response.json()["session"]["session_id"]
        assert response.json()["session"]["state"] == "ringing"

        listed = test_client.get("/api/v1/sessions/").json()
        assert listed["count"] == 1

        response = test_client.post(f"/api/v1/sessions/{session_id}/reject")
        assert response.status_code == 200
        assert response.json()["call_log_id"] == session_id

        call_log = test_client.get(f"/api/v1/call-logs/{session_id}").json()
        assert call_log["call_type"] == "missed"
        assert call_log["call_status"] == "no_answer"

        assert test_client.get(f"/api/v1/sessions/{session_id}").status_code == 404

    def test_outbound_connect_and_hang_up(self, test_client, use_pbx):
        pbx = FakePbx([
            httpx.Response(200, json={"call_id": "xyz"}),
            httpx.Response(200, json={"success": True}),
        ])
        use_pbx(pbx)

        response = test_client.post("/api/v1/sessions/outbound", json={
            "company_id": "company-1",
            "employee_id": "employee-1",
            "phone_number": "+905551234567",
            "pbx": PBX_SETTINGS,
            "sip": {"sip_username": "emp101"},
        })
        assert response.status_code == 200
        session = response.json()["session"]
        assert session["state"] == "connected"
        assert session["remote_call_id"] == "xyz"
        assert pbx.requests[0].url.params["extension"] == "emp101"

        response = test_client.post(f"/api/v1/sessions/{session['session_id']}/hangup")
        assert response.status_code == 200
        assert response.json()["session"]["state"] == "log_written"
        assert pbx.body(1)["call_id"] == "xyz"

    def test_outbound_failure_is_generic_and_logged(self, test_client, use_pbx):
        use_pbx(FakePbx())

        response = test_client.post("/api/v1/sessions/outbound", json={
            "company_id": "company-1",
            "employee_id": "employee-1",
            "phone_number": "+905551234567",
            "pbx": PBX_SETTINGS,
        })

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "CALL_INITIATION_FAILED"
        assert "attempts" not in data["details"]

        logs = test_client.get("/api/v1/call-logs/", params={"company_id": "company-1"}).json()
        assert len(logs) == 1
        assert logs[0]["call_status"] == "failed"

    def test_outbound_missing_pbx_settings(self, test_client, use_pbx):
        manager = use_pbx(FakePbx())

        response = test_client.post("/api/v1/sessions/outbound", json={
            "company_id": "company-1",
            "employee_id": "employee-1",
            "phone_number": "+905551234567",
            "pbx": {"api_endpoint": PBX_BASE},
        })

        assert response.status_code == 400
        assert manager.sessions == {}

    def test_unknown_session(self, test_client, use_pbx):
        use_pbx(FakePbx())

        response = test_client.post("/api/v1/sessions/nope/hangup")

        assert response.status_code == 404
        assert response.json()["error"] == "SESSION_NOT_FOUND"


class TestCallLogEndpoints:
    """Tests for call log endpoints"""

    def test_create_list_and_stats(self, test_client, sample_call_log):
        response = test_client.post("/api/v1/call-logs/", json=sample_call_log)
        assert response.status_code == 201
        created = response.json()
        assert created["company_id"] == "company-1"
        assert created["duration_seconds"] == 42

        logs = test_client.get("/api/v1/call-logs/", params={"company_id": "company-1"}).json()
        assert [log["id"] for log in logs] == [created["id"]]

        stats = test_client.get("/api/v1/call-logs/stats", params={"company_id": "company-1"}).json()
        assert stats == {
            "total": 1,
            "outgoing": 1,
            "incoming": 0,
            "missed": 0,
            "total_duration": 42,
            "average_duration": 42,
        }

    def test_update_and_delete(self, test_client, sample_call_log):
        call_log_id = test_client.post("/api/v1/call-logs/", json=sample_call_log).json()["id"]

        response = test_client.patch(f"/api/v1/call-logs/{call_log_id}", json={"notes": "Follow up Monday"})
        assert response.status_code == 200
        assert response.json()["notes"] == "Follow up Monday"

        response = test_client.delete(f"/api/v1/call-logs/{call_log_id}")
        assert response.status_code == 200

        response = test_client.get(f"/api/v1/call-logs/{call_log_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "CALL_LOG_NOT_FOUND"

    def test_invalid_call_log(self, test_client, sample_call_log):
        sample_call_log["duration_seconds"] = -1

        response = test_client.post("/api/v1/call-logs/", json=sample_call_log)

        assert response.status_code == 422
