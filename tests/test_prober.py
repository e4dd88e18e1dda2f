"""
Tests for the PBX dialect prober
"""

import asyncio

import httpx
import pytest

from pbx_gateway.core.config import settings
from pbx_gateway.core.exceptions import AllEndpointsFailedError
from pbx_gateway.models.pbx import CallIntent, ConnectionParams, ProbeTemplate
from pbx_gateway.services.pbx.catalog import START_BODY_FIELDS, START_CALL_CATALOG
from pbx_gateway.services.pbx.prober import DialectProber

from conftest import FakePbx

START_VALUES = {"tenant_id": "12345", "extension": "101", "destination": "+905551234567"}

THREE_POSTS = (
    ProbeTemplate("{base}/one", START_BODY_FIELDS),
    ProbeTemplate("{base}/two", START_BODY_FIELDS),
    ProbeTemplate("{base}/three", START_BODY_FIELDS),
)


def make_prober(pbx: FakePbx, attempt_timeout: float = 1.0) -> DialectProber:
    return DialectProber(
        attempt_timeout=attempt_timeout,
        transport=httpx.MockTransport(pbx),
        body_limit=500
    )


class TestProberSettings:
    """Tests for prober defaults"""

    def test_explicit_zero_timeout_is_kept(self):
        assert DialectProber(attempt_timeout=0.0).attempt_timeout == 0.0

    def test_timeout_defaults_to_settings(self):
        assert DialectProber().attempt_timeout == settings.pbx_attempt_timeout_seconds


class TestRender:
    """Tests for turning templates into requests"""

    def test_query_string_template_is_get_without_body(self, connection_params):
        """A URL with a query string is sent as GET"""
        attempt = DialectProber.render(START_CALL_CATALOG[0], connection_params, START_VALUES)

        assert attempt.method == "GET"
        assert attempt.body is None
        assert attempt.url == (
            "https://pbx.example.com/api/call/start"
            "?santral_id=12345&extension=101&phone_number=%2B905551234567"
        )

    def test_path_template_is_post_with_every_alias(self, connection_params):
        """A URL without a query string is POSTed with all body aliases"""
        attempt = DialectProber.render(START_CALL_CATALOG[1], connection_params, START_VALUES)

        assert attempt.method == "POST"
        assert attempt.url == "https://pbx.example.com/api/call/12345/start"
        for field in ("phone_number", "destination", "phone", "number", "to"):
            assert attempt.body[field] == "+905551234567"
        for field in ("extension", "caller_id", "from"):
            assert attempt.body[field] == "101"
        assert attempt.body["santral_id"] == "12345"

    def test_missing_extension_is_empty_in_url_and_null_in_body(self, connection_params):
        """Absent values render as '' in URLs and null in bodies"""
        values = dict(START_VALUES, extension=None)

        get_attempt = DialectProber.render(START_CALL_CATALOG[0], connection_params, values)
        post_attempt = DialectProber.render(START_CALL_CATALOG[1], connection_params, values)

        assert "&extension=&" in get_attempt.url
        assert post_attempt.body["extension"] is None
        assert post_attempt.body["from"] is None

    def test_path_values_are_percent_encoded(self):
        """Tenant ids with reserved characters cannot break the path"""
        params = ConnectionParams("https://pbx.example.com", "a/b c", "key")
        attempt = DialectProber.render(
            ProbeTemplate("{base}/api/call/{tenant_id}/start", START_BODY_FIELDS),
            params,
            dict(START_VALUES, tenant_id="a/b c")
        )

        assert attempt.url == "https://pbx.example.com/api/call/a%2Fb%20c/start"
        assert attempt.body["santral_id"] == "a/b c"


class TestProbe:
    """Tests for ordered first-success probing"""

    @pytest.mark.asyncio
    async def test_stops_at_first_success(self, connection_params):
        """Candidates 1-2 fail, 3 succeeds: exactly three requests in order"""
        pbx = FakePbx([
            httpx.Response(404, text="Not Found"),
            httpx.Response(500, text="boom"),
            httpx.Response(200, json={"call_id": "abc-1"}),
        ])
        prober = make_prober(pbx)

        result = await prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS)

        assert result.remote_call_id == "abc-1"
        assert [request.url.path for request in pbx.requests] == ["/one", "/two", "/three"]

    @pytest.mark.asyncio
    async def test_credentials_sent_under_every_header(self, connection_params):
        """Every request carries all credential header conventions"""
        pbx = FakePbx([httpx.Response(200, json={"id": 7})])
        prober = make_prober(pbx)

        await prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS)

        headers = pbx.requests[0].headers
        assert headers["X-API-Key"] == "secret-key"
        assert headers["API-Key"] == "secret-key"
        assert headers["Authorization"] == "Bearer secret-key"
        assert headers["X-Santral-ID"] == "12345"
        assert headers["Santral-ID"] == "12345"
        assert headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_full_start_catalog_walks_get_then_posts(self, connection_params):
        """The default catalog starts with the GET form, then POSTs"""
        pbx = FakePbx([
            httpx.Response(404),
            httpx.Response(200, json={"uuid": "u-1"}),
        ])
        prober = make_prober(pbx)

        result = await prober.probe(CallIntent.START, connection_params, START_VALUES, START_CALL_CATALOG)

        assert result.remote_call_id == "u-1"
        assert [request.method for request in pbx.requests] == ["GET", "POST"]
        assert pbx.requests[0].content == b""
        assert pbx.body(1)["phone_number"] == "+905551234567"

    @pytest.mark.asyncio
    async def test_exhaustion_reports_every_outcome_in_order(self, connection_params):
        """AllEndpointsFailedError carries one outcome per candidate"""
        pbx = FakePbx([
            httpx.Response(404, text="Not Found"),
            httpx.Response(401, text="x" * 600),
            httpx.Response(503, text="down"),
        ])
        prober = make_prober(pbx)

        with pytest.raises(AllEndpointsFailedError) as exc_info:
            await prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS)

        error = exc_info.value
        assert [outcome.http_status for outcome in error.outcomes] == [404, 401, 503]
        assert [outcome.attempt.url for outcome in error.outcomes] == [
            "https://pbx.example.com/one",
            "https://pbx.example.com/two",
            "https://pbx.example.com/three",
        ]
        assert not any(outcome.succeeded for outcome in error.outcomes)

        attempts = error.details["attempts"]
        assert error.details["intent"] == "start"
        assert len(attempts) == 3
        assert attempts[1]["body"] == "x" * 500 + "..."
        assert attempts[0]["body"] == "Not Found"

    @pytest.mark.asyncio
    async def test_invalid_json_counts_as_failure(self, connection_params):
        """A 2xx response that is not JSON does not stop probing"""
        pbx = FakePbx([
            httpx.Response(200, text="<html>ok</html>"),
            httpx.Response(200, json={"call_id": "abc"}),
        ])
        prober = make_prober(pbx)

        result = await prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS)

        assert result.remote_call_id == "abc"
        assert len(pbx.requests) == 2

    @pytest.mark.asyncio
    async def test_transport_error_moves_to_next_candidate(self, connection_params):
        """Connection errors are recorded and probing continues"""

        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        pbx = FakePbx([refuse, refuse, refuse])
        prober = make_prober(pbx)

        with pytest.raises(AllEndpointsFailedError) as exc_info:
            await prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS)

        outcomes = exc_info.value.outcomes
        assert len(outcomes) == 3
        assert all(outcome.http_status is None for outcome in outcomes)
        assert outcomes[0].transport_error.startswith("ConnectError")

    @pytest.mark.asyncio
    async def test_hanging_candidate_times_out_independently(self, connection_params):
        """A never-responding candidate times out and the next one is tried"""

        async def hang(request):
            await asyncio.sleep(10)
            return httpx.Response(200, json={"call_id": "too-late"})

        pbx = FakePbx([hang, httpx.Response(200, json={"call_id": "fast"})])
        prober = make_prober(pbx, attempt_timeout=0.05)

        result = await prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS)

        assert result.remote_call_id == "fast"
        assert len(pbx.requests) == 2

    @pytest.mark.asyncio
    async def test_timeout_is_reported_in_outcome(self, connection_params):
        """Timed out attempts have no status and a timeout error"""

        async def hang(request):
            await asyncio.sleep(10)

        pbx = FakePbx([hang])
        prober = make_prober(pbx, attempt_timeout=0.05)

        with pytest.raises(AllEndpointsFailedError) as exc_info:
            await prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS[:1])

        outcome = exc_info.value.outcomes[0]
        assert outcome.http_status is None
        assert "Timed out" in outcome.transport_error

    @pytest.mark.asyncio
    async def test_cancellation_skips_remaining_candidates(self, connection_params):
        """Cancelling the probe aborts the in-flight attempt and tries nothing else"""
        started = asyncio.Event()

        async def hang(request):
            started.set()
            await asyncio.sleep(10)

        pbx = FakePbx([hang], default=httpx.Response(200, json={"call_id": "never"}))
        prober = make_prober(pbx, attempt_timeout=5.0)

        task = asyncio.ensure_future(
            prober.probe(CallIntent.START, connection_params, START_VALUES, THREE_POSTS)
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(pbx.requests) == 1
