"""
PBX Dialect Prober
Finds a working request shape for a PBX whose REST contract is not known in advance
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from pbx_gateway.core.config import settings
from pbx_gateway.core.exceptions import AllEndpointsFailedError, AttemptFailedError
from pbx_gateway.core.logging import get_logger
from pbx_gateway.models.pbx import (
    CallIntent,
    CallResult,
    ConnectionParams,
    ProbeAttempt,
    ProbeOutcome,
    ProbeTemplate,
)

logger = get_logger(__name__)


class DialectProber:
    """
    Tries an ordered catalog of request templates against a PBX, one at a
    time, until one returns a 2xx JSON response.

    Attempts are strictly sequential so the first success is deterministic
    and a stateful PBX never sees two concurrent dial requests. Each attempt
    has its own timeout; cancelling the caller aborts the in-flight attempt
    and skips the rest.
    """

    def __init__(
        self,
        attempt_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        body_limit: Optional[int] = None
    ):
        """
        Args:
            attempt_timeout: Seconds allowed per attempt (defaults to settings)
            transport: Optional httpx transport, used by tests to fake the PBX
            body_limit: Max characters of a response body kept in error details
        """
        self.attempt_timeout = attempt_timeout if attempt_timeout is not None else settings.pbx_attempt_timeout_seconds
        self.transport = transport
        self.body_limit = body_limit if body_limit is not None else settings.pbx_diagnostic_body_limit

    @staticmethod
    def build_headers(params: ConnectionParams) -> Dict[str, str]:
        """Credential headers under every convention seen in the wild"""
        return {
            "Content-Type": "application/json",
            "X-API-Key": params.api_key,
            "X-Santral-ID": params.tenant_id,
            "Authorization": f"Bearer {params.api_key}",
            "API-Key": params.api_key,
            "Santral-ID": params.tenant_id,
        }

    @staticmethod
    def render(
        template: ProbeTemplate,
        params: ConnectionParams,
        values: Dict[str, Optional[str]]
    ) -> ProbeAttempt:
        """
        Render a template into a concrete request.

        URL values are percent-encoded and a missing value becomes an empty
        string; body values are sent as-is, so a missing extension is null.
        A URL carrying a query string is sent as GET without a body,
        anything else as POST.
        """
        url_values = {
            key: quote(str(value), safe="") if value is not None else ""
            for key, value in values.items()
        }
        url = template.url_template.format(base=params.base_url, **url_values)

        if "?" in url:
            return ProbeAttempt(url=url, method="GET")

        body = {field: values.get(source) for field, source in template.body_fields}
        return ProbeAttempt(url=url, method="POST", body=body)

    async def probe(
        self,
        intent: CallIntent,
        params: ConnectionParams,
        values: Dict[str, Optional[str]],
        catalog: Sequence[ProbeTemplate]
    ) -> CallResult:
        """
        Try each catalog entry in order and return the first success

        Args:
            intent: Operation being probed, used for logging and errors
            params: Connection parameters for this call
            values: Render values for the templates
            catalog: Ordered candidate templates

        Returns:
            Normalized call result of the first successful attempt

        Raises:
            AllEndpointsFailedError: every candidate failed; carries one
                outcome per candidate in catalog order
        """
        headers = self.build_headers(params)
        outcomes: List[ProbeOutcome] = []
        total = len(catalog)
        start_time = time.monotonic()

        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=httpx.Timeout(self.attempt_timeout)
        ) as client:
            for index, template in enumerate(catalog, start=1):
                attempt = self.render(template, params, values)
                logger.debug(f"[{intent.value}] Trying endpoint {index}/{total}: {attempt.method} {attempt.url}")

                try:
                    result = await self._attempt(client, attempt, headers)
                except AttemptFailedError as e:
                    outcomes.append(e.outcome)
                    logger.warning(
                        f"[{intent.value}] Endpoint {attempt.url} failed: "
                        f"status={e.outcome.http_status} error={e.outcome.transport_error}"
                    )
                    continue

                elapsed = time.monotonic() - start_time
                logger.info(
                    f"[{intent.value}] PBX accepted {attempt.method} {attempt.url} "
                    f"after {index} attempt(s) in {elapsed:.2f}s"
                )
                return result

        logger.error(f"[{intent.value}] All {total} PBX endpoints failed for {params.base_url}")
        raise AllEndpointsFailedError(intent.value, outcomes, body_limit=self.body_limit)

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        attempt: ProbeAttempt,
        headers: Dict[str, str]
    ) -> CallResult:
        """Issue one request; raise AttemptFailedError on any failure"""
        try:
            response = await asyncio.wait_for(
                client.request(attempt.method, attempt.url, headers=headers, json=attempt.body),
                timeout=self.attempt_timeout
            )
        except asyncio.TimeoutError:
            raise AttemptFailedError(ProbeOutcome(
                attempt=attempt,
                succeeded=False,
                transport_error=f"Timed out after {self.attempt_timeout}s"
            ))
        except httpx.HTTPError as e:
            raise AttemptFailedError(ProbeOutcome(
                attempt=attempt,
                succeeded=False,
                transport_error=f"{type(e).__name__}: {e}"
            ))

        body = response.text
        if not response.is_success:
            raise AttemptFailedError(ProbeOutcome(
                attempt=attempt,
                succeeded=False,
                http_status=response.status_code,
                raw_body=body
            ))

        try:
            data: Any = response.json()
        except ValueError:
            raise AttemptFailedError(ProbeOutcome(
                attempt=attempt,
                succeeded=False,
                http_status=response.status_code,
                raw_body=body,
                transport_error="Response body is not valid JSON"
            ))

        return CallResult.from_response(data)
