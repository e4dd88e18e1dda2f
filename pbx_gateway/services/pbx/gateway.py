"""
PBX Call Gateway
Start and end calls on a PBX through the dialect prober
"""

import re
from typing import Optional, Sequence, Tuple

from pbx_gateway.core.exceptions import MissingParameterError
from pbx_gateway.core.logging import get_logger
from pbx_gateway.models.pbx import CallIntent, CallResult, ConnectionParams, ProbeTemplate
from pbx_gateway.services.pbx.catalog import END_CALL_CATALOG, START_CALL_CATALOG
from pbx_gateway.services.pbx.prober import DialectProber

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


class CallGateway:
    """Two-operation call-control interface over a PBX of unknown dialect"""

    def __init__(
        self,
        prober: Optional[DialectProber] = None,
        start_catalog: Sequence[ProbeTemplate] = START_CALL_CATALOG,
        end_catalog: Sequence[ProbeTemplate] = END_CALL_CATALOG
    ):
        self.prober = prober or DialectProber()
        self.start_catalog = start_catalog
        self.end_catalog = end_catalog

    async def start_call(self, params: ConnectionParams, destination_number: str) -> CallResult:
        """
        Start a call from the configured extension to a destination number

        Args:
            params: PBX connection parameters
            destination_number: Number to dial; whitespace is removed

        Returns:
            Call result; remote_call_id is None if the PBX exposes none

        Raises:
            MissingParameterError: a required field is empty (no request made)
            AllEndpointsFailedError: no catalog entry succeeded
        """
        destination = _WHITESPACE.sub("", destination_number or "")
        self._require(params, ("phone_number", destination))

        logger.info(f"Starting call to {destination} on PBX {params.base_url} (santral {params.tenant_id})")
        values = {
            "tenant_id": params.tenant_id,
            "extension": params.extension,
            "destination": destination,
        }
        result = await self.prober.probe(CallIntent.START, params, values, self.start_catalog)
        logger.info(f"Call to {destination} started, remote call id: {result.remote_call_id}")
        return result

    async def end_call(self, params: ConnectionParams, remote_call_id: str) -> CallResult:
        """
        End a call previously started on the PBX

        Raises:
            MissingParameterError: a required field is empty (no request made)
            AllEndpointsFailedError: no catalog entry succeeded
        """
        self._require(params, ("call_id", remote_call_id))

        logger.info(f"Ending call {remote_call_id} on PBX {params.base_url}")
        values = {
            "tenant_id": params.tenant_id,
            "extension": params.extension,
            "call_id": remote_call_id,
        }
        return await self.prober.probe(CallIntent.END, params, values, self.end_catalog)

    @staticmethod
    def _require(params: ConnectionParams, *intent_fields: Tuple[str, Optional[str]]) -> None:
        """Fail fast, naming every empty field by its request name"""
        fields = (
            ("api_endpoint", params.endpoint_base_url),
            ("santral_id", params.tenant_id),
            ("api_key", params.api_key),
        ) + intent_fields

        missing = [name for name, value in fields if value is None or not str(value).strip()]
        if missing:
            logger.warning(f"Rejecting PBX request, missing parameters: {missing}")
            raise MissingParameterError(missing)


# Singleton instance
_call_gateway: Optional[CallGateway] = None


def get_call_gateway() -> CallGateway:
    """Get the CallGateway singleton instance"""
    global _call_gateway
    if _call_gateway is None:
        _call_gateway = CallGateway()
    return _call_gateway
