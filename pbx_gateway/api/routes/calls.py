"""
PBX call-control API routes

Thin integration endpoints that start and end a call on the company PBX.
Unlike the session endpoints, failures here return the per-attempt PBX
diagnostics so integrators can see which dialect was tried.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from pbx_gateway.core.logging import get_logger
from pbx_gateway.models.call import (
    EndCallRequest,
    EndCallResponse,
    MakeCallRequest,
    MakeCallResponse
)
from pbx_gateway.services.pbx.gateway import CallGateway, get_call_gateway

logger = get_logger(__name__)

router = APIRouter(tags=["calls"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def get_gateway() -> CallGateway:
    """Dependency to get call gateway"""
    return get_call_gateway()


@router.options("/make-call", include_in_schema=False)
async def make_call_preflight():
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/make-call", response_model=MakeCallResponse)
async def make_call(
    request: MakeCallRequest,
    gateway: CallGateway = Depends(get_gateway)
):
    """
    Start a call on the PBX

    - **api_endpoint**: PBX API base URL
    - **santral_id**: PBX tenant ID
    - **api_key**: PBX API key
    - **extension**: Optional caller extension
    - **phone_number**: Number to dial (whitespace is ignored)
    """
    logger.info(f"Received make-call request to {request.phone_number}")
    result = await gateway.start_call(request.connection_params(), request.phone_number)
    return MakeCallResponse(success=True, call_id=result.remote_call_id, data=result.raw)


@router.options("/end-call", include_in_schema=False)
async def end_call_preflight():
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/end-call", response_model=EndCallResponse)
async def end_call(
    request: EndCallRequest,
    gateway: CallGateway = Depends(get_gateway)
):
    """
    End a call on the PBX

    - **call_id**: Call ID returned by make-call
    """
    logger.info(f"Received end-call request for {request.call_id}")
    result = await gateway.end_call(request.connection_params(), request.call_id)
    return EndCallResponse(success=True, data=result.raw)
