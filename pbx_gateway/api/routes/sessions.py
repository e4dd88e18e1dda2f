"""
Call session API routes
"""

from fastapi import APIRouter, Depends

from pbx_gateway.core.logging import get_logger
from pbx_gateway.models.call import (
    ActiveSessionsResponse,
    CallSession,
    InboundSessionRequest,
    OutboundSessionRequest,
    SessionEventResponse
)
from pbx_gateway.services.call_session import (
    CallSessionController,
    CallSessionManager,
    get_session_manager
)

logger = get_logger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_manager() -> CallSessionManager:
    """Dependency to get session manager"""
    return get_session_manager()


def _event_response(controller: CallSessionController, message: str) -> SessionEventResponse:
    return SessionEventResponse(
        session=controller.session,
        call_log_id=controller.session.call_log_id,
        message=message
    )


# Static routes MUST come before dynamic routes with path parameters

@router.get("/", response_model=ActiveSessionsResponse)
async def list_active_sessions(
    manager: CallSessionManager = Depends(get_manager)
):
    """
    List sessions whose call log has not been written yet
    """
    sessions = manager.active_sessions()
    return ActiveSessionsResponse(sessions=sessions, count=len(sessions))


@router.post("/outbound", response_model=SessionEventResponse)
async def place_outbound_call(
    request: OutboundSessionRequest,
    manager: CallSessionManager = Depends(get_manager)
):
    """
    Place an outbound call with the company's PBX settings

    - **pbx**: Company PBX API settings (api_endpoint, santral_id, api_key)
    - **sip**: Employee SIP settings; the extension falls back to sip_username
    """
    controller = manager.start_outbound(request)
    await controller.dial()
    return _event_response(controller, "Call connected")


@router.post("/inbound", response_model=SessionEventResponse)
async def register_inbound_call(
    request: InboundSessionRequest,
    manager: CallSessionManager = Depends(get_manager)
):
    """
    Register a ringing inbound call

    The call is logged as missed if nobody answers within the ring timeout.
    """
    controller = manager.start_inbound(request)
    return _event_response(controller, "Call ringing")


@router.get("/{session_id}", response_model=CallSession)
async def get_session(
    session_id: str,
    manager: CallSessionManager = Depends(get_manager)
):
    """
    Get a live call session
    """
    return manager.get(session_id).session


@router.post("/{session_id}/answer", response_model=SessionEventResponse)
async def answer_call(
    session_id: str,
    manager: CallSessionManager = Depends(get_manager)
):
    """
    Answer a ringing inbound call
    """
    controller = manager.get(session_id)
    await controller.answer()
    return _event_response(controller, "Call answered")


@router.post("/{session_id}/reject", response_model=SessionEventResponse)
async def reject_call(
    session_id: str,
    manager: CallSessionManager = Depends(get_manager)
):
    """
    Reject a ringing inbound call
    """
    controller = manager.get(session_id)
    call_log = await controller.reject()
    return _event_response(controller, "Call rejected" if call_log else "Call already ended")


@router.post("/{session_id}/hangup", response_model=SessionEventResponse)
async def hang_up_call(
    session_id: str,
    manager: CallSessionManager = Depends(get_manager)
):
    """
    Hang up a call and write its call log
    """
    controller = manager.get(session_id)
    call_log = await controller.hang_up()
    return _event_response(controller, "Call ended" if call_log else "Call already ended")


@router.post("/{session_id}/retry-log", response_model=SessionEventResponse)
async def retry_call_log(
    session_id: str,
    manager: CallSessionManager = Depends(get_manager)
):
    """
    Retry saving the call log of a session whose log write failed
    """
    controller = manager.get(session_id)
    await controller.retry_log_write()
    return _event_response(controller, "Call log saved")
