"""
Call Session Service
Per-call state machine that guarantees exactly one call log per session
"""

import asyncio
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pbx_gateway.core.config import settings
from pbx_gateway.core.exceptions import (
    AllEndpointsFailedError,
    CallCancelledError,
    CallInitiationError,
    InvalidSessionStateError,
    LogWriteFailedError,
    MissingParameterError,
    PbxGatewayException,
    SessionEndedError,
    SessionNotFoundError,
)
from pbx_gateway.core.logging import get_logger
from pbx_gateway.db.base import CallLogRepositoryInterface
from pbx_gateway.models.call import (
    CallDirection,
    CallSession,
    InboundSessionRequest,
    OutboundSessionRequest,
    SessionState,
)
from pbx_gateway.models.call_log import CallLog, CallLogFormData, CallLogStatus, CallType, utc_now
from pbx_gateway.models.pbx import CallResult, ConnectionParams
from pbx_gateway.services.credentials import resolve_connection_params
from pbx_gateway.services.pbx.gateway import CallGateway

logger = get_logger(__name__)

Clock = Callable[[], datetime]


class CallSessionController:
    """
    Drives one inbound or outbound call from ring/dial to its call log.

    Inbound:  RINGING -> ANSWERED | REJECTED | TIMED_OUT -> LOG_WRITTEN
    Outbound: DIALING -> CONNECTED | FAILED -> LOG_WRITTEN

    The terminal transition is claimed synchronously before anything is
    awaited, so when several terminal events race (ring timeout and a reject
    click, hang-up during a failing dial) only the first one writes the log
    and the others are no-ops. The log id is the session id, which keeps a
    retried write from creating a second row.
    """

    def __init__(
        self,
        session: CallSession,
        store: CallLogRepositoryInterface,
        gateway: Optional[CallGateway] = None,
        params: Optional[ConnectionParams] = None,
        clock: Clock = utc_now,
        on_log_written: Optional[Callable[["CallSessionController"], None]] = None
    ):
        self.session = session
        self.store = store
        self.gateway = gateway
        self.params = params
        self.clock = clock
        self.on_log_written = on_log_written

        self.call_log: Optional[CallLog] = None
        self._terminal_claimed = False
        self._pending_log: Optional[CallLogFormData] = None
        self._dial_task: Optional[asyncio.Future] = None
        self._ring_timer: Optional[asyncio.Task] = None

    @classmethod
    def outbound(
        cls,
        store: CallLogRepositoryInterface,
        gateway: CallGateway,
        params: ConnectionParams,
        phone_number: str,
        employee_id: str,
        company_id: str,
        customer_name: Optional[str] = None,
        customer_id: Optional[str] = None,
        clock: Clock = utc_now,
        on_log_written: Optional[Callable[["CallSessionController"], None]] = None
    ) -> "CallSessionController":
        """Create a session for a call the employee is placing"""
        session = CallSession(
            session_id=str(uuid.uuid4()),
            direction=CallDirection.OUTBOUND,
            state=SessionState.DIALING,
            phone_number=phone_number,
            customer_name=customer_name,
            customer_id=customer_id,
            employee_id=employee_id,
            company_id=company_id,
            started_at=clock(),
        )
        return cls(session, store, gateway=gateway, params=params, clock=clock, on_log_written=on_log_written)

    @classmethod
    def inbound(
        cls,
        store: CallLogRepositoryInterface,
        phone_number: str,
        employee_id: str,
        company_id: str,
        customer_name: Optional[str] = None,
        customer_id: Optional[str] = None,
        clock: Clock = utc_now,
        on_log_written: Optional[Callable[["CallSessionController"], None]] = None
    ) -> "CallSessionController":
        """Create a session for a call that started ringing"""
        session = CallSession(
            session_id=str(uuid.uuid4()),
            direction=CallDirection.INBOUND,
            state=SessionState.RINGING,
            phone_number=phone_number,
            customer_name=customer_name,
            customer_id=customer_id,
            employee_id=employee_id,
            company_id=company_id,
            started_at=clock(),
        )
        return cls(session, store, clock=clock, on_log_written=on_log_written)

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def is_ended(self) -> bool:
        """True once a terminal event has been accepted"""
        return self._terminal_claimed

    # ==================== Outbound ====================

    async def dial(self) -> CallResult:
        """
        Start the call on the PBX

        Returns:
            Result of the start operation; the session is CONNECTED

        Raises:
            CallInitiationError: the PBX could not start the call; a failed
                call log has been written
            CallCancelledError: the session was hung up while dialing
            LogWriteFailedError: the failed call log could not be saved
        """
        self._expect("dial", SessionState.DIALING)
        if self._dial_task is not None:
            raise InvalidSessionStateError(self.session_id, self.state.value, "dial")

        self._dial_task = asyncio.ensure_future(
            self.gateway.start_call(self.params, self.session.phone_number)
        )
        try:
            result = await self._dial_task
        except asyncio.CancelledError:
            if self._terminal_claimed:
                # hang_up() cancelled the dial and owns the log write
                raise CallCancelledError(self.session_id) from None
            logger.warning(f"Session {self.session_id}: dial cancelled")
            self._claim_terminal()
            await self._write_terminal(SessionState.FAILED, self._failed_outbound_log())
            raise
        except (AllEndpointsFailedError, MissingParameterError) as e:
            logger.error(f"Session {self.session_id}: call to {self.session.phone_number} failed: {e.message}")
            logger.debug(f"Session {self.session_id}: PBX diagnostics: {e.details}")
            if self._claim_terminal():
                await self._write_terminal(SessionState.FAILED, self._failed_outbound_log())
            raise CallInitiationError(self.session_id) from e

        if self._terminal_claimed:
            # Hung up after the PBX answered but before we resumed
            await self._end_remote_call(result.remote_call_id)
            raise CallCancelledError(self.session_id)

        self.session.remote_call_id = result.remote_call_id
        self.session.connected_at = self.clock()
        self.session.state = SessionState.CONNECTED
        logger.info(f"Session {self.session_id}: connected (remote call id {result.remote_call_id})")
        return result

    # ==================== Inbound ====================

    def start_ring_timer(self, seconds: float) -> None:
        """Reject the call automatically if nobody answers within ``seconds``"""
        self._expect("start the ring timer of", SessionState.RINGING)
        self._cancel_ring_timer()
        self._ring_timer = asyncio.ensure_future(self._ring_timeout_after(seconds))

    async def answer(self) -> None:
        """Answer a ringing inbound call; duration is measured from here"""
        self._expect("answer", SessionState.RINGING)
        self._cancel_ring_timer()
        self.session.connected_at = self.clock()
        self.session.state = SessionState.ANSWERED
        logger.info(f"Session {self.session_id}: answered")

    async def reject(self) -> Optional[CallLog]:
        """Reject a ringing inbound call; no-op if the call already ended"""
        return await self._miss(SessionState.REJECTED, "reject")

    async def ring_timeout(self) -> Optional[CallLog]:
        """Ring timer expiry; no-op if the call already ended"""
        return await self._miss(SessionState.TIMED_OUT, "time out")

    # ==================== Both directions ====================

    async def hang_up(self) -> Optional[CallLog]:
        """
        End the call from the employee side

        Returns:
            The written call log, or None if the call had already ended

        Raises:
            LogWriteFailedError: the call log could not be saved; the
                session keeps its log data for retry_log_write()
        """
        if self._terminal_claimed:
            logger.debug(f"Session {self.session_id}: hang-up ignored, call already ended")
            return None

        state = self.session.state

        if state == SessionState.RINGING:
            return await self._miss(SessionState.REJECTED, "hang up")

        if state == SessionState.ANSWERED:
            self._claim_terminal()
            ended_at = self.clock()
            form = self._build_log(
                CallType.INCOMING,
                CallLogStatus.COMPLETED,
                self._elapsed_seconds(self.session.connected_at, ended_at),
                ended_at
            )
            return await self._write_terminal(SessionState.ANSWERED, form)

        if state == SessionState.DIALING:
            self._claim_terminal()
            if self._dial_task is not None:
                self._dial_task.cancel()
            return await self._write_terminal(SessionState.FAILED, self._failed_outbound_log())

        if state == SessionState.CONNECTED:
            self._claim_terminal()
            ended_at = self.clock()
            form = self._build_log(
                CallType.OUTGOING,
                CallLogStatus.COMPLETED,
                self._elapsed_seconds(self.session.connected_at, ended_at),
                ended_at
            )
            # The log is written even if end-call is cancelled or raises
            self._stage_log(SessionState.CONNECTED, form)
            try:
                await self._end_remote_call(self.session.remote_call_id)
            finally:
                call_log = await self._write_log()
            return call_log

        raise InvalidSessionStateError(self.session_id, state.value, "hang up")

    async def retry_log_write(self) -> CallLog:
        """Retry a call log write that failed; returns the stored log"""
        if self.call_log is not None:
            return self.call_log
        if self._pending_log is None:
            raise InvalidSessionStateError(self.session_id, self.state.value, "retry the call log of")
        return await self._write_log()

    # ==================== Internals ====================

    async def _miss(self, outcome: SessionState, event: str) -> Optional[CallLog]:
        if self._terminal_claimed:
            logger.debug(f"Session {self.session_id}: {event} ignored, call already ended")
            return None

        self._expect(event, SessionState.RINGING)
        self._claim_terminal()
        self._cancel_ring_timer()

        form = self._build_log(CallType.MISSED, CallLogStatus.NO_ANSWER, 0, self.clock())
        return await self._write_terminal(outcome, form)

    async def _ring_timeout_after(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
        logger.info(f"Session {self.session_id}: not answered within {seconds}s")
        try:
            await self.ring_timeout()
        except LogWriteFailedError as e:
            logger.error(f"Session {self.session_id}: missed call log not saved, pending retry: {e.message}")

    def _cancel_ring_timer(self) -> None:
        timer = self._ring_timer
        self._ring_timer = None
        # The timer itself calls ring_timeout(); it must not cancel its own write
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()

    async def _end_remote_call(self, remote_call_id: Optional[str]) -> None:
        """Best-effort end of the PBX call; failures never block the log write"""
        if not remote_call_id:
            logger.warning(f"Session {self.session_id}: no remote call id, skipping PBX end-call")
            return
        try:
            await self.gateway.end_call(self.params, remote_call_id)
        except PbxGatewayException as e:
            logger.warning(f"Session {self.session_id}: could not end remote call {remote_call_id}: {e.message}")

    def _claim_terminal(self) -> bool:
        if self._terminal_claimed:
            return False
        self._terminal_claimed = True
        return True

    def _stage_log(self, outcome: SessionState, form: CallLogFormData) -> None:
        self.session.state = outcome
        self.session.ended_at = form.end_time
        self.session.log_pending = True
        self._pending_log = form

    async def _write_terminal(self, outcome: SessionState, form: CallLogFormData) -> CallLog:
        self._stage_log(outcome, form)
        return await self._write_log()

    async def _write_log(self) -> CallLog:
        try:
            call_log = await self.store.create_call_log(
                self.session.company_id,
                self._pending_log,
                call_log_id=self.session_id
            )
        except Exception as e:
            logger.error(f"Session {self.session_id}: call log write failed: {e}")
            raise LogWriteFailedError(session_id=self.session_id) from e

        self.call_log = call_log
        self._pending_log = None
        self.session.log_pending = False
        self.session.call_log_id = call_log.id
        self.session.state = SessionState.LOG_WRITTEN
        logger.info(
            f"Session {self.session_id}: logged {call_log.call_type.value}/"
            f"{call_log.call_status.value} ({call_log.duration_seconds}s)"
        )

        if self.on_log_written:
            self.on_log_written(self)
        return call_log

    def _failed_outbound_log(self) -> CallLogFormData:
        return self._build_log(CallType.OUTGOING, CallLogStatus.FAILED, 0, self.clock())

    def _build_log(
        self,
        call_type: CallType,
        call_status: CallLogStatus,
        duration_seconds: int,
        ended_at: datetime
    ) -> CallLogFormData:
        return CallLogFormData(
            employee_id=self.session.employee_id,
            call_type=call_type,
            phone_number=self.session.phone_number,
            customer_name=self.session.customer_name or None,
            customer_id=self.session.customer_id or None,
            duration_seconds=duration_seconds,
            call_status=call_status,
            start_time=self.session.started_at,
            end_time=ended_at,
        )

    @staticmethod
    def _elapsed_seconds(start: Optional[datetime], end: datetime) -> int:
        if start is None:
            return 0
        return max(0, int((end - start).total_seconds()))

    def _expect(self, event: str, *states: SessionState) -> None:
        if self._terminal_claimed:
            raise SessionEndedError(self.session_id)
        if self.session.state not in states:
            raise InvalidSessionStateError(self.session_id, self.session.state.value, event)


class CallSessionManager:
    """
    Registry of live call sessions

    A session is forgotten once its call log is written; sessions whose log
    write failed stay registered so the write can be retried.
    """

    def __init__(
        self,
        gateway: CallGateway,
        store: CallLogRepositoryInterface,
        ring_timeout_seconds: Optional[float] = None,
        clock: Clock = utc_now
    ):
        self.gateway = gateway
        self.store = store
        self.ring_timeout_seconds = ring_timeout_seconds or settings.inbound_ring_timeout_seconds
        self.clock = clock
        self.sessions: Dict[str, CallSessionController] = {}

    def start_outbound(self, request: OutboundSessionRequest) -> CallSessionController:
        """
        Register an outbound session; the caller drives it with dial()

        Raises:
            MissingParameterError: the company has no complete PBX settings
        """
        params = resolve_connection_params(request.pbx, request.sip)
        controller = CallSessionController.outbound(
            store=self.store,
            gateway=self.gateway,
            params=params,
            phone_number=request.phone_number,
            employee_id=request.employee_id,
            company_id=request.company_id,
            customer_name=request.customer_name,
            customer_id=request.customer_id,
            clock=self.clock,
            on_log_written=self._forget,
        )
        self.sessions[controller.session_id] = controller
        logger.info(f"Outbound session {controller.session_id} to {request.phone_number} created")
        return controller

    def start_inbound(self, request: InboundSessionRequest) -> CallSessionController:
        """Register a ringing inbound session and start its ring timer"""
        controller = CallSessionController.inbound(
            store=self.store,
            phone_number=request.phone_number,
            employee_id=request.employee_id,
            company_id=request.company_id,
            customer_name=request.customer_name,
            customer_id=request.customer_id,
            clock=self.clock,
            on_log_written=self._forget,
        )
        self.sessions[controller.session_id] = controller
        controller.start_ring_timer(request.ring_timeout_seconds or self.ring_timeout_seconds)
        logger.info(f"Inbound session {controller.session_id} from {request.phone_number} ringing")
        return controller

    def get(self, session_id: str) -> CallSessionController:
        controller = self.sessions.get(session_id)
        if controller is None:
            raise SessionNotFoundError(session_id)
        return controller

    def active_sessions(self) -> List[CallSession]:
        return [controller.session for controller in self.sessions.values()]

    async def shutdown(self) -> None:
        """Hang up every session still in progress"""
        for controller in list(self.sessions.values()):
            if controller.is_ended:
                continue
            try:
                await controller.hang_up()
            except PbxGatewayException as e:
                logger.error(f"Error ending session {controller.session_id}: {e.message}")

    def _forget(self, controller: CallSessionController) -> None:
        self.sessions.pop(controller.session_id, None)


# Singleton instance
_session_manager: Optional[CallSessionManager] = None


def get_session_manager() -> CallSessionManager:
    """Get the CallSessionManager singleton instance"""
    global _session_manager
    if _session_manager is None:
        from pbx_gateway.db.repository import get_repository
        from pbx_gateway.services.pbx.gateway import get_call_gateway

        _session_manager = CallSessionManager(get_call_gateway(), get_repository())
    return _session_manager


def reset_session_manager() -> None:
    """Drop the singleton so the next call binds to the current repository"""
    global _session_manager
    _session_manager = None
