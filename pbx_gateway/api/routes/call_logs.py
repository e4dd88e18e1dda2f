"""
Call log API routes
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from pbx_gateway.core.exceptions import CallLogNotFoundError
from pbx_gateway.core.logging import get_logger
from pbx_gateway.db.repository import CallLogRepository, get_repository
from pbx_gateway.models.call_log import (
    CallLog,
    CallLogCreateRequest,
    CallLogFormData,
    CallLogStats,
    CallLogUpdate
)

logger = get_logger(__name__)

router = APIRouter(prefix="/call-logs", tags=["call-logs"])


def get_store() -> CallLogRepository:
    """Dependency to get call log repository"""
    return get_repository()


@router.post("/", response_model=CallLog, status_code=201)
async def create_call_log(
    request: CallLogCreateRequest,
    store: CallLogRepository = Depends(get_store)
):
    """
    Record a call log manually
    """
    form = CallLogFormData(**request.model_dump(exclude={"company_id"}))
    return await store.create_call_log(request.company_id, form)


@router.get("/", response_model=List[CallLog])
async def list_call_logs(
    company_id: Optional[str] = Query(None, description="Filter by company"),
    employee_id: Optional[str] = Query(None, description="Filter by employee"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Maximum number of logs to return; all when omitted"),
    store: CallLogRepository = Depends(get_store)
):
    """
    List call logs, newest first
    """
    return await store.get_call_logs(company_id=company_id, employee_id=employee_id, limit=limit)


@router.get("/stats", response_model=CallLogStats)
async def get_call_log_stats(
    company_id: Optional[str] = Query(None, description="Filter by company"),
    employee_id: Optional[str] = Query(None, description="Filter by employee"),
    store: CallLogRepository = Depends(get_store)
):
    """
    Get call counts by type and total/average duration in seconds
    """
    return await store.get_call_log_stats(company_id=company_id, employee_id=employee_id)


@router.get("/{call_log_id}", response_model=CallLog)
async def get_call_log(
    call_log_id: str,
    store: CallLogRepository = Depends(get_store)
):
    """
    Get a call log by id
    """
    call_log = await store.get_call_log_by_id(call_log_id)
    if call_log is None:
        raise CallLogNotFoundError(call_log_id)
    return call_log


@router.patch("/{call_log_id}", response_model=CallLog)
async def update_call_log(
    call_log_id: str,
    update: CallLogUpdate,
    store: CallLogRepository = Depends(get_store)
):
    """
    Update notes, status or other fields of a call log
    """
    call_log = await store.update_call_log(call_log_id, update)
    if call_log is None:
        raise CallLogNotFoundError(call_log_id)
    return call_log


@router.delete("/{call_log_id}")
async def delete_call_log(
    call_log_id: str,
    store: CallLogRepository = Depends(get_store)
):
    """
    Delete a call log
    """
    if not await store.delete_call_log(call_log_id):
        raise CallLogNotFoundError(call_log_id)
    logger.info(f"Call log {call_log_id} deleted via API")
    return {"success": True, "call_log_id": call_log_id}
