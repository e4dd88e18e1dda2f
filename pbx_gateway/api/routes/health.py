"""
Health check and status endpoints
"""

from datetime import datetime, timezone
from fastapi import APIRouter

from pbx_gateway.core.config import settings
from pbx_gateway.core.logging import get_logger
from pbx_gateway.db.repository import get_repository
from pbx_gateway.services.call_session import get_session_manager
from pbx_gateway.services.pbx.catalog import CATALOGS

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - verifies the call log store is reachable
    """
    checks = {
        "database": get_repository().is_ready()
    }

    all_ready = all(checks.values())

    return {
        "status": "ready" if all_ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
        "active_sessions": len(get_session_manager().sessions)
    }


@router.get("/info")
async def service_info():
    """
    Get service information and configuration (non-sensitive)
    """
    return {
        "service": "PBX Call Gateway",
        "version": "1.0.0",
        "environment": settings.environment,
        "database_type": settings.database_type,
        "pbx_attempt_timeout_seconds": settings.pbx_attempt_timeout_seconds,
        "inbound_ring_timeout_seconds": settings.inbound_ring_timeout_seconds,
        "probe_candidates": {intent.value: len(catalog) for intent, catalog in CATALOGS.items()}
    }
