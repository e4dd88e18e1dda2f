"""
PBX Call Gateway - Main Application Entry Point

Call control for CRM softphones on top of company PBXs whose HTTP API
dialect is not known in advance, plus the call log store the softphone
writes to when a call ends.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pbx_gateway.core.config import settings
from pbx_gateway.core.logging import setup_logging, get_logger
from pbx_gateway.core.exceptions import PbxGatewayException
from pbx_gateway.api.routes import calls, sessions, call_logs, health

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Starting PBX Call Gateway")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database Type: {settings.database_type}")
    logger.info(f"PBX attempt timeout: {settings.pbx_attempt_timeout_seconds}s")
    logger.info("=" * 60)

    from pbx_gateway.db.repository import initialize_database, close_database
    from pbx_gateway.services.call_session import get_session_manager

    if await initialize_database():
        logger.info(f"Database ({settings.database_type}) initialized successfully")
    else:
        logger.error("Database initialization failed; call logs cannot be written")

    manager = get_session_manager()

    yield

    # Shutdown
    logger.info("Shutting down PBX Call Gateway")

    # Hang up calls still in progress so their logs are written
    await manager.shutdown()

    await close_database()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="PBX Call Gateway API",
    description="""
    ## PBX Call Gateway

    Start and end calls on a company PBX and keep the call log.

    ### Features

    - **Dialect probing**: Tries known PBX endpoint shapes in order until one accepts the request
    - **Call sessions**: Inbound and outbound call lifecycle with exactly one call log per call
    - **Call logs**: Listing, statistics and manual corrections
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# Custom Exception Handlers
@app.exception_handler(PbxGatewayException)
async def pbx_gateway_exception_handler(request: Request, exc: PbxGatewayException):
    """Handle custom gateway exceptions"""
    logger.warning(f"PbxGatewayException: {exc.error_code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": {"exception": str(exc)} if settings.debug else {}
        }
    )


# Include routers
app.include_router(health.router)
app.include_router(calls.router, prefix="/api/v1")
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(call_logs.router, prefix="/api/v1")


@app.get("/")
async def root():
    """API information endpoint"""
    return {
        "service": "PBX Call Gateway",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "make_call": "/api/v1/make-call",
            "end_call": "/api/v1/end-call",
            "sessions": "/api/v1/sessions",
            "call_logs": "/api/v1/call-logs"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pbx_gateway.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug
    )
