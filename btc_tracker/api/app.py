"""Main FastAPI application for the BTC address tracker."""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from btc_tracker import __version__
from btc_tracker.api.routers import addresses, sync
from btc_tracker.core.aggregator import LedgerAggregator
from btc_tracker.core.errors import (
    AddressExistsError, InternalError, NotFoundError, StorageError,
    TrackerError, UpstreamError, ValidationError
)
from btc_tracker.core.ledger_client import BlockchainInfoClient
from btc_tracker.database.repository import AddressRepository, SqlAddressRepository
from btc_tracker.models.config import TrackerConfig
from btc_tracker.utils.logging import setup_logging
from btc_tracker.utils.time import utc_now_iso

logger = structlog.get_logger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AddressExistsError: status.HTTP_409_CONFLICT,
    UpstreamError: status.HTTP_502_BAD_GATEWAY,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}

API_DOCUMENTATION = {
    "addresses": {
        "GET /api/addresses": "Get all addresses for a user (requires user-id header)",
        "POST /api/addresses": "Add a new address (body: {address, label?})",
        "GET /api/addresses/{address}": "Get specific address",
        "DELETE /api/addresses/{address}": "Remove address",
        "GET /api/addresses/{address}/transactions": "Get address transactions (query: limit, offset)",
        "GET /api/addresses/user/transactions": "Get all transactions for a user (query: limit, offset)",
    },
    "sync": {
        "GET /api/sync/address/{address}": "Get live data for specific address (query: limit, offset)",
        "GET /api/sync/user": "Get live data for all user addresses (query: limit)",
        "GET /api/sync/user/balances": "Get live balances for user addresses",
        "GET /api/sync/status": "Get blockchain status and API info",
    },
    "utility": {
        "GET /health": "Health check",
        "GET /api": "This documentation",
    },
}


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def as_internal_error(exc: Exception, debug: bool = False) -> InternalError:
    """Wrap an unexpected exception, hiding its message unless debugging."""
    message = str(exc) if debug else "Internal server error"
    return InternalError(message, details={"error_type": type(exc).__name__})


def status_code_for(error: TrackerError) -> int:
    """HTTP status for a tracker error, walking its class hierarchy."""
    for error_class in type(error).__mro__:
        if error_class in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_class]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    config: TrackerConfig = app.state.config
    setup_logging(config)

    logger.info("Starting BTC Tracker API", ledger=config.ledger_base_url)
    app.state.repository.create_tables()
    app.state.startup_time = time.time()

    yield

    logger.info("Shutting down BTC Tracker API")
    for resource in app.state.owned_resources:
        if isinstance(resource, BlockchainInfoClient):
            await resource.aclose()
        else:
            resource.dispose()
    logger.info("BTC Tracker API shutdown complete")


def create_app(config: Optional[TrackerConfig] = None,
               ledger_client: Optional[BlockchainInfoClient] = None,
               repository: Optional[AddressRepository] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators that are not passed in are built from config and closed
    on shutdown. Injected ones are left for the caller to close.
    """
    config = config or TrackerConfig()
    owned_resources = []

    if ledger_client is None:
        ledger_client = BlockchainInfoClient.from_config(config)
        owned_resources.append(ledger_client)

    if repository is None:
        repository = SqlAddressRepository(config.database_url)
        owned_resources.append(repository)

    app = FastAPI(
        title="BTC Tracker API",
        description="Per-user Bitcoin address tracking with live ledger data",
        version=__version__,
        debug=config.debug,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.ledger_client = ledger_client
    app.state.repository = repository
    app.state.aggregator = LedgerAggregator(ledger_client)
    app.state.owned_resources = owned_resources
    app.state.startup_time = time.time()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Basic security headers."""
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Request logging middleware."""
        start_time = time.time()
        response = await call_next(request)
        logger.info("Request completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    client_ip=request.client.host if request.client else None,
                    process_time=round(time.time() - start_time, 4))
        return response

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError):
        status_code = status_code_for(exc)
        log = logger.error if status_code >= 500 else logger.warning
        log("Request failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=exc.message,
            status_code=status_code)
        return _error_response(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return _error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request: {errors}")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "success": False,
                    "error": "Endpoint not found",
                    "message": "The requested endpoint does not exist. Visit /api for documentation.",
                }
            )
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=True)
        error = as_internal_error(exc, config.debug)
        return _error_response(status_code_for(error), error.message)

    @app.get("/health")
    async def health_check():
        """Liveness probe."""
        return {
            "success": True,
            "message": "BTC Tracker API is running",
            "timestamp": utc_now_iso(),
            "uptime": round(time.time() - app.state.startup_time, 3),
        }

    @app.get("/api")
    async def api_documentation():
        """Endpoint overview."""
        return {
            "success": True,
            "message": "BTC Tracker API",
            "version": __version__,
            "endpoints": API_DOCUMENTATION,
            "authentication": {
                "note": 'All endpoints require user identification via header "user-id" '
                        'or query parameter "user_id"'
            },
            "blockchain_api": config.ledger_base_url,
        }

    app.include_router(addresses.router, prefix="/api/addresses", tags=["addresses"])
    app.include_router(sync.router, prefix="/api/sync", tags=["sync"])

    return app
