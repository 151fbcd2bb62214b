"""
Greenlight Offer API - HTTP facade over a Greenlight hosted Lightning node.

Provides REST endpoints for:
- Creating BOLT12 offers (GET /api/create-offer)
- Publishing BIP-353 usernames (POST /create-username)
- Health checks (GET /health)
"""

import logging
import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator, Callable, Optional

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .cloudflare import CloudflareDNS, simulate_dns_record
from .config import Settings, get_settings
from .credentials import credentials_available
from .exceptions import GreenlightApiError
from .greenlight import GlClient, NodeHostingClient
from .models import (
    ApiResponse,
    CreateUsernameRequest,
    HealthConfig,
    HealthData,
    OfferData,
    UsernameData,
)
from .orchestrator import OfferOrchestrator, new_seed

# Largest expiry duration the node accepts (u32 seconds)
MAX_EXPIRY_SECONDS = 2**32 - 1

# Configure logging
_settings = get_settings()
logging.basicConfig(format="%(message)s", level=_settings.log_level.upper())
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()

    if settings.gl_seed_policy == "process":
        # Draw the process seed now rather than on the first request.
        get_process_seed()

    logger.info(
        "API started",
        version=__version__,
        host=settings.host,
        port=settings.port,
        network=settings.gl_network,
        seed_policy=settings.gl_seed_policy,
        certificates_loaded=credentials_available(settings),
    )

    if not settings.cloudflare_configured:
        logger.warning(
            "Cloudflare not configured, username records will be simulated in development",
            environment=settings.environment,
        )

    yield

    logger.info("API stopped")


# Create FastAPI app
app = FastAPI(
    title="Greenlight Offer API",
    description="HTTP facade over a Greenlight hosted Lightning node",
    version=__version__,
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=_settings.cors_max_age,
)


def _envelope(status_code: int, message: str) -> JSONResponse:
    body = ApiResponse(success=False, message=message, data=None)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.warning("Invalid request", path=request.url.path, error=detail)
    return _envelope(400, f"Invalid request: {detail}")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, error=str(exc))
    return _envelope(500, "Internal server error")


# ============================================================================
# Dependencies
# ============================================================================


@lru_cache
def get_process_seed() -> bytes:
    """Signing seed shared by every request of this process."""
    return new_seed()


def get_node_client() -> NodeHostingClient:
    return GlClient()


def get_seed_source(settings: Settings = Depends(get_settings)) -> Callable[[], bytes]:
    if settings.gl_seed_policy == "process":
        return get_process_seed
    return new_seed


def get_orchestrator(
    settings: Settings = Depends(get_settings),
    client: NodeHostingClient = Depends(get_node_client),
    seed_source: Callable[[], bytes] = Depends(get_seed_source),
) -> OfferOrchestrator:
    return OfferOrchestrator(settings, client, seed_source=seed_source)


def get_dns_client(settings: Settings = Depends(get_settings)) -> CloudflareDNS:
    return CloudflareDNS(settings)


# ============================================================================
# Root & Health Check
# ============================================================================


@app.get("/", response_model=ApiResponse)
async def index() -> ApiResponse:
    return ApiResponse(
        success=True,
        message="Greenlight Offer API",
        data={
            "version": __version__,
            "endpoints": [
                {"path": "/api/create-offer", "method": "GET", "description": "Create a BOLT12 offer"},
                {"path": "/create-username", "method": "POST", "description": "Create a username with a BOLT12 offer"},
                {"path": "/health", "method": "GET", "description": "Check if the API is running"},
            ],
        },
    )


@app.get("/health", response_model=ApiResponse)
def health_check(settings: Settings = Depends(get_settings)) -> ApiResponse:
    """
    Report service status and whether developer credentials resolve.

    Always 200: a missing certificate is reported, not raised.
    """
    health = HealthData(
        status="ok",
        version=__version__,
        timestamp=int(time.time()),
        config=HealthConfig(
            certificates_loaded=credentials_available(settings, quiet=True),
            network=settings.gl_network,
            seed_policy=settings.gl_seed_policy,
            cloudflare_configured=settings.cloudflare_configured,
        ),
    )
    return ApiResponse(success=True, message="Service is running", data=health.model_dump())


# ============================================================================
# BOLT12 Offers
# ============================================================================


@app.get("/api/create-offer", response_model=ApiResponse)
def create_offer(
    expiry: Optional[int] = Query(
        None,
        ge=0,
        le=MAX_EXPIRY_SECONDS,
        description="Offer lifetime in seconds from now",
    ),
    orchestrator: OfferOrchestrator = Depends(get_orchestrator),
):
    """
    Create a BOLT12 offer on a Greenlight node.

    Runs the scheduler handshake (register, authenticate, connect) and asks
    the node for an any-amount offer. Blocking; served from the thread pool.
    """
    logger.info("/api/create-offer called", expiry=expiry)

    try:
        offer = orchestrator.create_offer(expiry)
    except GreenlightApiError as e:
        logger.error("Failed to create offer", error=e.message, state=orchestrator.state.value)
        return _envelope(500, e.message)

    logger.info("BOLT 12 offer returned", offer_length=len(offer))
    return ApiResponse(
        success=True,
        message="BOLT 12 offer created successfully",
        data=OfferData(offer=offer).model_dump(),
    )


# ============================================================================
# Usernames (BIP-353)
# ============================================================================


@app.post("/create-username", response_model=ApiResponse)
async def create_username(
    request: CreateUsernameRequest,
    settings: Settings = Depends(get_settings),
    dns: CloudflareDNS = Depends(get_dns_client),
):
    """
    Publish `<username>@<domain>` pointing at a BOLT12 offer.

    Without Cloudflare credentials in development the record is simulated.
    """
    username = (request.username or "").strip()
    offer = (request.bolt12_offer or "").strip()
    if not username or not offer:
        return _envelope(400, "Username and BOLT12 offer are required")

    try:
        if settings.is_development and not settings.cloudflare_configured:
            logger.info("Using simulated DNS record creation", username=username)
            record = simulate_dns_record(username, offer, settings.domain)
        else:
            record = await dns.create_txt_record(username, offer)
    except GreenlightApiError as e:
        logger.error("Failed to create username", error=e.message, username=username)
        return _envelope(500, e.message)

    logger.info("Username created", username=username, record=record.name)
    data = UsernameData(
        username=f"{username}@{settings.domain}",
        bitcoin_address=f"{username}.user._bitcoin-payment.{settings.domain}",
        dns_record=record,
    )
    return ApiResponse(
        success=True,
        message="Username created successfully",
        data=data.model_dump(by_alias=True),
    )


# ============================================================================
# Entry Point
# ============================================================================


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "greenlight_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
