"""
Service Marketplace Bookings - Main Application Entry Point

HTTP façade over the reservation engine:
- Concurrency-safe slot reservation with compare-and-swap updates
- Booking lifecycle: PENDING -> ACTIVE -> COMPLETED, or CANCELLED
- Background release of expired holds
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace import __version__
from marketplace.api.deps import build_engine, get_clock, get_unit_of_work
from marketplace.api.errors import register_error_handlers
from marketplace.api.middleware import RequestLoggingMiddleware
from marketplace.api.router import api_router
from marketplace.core.config import get_settings
from marketplace.core.logging import get_logger, setup_logging
from marketplace.core.metrics import metrics_endpoint
from marketplace.db.session import dispose_engine
from marketplace.services.hold_sweeper import HoldSweeper
from marketplace.services.refund_factory import close_refund_sink, get_refund_sink

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=__version__,
        environment=settings.ENVIRONMENT,
        hold_ttl_minutes=settings.HOLD_TTL_MINUTES,
    )

    sweeper = None
    if settings.HOLD_SWEEP_ENABLED:
        engine = build_engine(get_unit_of_work(), get_clock(), get_refund_sink())
        sweeper = HoldSweeper(engine, interval_seconds=settings.HOLD_SWEEP_INTERVAL_SECONDS)
        sweeper.start()
    else:
        logger.warning("hold_sweeper_disabled", message="Expired holds will not be released")

    yield

    if sweeper is not None:
        await sweeper.stop()
    await close_refund_sink()
    await dispose_engine()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=__version__,
    description="Slot reservation and booking lifecycle API for a services marketplace",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
register_error_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "hold_ttl_minutes": settings.HOLD_TTL_MINUTES,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()
