"""
Crew Dispatch API - Main Application

Multi-day job scheduling, crew assignment and live field tracking.
- Conditional API docs (disabled in production by default)
- RFC 7807 problem responses
- Correlation IDs on every log record
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.api.v2.router import api_router
from app.config import settings
from app.core.dispatch_config import build_dispatch_config
from app.database import async_session_maker, init_db
from app.exceptions import DispatchException, create_exception_handlers
from app.middleware import CorrelationIdMiddleware, configure_logging
# Import all models to register them with SQLAlchemy metadata before init_db()
from app.models import Job, CrewMember, AvailabilityBlock, TechnicianLocation, LocationHistory  # noqa: F401
from app.services.location_tracking import LocationTracker, make_sample_processor
from app.services.websocket_manager import LocationPublisher

configure_logging(settings.DEBUG)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Crew Dispatch API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    # SECURITY: Don't log full database URL, just prefix
    if settings.DATABASE_URL:
        logger.info(f"Database URL prefix: {settings.DATABASE_URL[:30]}...")
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        # SECURITY: Don't log full exception details which may contain credentials
        logger.error(f"Database initialization failed: {type(e).__name__}")
        logger.warning("App starting without database - some features may not work")
    yield
    # Shutdown
    logger.info("Shutting down Crew Dispatch API...")
    await app.state.tracker.shutdown()


# SECURITY: Conditionally enable docs based on settings
docs_url = "/docs" if settings.DOCS_ENABLED else None
redoc_url = "/redoc" if settings.DOCS_ENABLED else None

app = FastAPI(
    title="Crew Dispatch API",
    description="Multi-day job scheduling and crew dispatch engine",
    version="1.0.0",
    docs_url=docs_url,
    redoc_url=redoc_url,
    lifespan=lifespan,
)

# Engine registry, publisher and tracker, shared by all requests
app.state.dispatch_config = build_dispatch_config(settings)
app.state.publisher = LocationPublisher()
app.state.tracker = LocationTracker(
    make_sample_processor(async_session_maker, app.state.dispatch_config, app.state.publisher),
    app.state.dispatch_config,
)

# CORS middleware
# SECURITY: Restrict origins to known frontend URLs
allowed_origins = [settings.FRONTEND_URL]

# Allow localhost origins for development/testing
allowed_origins.extend([
    "http://localhost:5173",  # Vite dev server
    "http://localhost:3000",  # Alternative dev port
])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

handlers = create_exception_handlers(allowed_origins)
app.add_exception_handler(DispatchException, handlers["dispatch"])
app.add_exception_handler(StarletteHTTPException, handlers["http"])
app.add_exception_handler(RequestValidationError, handlers["validation"])
app.add_exception_handler(Exception, handlers["generic"])

# Include routers
app.include_router(api_router, prefix="/api/v2")


@app.get("/")
async def root():
    """Root endpoint - API info."""
    response = {
        "name": "Crew Dispatch API",
        "version": "1.0.0",
        "health": "/health",
    }
    # Only include docs link if enabled
    if settings.DOCS_ENABLED:
        response["docs"] = "/docs"
    return response


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
    }


# For running with uvicorn directly (development only)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=5001,
        reload=settings.DEBUG,
    )
