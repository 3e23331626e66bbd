"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from landlens.config import settings
from landlens.middleware.error_handler import ErrorHandlerMiddleware
from landlens.middleware.rate_limiter import limiter
from landlens.api.v1.routers import chat, sessions

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Sampling config: grid_size={settings.grid_size}, "
                f"window={settings.climate_window_days} days")
    logger.info(f"Rate limit: {settings.rate_limit_requests} analyze requests/minute")

    yield

    # Shutdown
    from landlens.infrastructure.analysis_client import get_analysis_client
    from landlens.infrastructure.external_api_client import get_api_client
    logger.info("Shutting down application...")
    await get_api_client().close()
    await get_analysis_client().close()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Land-use and Environmental Profiling API

    Annotate a map with shapes and derive an environmental profile of each
    annotated area from OpenStreetMap features, SoilGrids soil properties and
    NASA POWER daily weather.

    ## Features

    - **Annotation Sessions**: Draw polygons, circles, rectangles, triangles and
      freehand outlines, with full undo/redo history
    - **Feature Intersection**: Buildings, water, woods, parks and land use
      clipped precisely to each shape and styled for display
    - **Environmental Sampling**: Soil and 30-day weather sampled concurrently on
      a grid over each shape
    - **Summaries**: Optional language-model summary of the joined dataset
    - **Partial Results**: A failed source degrades only the affected shape or
      sample point
    - **Rate Limiting**: Protects the analyze endpoint from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(chat.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
