from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from firemap.api import deps
from firemap.api.v1 import filters, graphics
from firemap.core.config import settings
from firemap.core.errors import register_exception_handlers
from firemap.core.logging import setup_logging
from firemap.core.middleware import LatencyMonitorMiddleware, RequestIdMiddleware

# Setup logging
logger = setup_logging()


tags_metadata = [
    {
        "name": "filters",
        "description": "**Filter panel** - Region lists, name searches, map extents, the region under a map point and the satellites present under the active filters.",
    },
    {
        "name": "graphics",
        "description": "**Charts** - Fire counts grouped by a column, in total and per week, under the same filters as the map.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("starting", project=settings.PROJECT_NAME, version=settings.VERSION)
    logger.info("environment", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    # Fail fast on broken region configuration
    schema = deps.get_schema_config()
    filter_config = deps.get_filter_config()
    logger.info(
        "region_config_loaded",
        fires_table=schema.fires.qualified_name,
        cached_extents=filter_config.extents.size(),
    )

    yield

    logger.info("shutting_down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## FireMap API

Query backend of the fire monitoring dashboard: filter lookups, region
extents and fire counts over a PostGIS database.
    """,
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Latency Monitoring (SLO Check)
app.add_middleware(LatencyMonitorMiddleware)

# Request ID Tracing
app.add_middleware(RequestIdMiddleware)

# Register global exception handlers
register_exception_handlers(app)

app.include_router(
    filters.router, prefix=f"{settings.API_V1_PREFIX}/filters", tags=["filters"]
)

app.include_router(
    graphics.router, prefix=f"{settings.API_V1_PREFIX}/graphics", tags=["graphics"]
)


@app.get("/health", summary="Health check")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", summary="API root")
async def root():
    """Root endpoint with API info"""
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health",
    }
