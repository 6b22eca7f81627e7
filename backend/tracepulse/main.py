"""Main FastAPI application."""
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tracepulse.config import settings
from tracepulse.api import router
from tracepulse.dependencies import get_system_map_store
from tracepulse.log_config import configure_logging


configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting application", version=settings.APP_VERSION, redis_enabled=bool(settings.REDIS_URL))
    if not settings.REDIS_URL:
        logger.warning("Redis disabled", reason="No REDIS_URL provided")

    # Warm the system map snapshot
    graph = get_system_map_store().get_graph()
    logger.info("System map ready", service_count=len(graph), version=graph.version)

    yield

    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Event correlation and hypothesis engine",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with system info."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "webhook": "/webhook/event",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tracepulse.main:app",
        host="0.0.0.0",
        port=3000,
        reload=settings.DEBUG
    )
