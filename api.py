"""
FastAPI REST API for NextCap.

Provides HTTP endpoints for license validation (used by the capture client)
and license administration.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, HTMLResponse

from config import get_config
from errors import ErrorCode
from database import get_db_manager, close_db_manager
from migrate import run_migrations
from version import __version__
import services

from routers.admin_api import admin_router
from routers.license_api import license_router
from routers.system_api import system_app_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    # Startup
    logger.info("Starting NextCap license API...")
    try:
        if not await asyncio.to_thread(run_migrations):
            raise RuntimeError("database migrations failed")
        _ = get_db_manager()
        services.mark_init_complete()
        logger.info("Services initialized successfully")
    except Exception as e:
        # Keep serving so /health can report the failure
        logger.error(f"Failed to initialize services: {e}")
        services.set_init_failed(str(e))

    yield

    # Shutdown
    logger.info("Shutting down NextCap license API...")
    close_db_manager()
    logger.info("Cleanup complete")


# Create FastAPI app
config = get_config()
app = FastAPI(
    title="NextCap License API",
    description="License validation and administration for the NextCap capture client",
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system_app_router)
app.include_router(license_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
async def root():
    return "<h1>NextCap License API</h1><p>Visit <a href='/docs'>/docs</a> for API documentation</p>"


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    error = ErrorCode.INTERNAL_SERVER_ERROR
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.detail(details={"error": str(exc)})}
    )


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "api:app",
        host=config.api.host,
        port=config.api.port,
        reload=config.api.reload,
        log_level=config.api.log_level
    )


if __name__ == "__main__":
    main()
