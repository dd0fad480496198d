"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.db.database import SessionLocal, init_db

settings = get_settings()

APP_VERSION = "0.1.0"

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def run_mounted_import() -> None:
    """Import the Caddyfile mounted at IMPORT_CADDYFILE, if configured."""
    if not settings.import_caddyfile:
        return

    db = SessionLocal()
    try:
        import_mounted_caddyfile(db, settings)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events.

    Args:
        app: FastAPI application instance.
    """
    # Startup
    init_db()
    run_mounted_import()
    logger.info("%s %s started", settings.app_name, APP_VERSION)
    yield
    # Shutdown (cleanup if needed)


app = FastAPI(
    title=settings.app_name,
    description="Import existing Caddyfile configurations into the proxy host inventory",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Import and include routers
from app.imports.router import router as imports_router  # noqa: E402
from app.imports.service import import_mounted_caddyfile  # noqa: E402

# API routes
app.include_router(imports_router, prefix="/api/import", tags=["import"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint for Docker/Kubernetes.

    Returns:
        dict: Health status.
    """
    return {"status": "ok", "version": APP_VERSION}
