"""FastAPI application — main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import get_settings
from app.infrastructure.database import engine, Base, SessionLocal
from app.core.logging import configure_logging
from app.core.middleware import setup_middleware
from app.core.exceptions import register_exception_handlers

# Import all models so SQLAlchemy knows about them
from app.domain.models.user import User  # noqa: F401
from app.domain.models.tract import Tract  # noqa: F401
from app.domain.models.category import Category, Tag  # noqa: F401
from app.domain.models.scripture import ScriptureReference  # noqa: F401
from app.domain.models.download import Download  # noqa: F401

# Import routers
from app.interfaces.api.auth import router as auth_router
from app.interfaces.api.tracts import router as tracts_router
from app.interfaces.api.categories import router as categories_router
from app.interfaces.api.admin import router as admin_router
from app.interfaces.api.profile import router as profile_router

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    from app.application.services.bootstrap import ensure_admin, ensure_default_categories

    logger.info("Starting Tract Library...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only — use a migration tool in production)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    db = SessionLocal()
    try:
        ensure_default_categories(db)
        ensure_admin(db)
    finally:
        db.close()

    yield

    logger.info("Tract Library stopped")


app = FastAPI(
    title="Tract Library",
    description="API Backend — upload, review and distribution of gospel tracts",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware (request logging, correlation id, CORS)
setup_middleware(app)

# Exception handling
register_exception_handlers(app)

# Include routers
app.include_router(auth_router)
app.include_router(tracts_router)
app.include_router(categories_router)
app.include_router(admin_router)
app.include_router(profile_router)


@app.get("/")
def root():
    return {
        "name": "Tract Library",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
