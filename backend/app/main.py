import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core.database import engine, Base
from app.core.errors import register_exception_handlers
from app.core.scheduler import start_scheduler, stop_scheduler
from app.api.routes import auth, files
# Imported so every model is registered on Base.metadata before create_all
from app.models import file, session, user  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage app lifecycle events.

    Startup: Create tables, start background scheduler for session cleanup
    Shutdown: Stop background scheduler
    """
    # In production, use migrations (Alembic) instead of create_all
    Base.metadata.create_all(bind=engine)
    if settings.uses_default_secrets():
        logger.warning(
            "JWT signing keys are the built-in development defaults; "
            "set JWT_ACCESS_SECRET and JWT_REFRESH_SECRET in production"
        )
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="FileVault API",
    description="User accounts with JWT sessions and per-user file storage",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - allows frontend to make requests to backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,  # Allow cookies/auth headers
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# All routes are prefixed with /api for consistency
app.include_router(auth.router, prefix="/api")
app.include_router(files.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "FileVault API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}
