"""
Client Intake Service
FastAPI application entry point
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.database import engine, Base
from app.core.errors import register_error_handlers
from app.core.logging import configure_logging
from app.api import clients, intake, intake_links
# Import models to ensure they're registered with Base.metadata
from app.models import (  # noqa: F401
    Client,
    Dependent,
    Document,
    IntakeLink,
    IntakeResponse,
    IntakeSubmission,
    Task,
    ActivityLog,
)

configure_logging()
logger = logging.getLogger(__name__)

# Create database tables
async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Multi-step tax client intake: secure links, uploads and submission",
    version=settings.VERSION,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
app.include_router(intake.router, prefix="/api/intake", tags=["intake"])
app.include_router(intake_links.router, prefix="/api/intake-links", tags=["intake-links"])
app.include_router(clients.router, prefix="/api/clients", tags=["clients"])

@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    await init_db()
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")

@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION
    }

@app.get("/health")
async def health():
    """Detailed health check"""
    return {
        "status": "healthy",
        "database": "connected",
        "storage": str(settings.BUCKET_DIR),
        "email_provider": settings.EMAIL_PROVIDER
    }
