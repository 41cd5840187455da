# src/main.py
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging
import uvicorn as uv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIMiddleware
from core.config import settings
from db.database import (
    AsyncSessionLocal,
    check_db_connection,
    create_tables,
    disconnect_db,
)
from utils.exception_handler import setup_exception_handlers
from utils.logger import get_file_handler, setup_logger
from utils.rate_limiter import limiter
from routes import (
    auth_router,
    users_router,
    profile_router,
    patients_router,
    surgeries_router,
    follow_ups_router,
    private_notes_router,
    media_router,
    document_requests_router,
    reminders_router,
    notifications_router,
    audit_logs_router,
    whatsapp_router,
)
from services.auth_service import auth_service
from services.email_service import email_service
from services.whatsapp_service import whatsapp_service

# Disable specific loggers
for log in ["watchfiles", "uvicorn.error", "uvicorn.access", "uvicorn.asgi"]:
    logging.getLogger(log).setLevel(logging.WARNING)

# Third-party loggers propagate to root; send them to the same file
file_handler = get_file_handler()
if file_handler is not None:
    logging.getLogger().addHandler(file_handler)

logger = setup_logger("SERVER")

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)


def adapter_status() -> dict:
    return {
        "whatsapp": whatsapp_service.get_config_status().model_dump(),
        "email": email_service.get_config_status(),
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(f"Starting {settings.PROJECT_NAME}...")

    try:
        if await check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.error("Database connection failed; requests will error until it recovers")

        await create_tables()

        async with AsyncSessionLocal() as session:
            purged = await auth_service.cleanup_expired_tokens(session)
        if purged:
            logger.info(f"Purged {purged} expired revoked tokens")

        status = adapter_status()
        if status["whatsapp"]["configured"]:
            logger.info("WhatsApp adapter configured")
        else:
            logger.warning("WhatsApp adapter not configured; WhatsApp sends will return 503")
        if not status["email"]["configured"]:
            logger.warning("Resend API key missing; emails will not be delivered")

        logger.info("Application startup complete")
        yield

    except Exception as e:
        logger.error(f"Startup failed: {str(e)}")
        raise
    finally:
        logger.info("Closing database connection")
        await disconnect_db()
        logger.info("Shutting down application...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Surgical history, follow-up and patient document records",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# Rate limiting configuration
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Exception handling
setup_exception_handlers(app)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    auth_router,
    users_router,
    profile_router,
    patients_router,
    surgeries_router,
    follow_ups_router,
    private_notes_router,
    media_router,
    document_requests_router,
    reminders_router,
    notifications_router,
    audit_logs_router,
    whatsapp_router,
):
    app.include_router(router, prefix=settings.API_PREFIX)

app.mount(
    settings.UPLOAD_URL_PATH,
    StaticFiles(directory=settings.UPLOAD_DIR),
    name="uploads",
)


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "status": "healthy",
        "version": app.version,
    }


@app.get(f"{settings.API_PREFIX}/health")
async def health_check():
    """Detailed health check endpoint"""
    db_healthy = await check_db_connection()
    return {
        "status": "healthy" if db_healthy else "degraded",
        "database": "connected" if db_healthy else "disconnected",
        "adapters": adapter_status(),
        "environment": settings.ENVIRONMENT,
    }


if __name__ == "__main__":
    watch_dirs = ["core", "routes", "models", "schemas", "services", "utils", "db"]

    uv.run(
        "main:app",
        host=settings.UVICORN_HOST,
        port=settings.UVICORN_PORT,
        reload=settings.RELOAD,
        reload_dirs=watch_dirs,
        reload_excludes=["*.pyc", "*.tmp", "*.swp"],
        workers=1 if settings.RELOAD else settings.WORKERS_COUNT,
        log_level="info",
        access_log=True,
    )
