"""
SaudaLedger - Commodity Trading Back-Office
FastAPI Application Entry Point
"""
import uvicorn
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from app.core import settings, engine, Base
from app.core.logging_config import setup_logging
from app.api.router import api_router
from app.api.errors import register_exception_handlers
from app.jobs import start_scheduler, stop_scheduler

setup_logging("app")
logger = logging.getLogger(__name__)

# Lifespan for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Create tables if not exist
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.APP_NAME} starting on port {settings.APP_PORT}")
    
    # Background scheduler for recalculate-all jobs
    if settings.BACKFILL_ENABLED:
        try:
            start_scheduler()
            logger.info("Recalc job scheduler started")
        except Exception as e:
            logger.warning(f"Could not start recalc scheduler, jobs will run inline: {e}")
    
    yield
    
    # Shutdown
    stop_scheduler()
    logger.info(f"{settings.APP_NAME} shutting down")

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Contracts, Loadings, Stock Position & Plus/Minus",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)

# Include routers
app.include_router(api_router, prefix="/api")

# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.APP_NAME}

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.APP_PORT,
        reload=settings.DEBUG
    )
