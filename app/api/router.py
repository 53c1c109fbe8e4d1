"""
API Router - JSON Endpoints
"""
from fastapi import APIRouter
from datetime import datetime

from app.api import sauda, loading, stock, plus_minus, jobs

api_router = APIRouter(tags=["API"])

api_router.include_router(sauda.router)
api_router.include_router(loading.router)
api_router.include_router(stock.router)
api_router.include_router(plus_minus.router)
api_router.include_router(jobs.router)


@api_router.get("/status")
async def api_status():
    return {"status": "ok", "version": "1.0.0", "timestamp": datetime.now().isoformat()}
