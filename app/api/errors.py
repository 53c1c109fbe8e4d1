"""
Map ledger exceptions to HTTP responses
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import LedgerError, RecalculationError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        if isinstance(exc, RecalculationError):
            logger.error(f"{request.method} {request.url.path} rolled back: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
