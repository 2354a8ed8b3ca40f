"""
FastAPI application entry point for the classroom engagement backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from engage.config import get_settings
from engage.errors import EngageError
from engage.routes import router

logger = logging.getLogger(__name__)


async def handle_engage_error(request: Request, exc: EngageError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request to %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message or str(exc)})


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="Classroom Engagement Backend", version="0.1.0")
    app.add_exception_handler(EngageError, handle_engage_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
