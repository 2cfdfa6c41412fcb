from datetime import datetime

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from memorial.api import people, references, settings as settings_api
from memorial.config.settings import get_settings
from memorial.middleware.error_handler import (
    app_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from memorial.middleware.request_id import RequestIdMiddleware
from memorial.utils.exceptions import AppError
from memorial.utils.logging import setup_logging


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Family memorial notes with per-person identity visibility controls",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Wildcard origins are only honoured in development
    resolved_origins = settings.cors_origins
    if settings.environment != "development":
        if not resolved_origins or (isinstance(resolved_origins, list) and "*" in resolved_origins):
            resolved_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolved_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_logging()
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring"""
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "version": settings.app_version,
            "environment": settings.environment,
        }

    app.include_router(references.router)
    app.include_router(people.router)
    app.include_router(settings_api.router)
    return app


app = create_app()

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "memorial.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
    )
