"""FastAPI application definition."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dojo import __version__
from dojo.core.exceptions import DojoError

from .deps import Settings, lifespan
from .routes import api_router

logger = structlog.get_logger()


async def dojo_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a DojoError as ``{"status", "code", "message"}``.

    Client errors are "fail", server errors are "error". 401 responses
    carry a Bearer challenge.
    """
    assert isinstance(exc, DojoError)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error" if exc.status_code >= 500 else "fail",
            "code": exc.code,
            "message": exc.message,
            **exc.details(),
        },
        headers=headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected fault and answer with the generic internal error."""
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    error = DojoError()
    return JSONResponse(
        status_code=error.status_code,
        content={"status": "error", "code": error.code, "message": error.message},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use. Read from the environment when omitted.
    """
    settings = settings or Settings()
    app = FastAPI(
        title="dojo",
        description="Corporate-email authentication and workspace authorization",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,  # Prevent 307 redirects that lose auth headers
    )
    app.state.settings = settings

    # CORS middleware for frontend; credentials require an explicit origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DojoError, dojo_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
