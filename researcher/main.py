"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from researcher import __version__
from researcher.api.middleware import RequestLoggingMiddleware
from researcher.api.v1.router import router as v1_router
from researcher.config import settings
from researcher.core.exceptions import ResearcherError
from researcher.core.orchestrator import get_orchestrator
from researcher.services.content_provider import get_content_provider
from researcher.services.screenshots import get_screenshot_service
from researcher.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    logger.info(
        "application.starting",
        version=__version__,
        environment=settings.app_env,
        completion_enabled=settings.completion_enabled,
        screenshots_enabled=settings.screenshots_enabled,
    )

    yield

    # Shutdown
    await get_orchestrator().shutdown()
    await get_content_provider().aclose()
    screenshots = get_screenshot_service()
    if screenshots is not None:
        await screenshots.aclose()
    logger.info("application.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Repo Researcher API",
        description="Turns a repository's schemas and routes into a UX research report for frontend scaffolding",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers
    @app.exception_handler(ResearcherError)
    async def researcher_error_handler(
        request: Request, exc: ResearcherError
    ) -> JSONResponse:
        """Handle application-specific errors."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "request.failed",
            path=request.url.path,
            error_code=type(exc).__name__,
            error=exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": type(exc).__name__.upper(),
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=request.url.path,
            exc_info=True,
        )

        if settings.is_development:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": {
                        "code": "INTERNAL_ERROR",
                        "message": str(exc),
                        "type": type(exc).__name__,
                    }
                },
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                }
            },
        )

    # Include routers
    app.include_router(v1_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "researcher.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
