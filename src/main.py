from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.application.handlers.auth_decorator import AuthService
from src.application.handlers.chain import build_handler_chain
from src.application.handlers.logging_decorator import RequestLogger
from src.application.use_cases.run_pipeline import PipelineRunner
from src.domain.services.operation_registry import OperationRegistry
from src.infrastructure.api.dependencies import build_auth_service, build_request_logger
from src.infrastructure.api.error_handlers import add_error_handlers
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.auth_routes import router as auth_router
from src.infrastructure.api.routes.image_routes import router as image_router
from src.infrastructure.logging_config import get_logger, setup_logging

_log = get_logger("app")


def create_app(
    *,
    auth_service: AuthService | None = None,
    request_logger: RequestLogger | None = None,
    registry: OperationRegistry | None = None,
) -> FastAPI:
    """Build the application. Collaborators default to the env-configured ones."""
    setup_logging()

    auth_service = auth_service or build_auth_service()
    request_logger = request_logger or build_request_logger()
    registry = registry or OperationRegistry.default()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await request_logger.open()
        _log.info("Request logger %s opened", type(request_logger).__name__)
        try:
            yield
        finally:
            await request_logger.close()
            _log.info("Request logger closed")

    app = FastAPI(
        title="ImagePipe Backend",
        version="0.1.0",
        description="""
        ## ImagePipe Backend API

        Image transformations over HTTP: resize, rotate, filters and format
        conversion, alone or chained in a validated pipeline.

        ### Features
        - **Authentication**: Bearer tokens issued by `/auth/login` (Supabase Auth)
        - **Single operations**: `/images/resize`, `/images/rotate`, `/images/filter`, `/images/format`
        - **Pipelines**: `/images/process` runs up to 10 steps, validated before any step executes
        - **Request logging**: every operation is recorded with caller, duration and outcome

        ### Authentication
        All `/images` endpoints require a Bearer token in the Authorization header:
        ```
        Authorization: Bearer your-token
        ```

        ### Error Responses
        Errors are returned as `{"error": ..., "code": ..., "timestamp": ...}`:
        - **400**: MISSING_PARAMS, MISSING_FIELDS, MISSING_IMAGE, INVALID_PARAMS, INVALID_PIPELINE, UNKNOWN_OPERATION
        - **401**: MISSING_TOKEN, INVALID_TOKEN, INVALID_CREDENTIALS
        - **413 / 415**: PAYLOAD_TOO_LARGE, UNSUPPORTED_MEDIA_TYPE
        - **422**: OPERATION_FAILED
        - **500**: INTERNAL_ERROR
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    add_default_middlewares(app)
    add_error_handlers(app)

    # the handler chain is built once and shared by every route
    app.state.auth_service = auth_service
    app.state.request_logger = request_logger
    app.state.pipeline_runner = PipelineRunner(
        handler=build_handler_chain(registry, auth_service, request_logger)
    )

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the ImagePipe API",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "imagepipe-backend", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(image_router)
    return app


app = create_app()
