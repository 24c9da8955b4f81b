"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import get_settings
from api.routers import analyze, crop, debug, downloads, health, platforms, usage
from backend.errors import CropServiceError
from backend.utils import validate_environment
from config.constants import CROP_API_CONTRACT_VERSION
from config.logging_config import setup_logging

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

_HTTP_ERROR_CODES = {
    400: "INVALID_PARAMS",
    401: "UNAUTHORIZED",
    403: "UNAUTHORIZED",
    404: "NOT_FOUND",
    413: "BAD_IMAGE_FORMAT",
    429: "RATE_LIMIT",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    setup_logging("api")
    settings = get_settings()
    logger.info(f"Starting {settings.api_title} v{settings.api_version}...")

    for directory in (settings.output_dir, settings.temp_dir):
        Path(directory).mkdir(parents=True, exist_ok=True)

    report = validate_environment(settings)
    for error in report.errors:
        logger.error(f"Environment validation failed: {error}")
    for warning in report.warnings:
        logger.warning(f"Environment warning: {warning}")

    logger.info(f"Vision model: {settings.vision_model} via {settings.openai_base_url}")
    logger.info(
        f"Redis: {settings.redis_url} (cache={settings.cache_enabled}, "
        f"rate_limit={settings.rate_limit_use_redis})"
    )
    yield
    logger.info(f"Shutting down {settings.api_title}...")


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _error_response(request: Request, status_code: int, error: dict) -> JSONResponse:
    settings = get_settings()
    headers = {}
    if request.url.path.startswith(f"{settings.api_prefix}/crop/analyze"):
        headers = {"X-Crop-API-Version": CROP_API_CONTRACT_VERSION}
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "request_id": _request_id(request)},
        headers=headers,
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Crop-API-Version", "X-Prompt-Version"],
    )

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        content_length = request.headers.get("content-length")
        max_body = settings.max_image_size * settings.max_batch_images
        if content_length and content_length.isdigit() and int(content_length) > max_body:
            response = _error_response(
                request,
                413,
                {"code": "BAD_IMAGE_FORMAT", "message": "Request body too large"},
            )
        else:
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response

    @app.exception_handler(CropServiceError)
    async def crop_error_handler(request: Request, exc: CropServiceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.error_code} {exc}")
        return _error_response(request, exc.status_code, exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(
            request,
            400,
            {
                "code": "INVALID_PARAMS",
                "message": "Invalid request parameters",
                "details": jsonable_errors(exc),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = "API endpoint not found"
        else:
            message = str(exc.detail)
        return _error_response(
            request,
            exc.status_code,
            {"code": _HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL"), "message": message},
        )

    # Include routers
    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(analyze.router, prefix=settings.api_prefix)
    app.include_router(crop.router, prefix=settings.api_prefix)
    app.include_router(downloads.router, prefix=settings.api_prefix)
    app.include_router(usage.router, prefix=settings.api_prefix)
    app.include_router(debug.router, prefix=settings.api_prefix)
    app.include_router(platforms.router, prefix=settings.api_prefix)

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors reduced to location and message."""
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
