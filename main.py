"""FastAPI application relaying image uploads to the background-removal and enhancement APIs."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, settings
from intake import read_upload
from models import ErrorResponse, HealthResponse, StatusResponse
from ratelimit import RATE_LIMIT_MESSAGE, RateLimiter, client_ip
from relay import client
from relay.errors import MissingConfigurationError, PayloadTooLargeError, RelayError, UpstreamHTTPError, translate
from relay.providers import ENHANCE_IMAGE, REMOVE_BG, get_providers
from relay.service import process

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Room for multipart boundaries and part headers around the file itself.
MULTIPART_OVERHEAD = 64 * 1024

rate_limiter = RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    client.shutdown_executor()


app = FastAPI(title="Image Relay Service", version="0.1.0", lifespan=lifespan)


def _declared_length(request: Request) -> Optional[int]:
    try:
        return int(request.headers["content-length"])
    except (KeyError, ValueError):
        return None


@app.middleware("http")
async def guard_api_requests(request: Request, call_next: Callable[[Request], Any]) -> Any:
    """Rate-limit uploads and refuse oversized bodies before they are parsed."""
    if request.method.upper() != "POST" or not request.url.path.startswith("/api/"):
        return await call_next(request)

    if rate_limiter.enabled:
        allowed, retry_after = rate_limiter.consume(client_ip(request))
        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s", client_ip(request), request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": RATE_LIMIT_MESSAGE},
                headers={"Retry-After": str(retry_after)},
            )

    length = _declared_length(request)
    if length is not None and length > settings.max_upload_bytes + MULTIPART_OVERHEAD:
        logger.warning("Rejected %s body of %d bytes before parsing", request.url.path, length)
        outcome = translate(
            PayloadTooLargeError(message=f"Maximum file size is {settings.max_upload_bytes // (1024 * 1024)} MB.")
        )
        return JSONResponse(status_code=outcome.status_code, content=outcome.body())

    return await call_next(request)


app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 413, 415, 429, 500, 503, 504)}


def get_settings() -> Settings:
    """Settings dependency; overridden in tests."""
    return settings


async def _relay(provider_name: str, file: Optional[UploadFile], config: Settings) -> Response:
    provider = get_providers(config)[provider_name]
    try:
        upload = await read_upload(file, config.max_upload_bytes)
        result = await process(upload, provider, config)
    except Exception as exc:  # noqa: BLE001
        if isinstance(exc, MissingConfigurationError):
            logger.error("Rejected %s request: RAPIDAPI_KEY is not set", provider.name)
        elif isinstance(exc, UpstreamHTTPError) and exc.rejected_credentials:
            logger.error("AUTHENTICATION ERROR - %s rejected RAPIDAPI_KEY (status %s)", provider.name, exc.status_code)
        elif not isinstance(exc, RelayError):
            logger.exception("Unexpected error while relaying to %s", provider.name)
        outcome = translate(exc, provider, secrets=[config.rapidapi_key or ""])
        return JSONResponse(status_code=outcome.status_code, content=outcome.body())

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@app.get("/", response_model=StatusResponse)
async def root() -> StatusResponse:
    return StatusResponse()


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check with server time."""
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())


@app.post("/api/remove-bg", responses=ERROR_RESPONSES, response_class=Response)
async def remove_bg(
    file: Optional[UploadFile] = File(default=None),
    config: Settings = Depends(get_settings),
) -> Response:
    """Remove the background of the uploaded image; returns a PNG attachment."""
    return await _relay(REMOVE_BG, file, config)


@app.post("/api/enhance-image", responses=ERROR_RESPONSES, response_class=Response)
async def enhance_image(
    file: Optional[UploadFile] = File(default=None),
    config: Settings = Depends(get_settings),
) -> Response:
    """Enhance the faces in the uploaded image; returns a JPEG attachment."""
    return await _relay(ENHANCE_IMAGE, file, config)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": str(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


if __name__ == "__main__":
    import uvicorn

    logger.info("Server running on port %s", settings.port)
    logger.info("Health check: http://localhost:%s/", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
