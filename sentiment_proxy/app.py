import time
import uuid
from pathlib import Path

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from sentiment_proxy.errors import ProxyError, UnexpectedError
from sentiment_proxy.logger import get_logger
from sentiment_proxy.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION
from sentiment_proxy.routes import router
from sentiment_proxy.schemas import ApiResponse
from sentiment_proxy.settings import settings
from sentiment_proxy.utils import lifespan

STATIC_DIR = Path(__file__).parent / "static"

logger = get_logger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Proxy between the sentiment web client and Azure AI Language",
    lifespan=lifespan,
    debug=settings.debug,
)

app.include_router(router, prefix=settings.api_prefix)

KNOWN_PATHS = {"/", "/metrics"} | {
    f"{settings.api_prefix}{route.path}" for route in router.routes
}


def get_endpoint_path(request: Request) -> str:
    """Extract a clean endpoint path for metrics"""
    path = request.url.path
    if path in KNOWN_PATHS:
        return path
    else:
        return "/other"


# Middleware for metrics collection
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect Prometheus metrics for all requests"""
    if request.url.path == "/metrics":
        return await call_next(request)

    ACTIVE_REQUESTS.inc()
    endpoint = get_endpoint_path(request)
    method = request.method
    start_time = time.time()

    try:
        response = await call_next(request)
        REQUEST_COUNT.labels(
            method=method, endpoint=endpoint, status_code=str(response.status_code)
        ).inc()
        return response
    except Exception:
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code="500").inc()
        raise
    finally:
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(
            time.time() - start_time
        )
        ACTIVE_REQUESTS.dec()


# Middleware for request logging, wraps the metrics middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Bind a request id and log every request"""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    start_time = time.time()
    logger.info(
        "Request started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )

    try:
        response = await call_next(request)
    finally:
        duration = time.time() - start_time
        logger.debug("Request timing", total_duration=f"{duration:.3f}s")

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )
    response.headers["X-Request-ID"] = request_id
    structlog.contextvars.clear_contextvars()
    return response


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def failure_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=False, error=message).to_content(),
    )


# Exception handlers
@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError):
    """Render request failures as {success: false, error}"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        detail=exc.message,
        url=str(request.url),
        method=request.method,
    )
    return failure_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Keep framework errors (404, 405) in the same response shape"""
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        url=str(request.url),
        method=request.method,
    )
    return failure_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle exceptions that escaped the route handlers"""
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        url=str(request.url),
        method=request.method,
        exc_info=True,
    )
    return failure_response(500, UnexpectedError().message)


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index():
    """Web client"""
    page = (STATIC_DIR / "index.html").read_text(encoding="utf-8")
    return page.replace("{{API_PREFIX}}", settings.api_prefix)


# Prometheus metrics endpoint
@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
