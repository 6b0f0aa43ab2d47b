"""REST front end: FastAPI app exposing snapshots under /api/v1."""

import time
from datetime import datetime, timezone

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sysinfo_server.auth import BasicAuthMiddleware
from sysinfo_server.config import Settings
from sysinfo_server.encoding import error, ok
from sysinfo_server.errors import SysinfoError
from sysinfo_server.logs import get_logger
from sysinfo_server.monitor import SnapshotService
from sysinfo_server.ratelimit import RateLimiter, RateLimitMiddleware

API_PREFIX = "/api/v1"
HEALTH_PATH = f"{API_PREFIX}/health"

logger = get_logger("api")


def create_app(
    service: SnapshotService,
    settings: Settings,
    limiter: RateLimiter | None = None,
) -> FastAPI:
    """
    Build the REST application around a shared SnapshotService.

    Middleware order, outermost first: access log, rate limit, Basic auth.
    """
    app = FastAPI(title="sysinfo-server", docs_url=None, redoc_url=None, openapi_url=None)

    # Last added runs first.
    app.add_middleware(
        BasicAuthMiddleware,
        expected_credentials=settings.expected_credentials,
        open_paths=frozenset({HEALTH_PATH}),
    )
    app.add_middleware(RateLimitMiddleware, limiter=limiter or RateLimiter(settings.rate_limit))

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    @app.exception_handler(SysinfoError)
    async def sysinfo_error(request: Request, exc: SysinfoError):
        logger.error("request_failed", path=request.url.path, error=str(exc))
        return JSONResponse(error(exc.status_code, str(exc)), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(error(422, "Invalid request parameters"), status_code=422)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("request_crashed", path=request.url.path)
        return JSONResponse(error(500, "Internal server error"), status_code=500)

    @app.get(HEALTH_PATH)
    def health():
        return ok({"status": "healthy", "timestamp": datetime.now(timezone.utc)})

    @app.get(f"{API_PREFIX}/system")
    def system_info():
        return ok(service.capture())

    @app.get(f"{API_PREFIX}/system/overview")
    def system_overview():
        return ok(service.capture().overview)

    @app.get(f"{API_PREFIX}/system/cpu")
    def cpu_info():
        return ok(service.capture().cpu)

    @app.get(f"{API_PREFIX}/system/memory")
    def memory_info():
        return ok(service.capture().memory)

    @app.get(f"{API_PREFIX}/system/processes")
    def process_info(limit: int | None = Query(default=None)):
        return ok(service.capture(limit=limit).processes)

    return app
