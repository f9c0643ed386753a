"""
FastAPI application entry point for the challenge service.

Wires logging, optional Sentry, CORS, per-request logging, error
handlers, health probes and the /v1 routers.
"""
import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.database import check_db_connection
from core.logging import setup_logging
from routers import challenges, leaderboard, notifications, quota, submissions, xp

setup_logging()
logger = logging.getLogger(__name__)

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8081",  # Expo dev server
]


def _scrub_event(event, hint):
    """Drop credentials from events before they leave the process."""
    headers = event.get("request", {}).get("headers")
    if isinstance(headers, dict):
        for name in ("authorization", "Authorization", "cookie", "Cookie"):
            headers.pop(name, None)
    return event


def _init_sentry() -> None:
    if not settings.SENTRY_DSN:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[FastApiIntegration(transaction_style="endpoint"), SqlalchemyIntegration()],
            send_default_pii=False,
            before_send=_scrub_event,
        )
        logger.info(f"Sentry initialized for environment: {settings.ENVIRONMENT}")
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")


def _cors_origins():
    if settings.DEBUG:
        return ["*"]
    if settings.CORS_ORIGINS:
        return [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
    return DEV_ORIGINS


_init_sentry()

app = FastAPI(
    title="FindPlayer Challenge API",
    description="Coach challenges, athlete video submissions, reviews and XP",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One log line per request with status, timing and a request id."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    started = time.perf_counter()
    context = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
    }

    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            f"{request.method} {request.url.path} failed",
            exc_info=True,
            extra={"extra_fields": context},
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={"extra_fields": {**context, "status_code": response.status_code, "duration_ms": elapsed_ms}},
    )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(elapsed_ms)
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are client errors (400), like domain validation."""
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": errors})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={"extra_fields": {"method": request.method, "path": request.url.path}},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
async def health():
    """
    Readiness probe.

    Returns:
        - 200: database reachable
        - 503: database unavailable
    """
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "timestamp": time.time()}


@app.get("/ping")
async def ping():
    """Liveness probe. No dependencies checked."""
    return {"pong": True}


for module in (challenges, submissions, quota, xp, notifications, leaderboard):
    app.include_router(module.router)
