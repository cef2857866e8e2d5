import time
import traceback
import uuid
from contextlib import asynccontextmanager

import redis
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from fastapi_cache.backends.redis import RedisBackend
from fastapi_csrf_protect import CsrfProtect
from fastapi_csrf_protect.exceptions import CsrfProtectError
from pydantic_settings import BaseSettings
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from . import __version__
from . import database
from .config import settings
from .limiter import limiter
from .logging_setup import logger, path_ctx, method_ctx, request_id_ctx, clear_request_context
from .routers import router, admin, leadership, survey_progress
from .services import SurveyService


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # HSTS - 1 year, includes subdomains
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        csp = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            f"connect-src 'self' {' '.join(settings.CORS_ORIGINS)};"
        )
        response.headers["Content-Security-Policy"] = csp
        return response


class CsrfSettings(BaseSettings):
    csrf_secret_key: str = settings.CSRF_SECRET_KEY
    csrf_cookie_samesite: str = "lax"
    csrf_cookie_secure: bool = settings.ENV != "development"
    csrf_cookie_httponly: bool = False  # SPA reads it back into the header


@CsrfProtect.load_config
def get_csrf_config():
    return CsrfSettings()


def init_cache() -> None:
    """Use Redis for the response cache when reachable, memory otherwise."""
    if settings.REDIS_ENABLED:
        try:
            redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
        except (redis.RedisError, ValueError) as e:
            logger.info("cache_redis_unreachable", redis_url=settings.REDIS_URL, error=str(e))
        else:
            import redis.asyncio as aioredis
            redis_instance = aioredis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
            FastAPICache.init(RedisBackend(redis_instance), prefix="fastapi-cache")
            logger.info("cache_initialized", backend="redis")
            return

    FastAPICache.init(InMemoryBackend(), prefix="fastapi-cache")
    logger.info("cache_initialized", backend="memory", redis_enabled=settings.REDIS_ENABLED)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Production schemas are managed outside the app
    if settings.ENV == "development":
        database.Base.metadata.create_all(bind=database.engine)

    # Fail at startup rather than on the first submission
    catalog = SurveyService.get_catalog()
    logger.info(
        "catalog_loaded",
        version=catalog.version,
        questions=len(catalog.questions),
        ministries=len(catalog.ministries)
    )

    init_cache()
    yield


app = FastAPI(
    title="MinistryPath API",
    description="Volunteer placement backend: survey progress, gift and personality scoring, ministry matching and leadership dashboards.",
    version=__version__,
    lifespan=lifespan
)
app.state.limiter = limiter


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """
    Middleware to set request context for logging and catch/log exceptions.
    """
    clear_request_context()
    path_ctx.set(request.url.path)
    method_ctx.set(request.method)

    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request_id_ctx.set(request_id)
    structlog.contextvars.bind_contextvars(request_id=request_id)

    # user_id and user_email are bound by the auth dependency
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "unhandled_exception",
            exception=traceback.format_exc(),
            error=str(e),
            duration=time.time() - start_time,
            status_code=500
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "An unexpected server error occurred. Our team has been notified.",
                "request_id": request_id
            },
            headers={"X-Request-ID": request_id}
        )

    response.headers["X-Request-ID"] = request_id
    logger.info(
        "request_completed",
        status_code=response.status_code,
        duration=time.time() - start_time
    )
    return response


@app.exception_handler(CsrfProtectError)
async def csrf_protect_exception_handler(request: Request, exc: CsrfProtectError):
    """
    Handle CSRF violations by returning 403 Forbidden.
    """
    logger.warning(
        "csrf_violation",
        client_ip=request.client.host if request.client else "unknown",
        path=request.url.path,
        error=exc.message
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": "CSRF validation failed. Please refresh and try again."}
    )


async def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Log rate limit breaches before returning the 429 response.
    """
    logger.warning(
        "rate_limit_exceeded",
        client_ip=request.client.host if request.client else "unknown",
        path=request.url.path,
        limit=str(exc.detail)
    )
    return _rate_limit_exceeded_handler(request, exc)

app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last so it wraps everything
app.add_middleware(SecurityHeadersMiddleware)

app.include_router(router, prefix="/api/v1")
app.include_router(survey_progress.router, prefix="/api/v1")
app.include_router(leadership.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/health")
@app.get("/api/v1/health")
async def health():
    """
    Health check endpoint that verifies server and database status.
    Returns 503 if the database is unavailable so load balancers take us out of rotation.
    """
    status = {
        "status": "ok",
        "version": __version__,
        "database": "unknown",
        "timestamp": time.time()
    }

    try:
        with database.SessionLocal() as db:
            db_start = time.time()
            db.execute(text("SELECT 1"))
            status["database"] = "connected"
            status["database_latency_ms"] = round((time.time() - db_start) * 1000, 2)
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        status["status"] = "degraded"
        status["database"] = "disconnected"
        status["database_latency_ms"] = None
        status["error"] = str(e)

    if status["database"] != "connected":
        return JSONResponse(status_code=503, content=status)

    return status
