"""
Entry Point
"""

import secrets
from contextlib import asynccontextmanager
from time import perf_counter

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastmcp import FastMCP
from fastmcp.server.auth.providers.debug import DebugTokenVerifier
from redis.asyncio import Redis
from redis.exceptions import RedisError
from ulid import ULID

from checkplease.api.cable import router as cable_router
from checkplease.api.fixity_checks import router as fixity_checks_router
from checkplease.context.fixity_checks import server as fixity_checks_server
from checkplease.core.config import settings
from checkplease.core.db import close_redis, get_records_redis
from checkplease.core.log import logger
from checkplease.schema.fixity_check import FixityCheckErrorResponse
from checkplease.schema.status import HealthCheckResponse, IndexResponse
from checkplease.worker.broker import broker as taskiq_broker

exec_id = ULID()
start_time = perf_counter()

verifier = DebugTokenVerifier(
    validate=lambda token: secrets.compare_digest(token, settings.APP_AUTH_KEY),
    client_id="mcp-client",
    scopes=["read", "write"],
)

mcp_server = FastMCP(
    "CheckPlease",
    version=settings.PROJECT_VERSION,
    auth=verifier,
)


async def _health_check(redis: Redis) -> HealthCheckResponse:
    try:
        redis_ok = bool(await redis.ping())
    except RedisError:
        logger.exception("Health check: Redis ping failed")
        redis_ok = False

    return HealthCheckResponse(
        status="ok" if redis_ok else "degraded",
        version=settings.PROJECT_VERSION,
        uptime=perf_counter() - start_time,
        exec_id=exec_id,
        redis=redis_ok,
        inline_jobs=settings.RUN_QUEUED_JOBS_INLINE,
    )


@mcp_server.resource("resource://health_check")
async def get_health() -> str:
    """Provides service status"""
    return (await _health_check(await get_records_redis())).model_dump_json()


# Mount Full MCP Contexts
mcp_server.mount(fixity_checks_server, namespace="fixity")
mcp_app = mcp_server.http_app(path="/mcp")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan shared by the API process and taskiq workers"""
    async with mcp_app.lifespan(app):
        logger.info(f"Starting up {settings.PROJECT_NAME} v{settings.PROJECT_VERSION}")
        logger.info(f"Debug mode: {settings.DEBUG}")
        logger.info(f"Exec ID: {exec_id}")
        logger.info(f"Progress policy: {settings.PROGRESS_POLICY}")

        if not taskiq_broker.is_worker_process:
            await taskiq_broker.startup()
            logger.info(f"Taskiq broker started ({'inline' if settings.RUN_QUEUED_JOBS_INLINE else 'client mode'})")

        try:
            yield
        finally:
            logger.info(f"Shutting down {settings.PROJECT_NAME}...")
            if not taskiq_broker.is_worker_process:
                await taskiq_broker.shutdown()
            await close_redis()


app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    docs_url="/docs",
    redoc_url=None,
)

app.add_middleware(
    CorrelationIdMiddleware,
    generator=lambda: str(ULID()),
    validator=None,
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status, and duration for every HTTP request."""
    t0 = perf_counter()
    response = await call_next(request)
    duration_ms = (perf_counter() - t0) * 1000
    if request.url.path != "/health":
        logger.info(
            f"{request.method} {request.url.path} "
            f"status={response.status_code} "
            f"duration={duration_ms:.1f}ms"
        )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Missing or empty params are a 400 that echoes back whatever params were sent.
    """
    error = exc.errors()[0]
    param = error["loc"][-1] if error.get("loc") else "body"
    submitted = exc.body.get("fixity_check") if isinstance(exc.body, dict) else None
    if not isinstance(submitted, dict):
        submitted = {}

    body = FixityCheckErrorResponse(
        error_message=f"param is missing or the value is empty: {param}",
        bucket_name=submitted.get("bucket_name"),
        object_path=submitted.get("object_path"),
        checksum_algorithm_name=submitted.get("checksum_algorithm_name"),
    )
    return JSONResponse(status_code=400, content=body.model_dump())


app.include_router(fixity_checks_router)
app.include_router(cable_router)
app.mount("/app", mcp_app)


@app.get(
    "/health",
    include_in_schema=False,
)
async def health(redis: Redis = Depends(get_records_redis)) -> HealthCheckResponse:  # noqa: B008
    """Health check endpoint"""
    return await _health_check(redis)


@app.get(
    "/",
    include_in_schema=False,
)
async def index() -> IndexResponse:
    return IndexResponse()
