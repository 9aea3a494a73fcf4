"""
FastAPI application entrypoint.

Lifespan:
  • On startup: verify DB and Redis connectivity.
  • On shutdown: close Redis and dispose the engine cleanly.

Routers:
  • /lookup — metered public lookup
  • /admin  — key management behind an admin session
  • /health — shallow liveness probe
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from lookup_gateway.core.config import settings
from lookup_gateway.core.database import engine
from lookup_gateway.core.redis import redis_client
from lookup_gateway.routers.admin import router as admin_router
from lookup_gateway.routers.lookup import router as lookup_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
# httpx logs full request URLs at INFO, credential included
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified ✓")
    except Exception:
        logger.warning(
            "Could not reach the database on startup. "
            "The app will start, but lookups will fail until the DB is available."
        )

    try:
        await redis_client.ping()
        logger.info("Redis connection verified ✓")
    except Exception:
        logger.warning(
            "Could not reach Redis on startup. "
            "Rate limiting and admin sessions will fail until it is available."
        )

    yield  # ← application runs here

    await redis_client.aclose()
    await engine.dispose()
    logger.info("Database engine and Redis client closed ✓")


# ── App ─────────────────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description=(
        "Metered phone-number lookup gateway — API-key auth, "
        "daily quotas, per-IP rate limits, usage auditing."
    ),
    lifespan=lifespan,
)

app.include_router(lookup_router)
app.include_router(admin_router, prefix="/admin")


@app.exception_handler(Exception)
async def unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Last line of defence — nothing internal reaches the caller."""
    logger.error("Unhandled exception", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# ── Health check ────────────────────────────────────────────
@app.get(
    "/health",
    tags=["System"],
    summary="Liveness probe",
)
async def health_check() -> dict[str, str]:
    """Shallow health check — confirms the process is alive."""
    return {"status": "healthy"}
