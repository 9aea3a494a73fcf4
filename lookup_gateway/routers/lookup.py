"""
Lookup router — the single public, metered endpoint.

GET /lookup?key=<secret>&number=<10-digit>
  1. Rejects missing parameters (400).
  2. Hands the call to the lookup pipeline (services.gateway).
  3. Maps GatewayError → status code + {"error": ...} body.

OPTIONS /lookup → 200, empty body (CORS preflight).
Any other method → 405.

CORS is open to every origin; the same headers go on every response
from this router, errors included, so browsers can read the error body.
"""

import datetime
import logging
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from lookup_gateway.auth.errors import GatewayError, MissingParameters
from lookup_gateway.auth.rate_limit import client_ip, get_admission_limiter
from lookup_gateway.core.database import get_db_session
from lookup_gateway.schemas.lookup import ErrorResponse, LookupResponse
from lookup_gateway.services.gateway import LookupCall, process_lookup
from lookup_gateway.services.rate_limiter import AdmissionLimiter
from lookup_gateway.services.upstream import get_upstream_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Lookup"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def request_time() -> datetime.datetime:
    """The instant a request is judged at (UTC)."""
    return datetime.datetime.now(datetime.timezone.utc)


# Type aliases for cleaner signatures
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Limiter = Annotated[AdmissionLimiter, Depends(get_admission_limiter)]
Upstream = Annotated[httpx.AsyncClient, Depends(get_upstream_client)]
Now = Annotated[datetime.datetime, Depends(request_time)]


def error_response(exc: GatewayError) -> JSONResponse:
    """Render a rejection. Only the class's fixed message reaches the caller."""
    body = ErrorResponse(error=exc.message, retry_after=exc.retry_after)
    headers = dict(CORS_HEADERS)
    if exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


@router.get(
    "/lookup",
    response_model=LookupResponse,
    summary="Look up a mobile number",
    description=(
        "Authenticates the key, enforces the key's daily quota and the "
        "caller IP's hourly ceiling, then returns normalized subscriber "
        "records. Every call that resolves a key is recorded."
    ),
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def lookup(
    request: Request,
    session: DbSession,
    limiter: Limiter,
    upstream: Upstream,
    now: Now,
    key: str | None = Query(default=None, description="API key secret"),
    number: str | None = Query(default=None, examples=["9876543210"]),
) -> Response:
    if not key or not number:
        return error_response(MissingParameters())

    call = LookupCall(
        key=key,
        number=number,
        client_ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        now=now,
    )

    try:
        result = await process_lookup(
            call,
            session=session,
            limiter=limiter,
            upstream=upstream,
        )
    except GatewayError as exc:
        # str(exc) is the internal detail, logs only
        logger.info("Lookup rejected (%d): %s", exc.status_code, exc)
        return error_response(exc)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=result.model_dump(mode="json"),
        headers=CORS_HEADERS,
    )


@router.options("/lookup", include_in_schema=False)
async def lookup_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.api_route(
    "/lookup",
    methods=["POST", "PUT", "PATCH", "DELETE", "HEAD", "TRACE"],
    include_in_schema=False,
)
async def lookup_method_not_allowed() -> Response:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method not allowed", "allowed": "GET"},
        headers={**CORS_HEADERS, "Allow": "GET, OPTIONS"},
    )
