"""API middleware — owner session cookie, request logging, and error handling.

# ─── MIDDLEWARE EXECUTION ORDER ────────────────────────────────────────
#
# Starlette middleware is a stack (LIFO: last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)    # innermost
#     app.add_middleware(OwnerSessionMiddleware)
#     app.add_middleware(RequestLoggingMiddleware)   # outermost
#
#   Request flow:
#     Client → RequestLogging → OwnerSession → ErrorHandling → route
#
# OwnerSessionMiddleware sits outside ErrorHandling so that even a
# sanitized 500 carries the freshly minted ``sid`` cookie.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from ragcast.api.schemas import ErrorResponse
from ragcast.utils.errors import RagcastError
from ragcast.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Credentials are allowed because the owner id travels in a cookie;
    browsers reject ``*`` together with credentials, so pass explicit
    origins when the UI is served from another host.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Owner session
# ---------------------------------------------------------------------------


class OwnerSessionMiddleware(BaseHTTPMiddleware):
    """Attach an opaque per-browser owner id to every request.

    The id is read from the ``sid`` cookie, or minted as a UUID4 and set
    on the response (HttpOnly, SameSite=Lax, ``Secure`` in production).
    Handlers read it from ``request.state.owner_id``.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        cookie_name: str = "sid",
        max_age: int = 60 * 60 * 24 * 30,
        secure: bool = False,
    ) -> None:
        super().__init__(app)
        self._cookie_name = cookie_name
        self._max_age = max_age
        self._secure = secure

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        owner_id = request.cookies.get(self._cookie_name)
        minted = not owner_id
        if minted:
            owner_id = str(uuid.uuid4())
        request.state.owner_id = owner_id

        response = await call_next(request)
        if minted:
            response.set_cookie(
                self._cookie_name,
                owner_id,
                max_age=self._max_age,
                path="/",
                httponly=True,
                samesite="lax",
                secure=self._secure,
            )
        return response


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``RagcastError`` subclasses that escape a route into JSON 500s.

    Routes map the expected cases (not found, not ready) to 404/409
    themselves; anything reaching this layer is a capability failure such
    as an LLM or embedding error.  Details are logged server-side, and the
    client sees only the error type and message.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except RagcastError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
            )
            return JSONResponse(
                status_code=500,
                content=body.model_dump(),
            )
