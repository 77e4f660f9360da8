# SPDX-License-Identifier: Apache-2.0
"""Rate limiting, sanitization, error envelope handlers, security middleware."""
from __future__ import annotations

import hashlib
import logging
import re
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from researchhub.config import settings
from researchhub.core.exceptions import ResearchHubError

_limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

_logger = logging.getLogger("researchhub")


def get_limiter() -> Limiter:
    return _limiter


def rate_limit(s: str | None = None):
    return _limiter.limit(s or settings.default_rate_limit)


def error_response(status_code: int, message: str, kind: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "kind": kind},
    )


def add_security_middleware(app: FastAPI) -> None:
    """Register exception handlers, security headers, and CORS. No business logic."""
    @app.exception_handler(ResearchHubError)
    async def researchhub_error_handler(request: Request, exc: ResearchHubError):
        if exc.status_code >= 500:
            _logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc)
        else:
            _logger.info("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc)
        return error_response(exc.status_code, str(exc) or exc.kind, exc.kind)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return error_response(400, f"{location}: {message}" if location else message, "validation_error")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        kind = "not_found" if exc.status_code == 404 else "http_error"
        return error_response(exc.status_code, str(exc.detail), kind)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return error_response(429, f"Rate limit exceeded: {exc.detail}", "rate_limited")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid.uuid4())
        _logger.error("Unhandled exception %s: %s", error_id, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error", "kind": "internal_error", "error_id": error_id},
        )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        if settings.production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000"
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def sanitize_text(value: str, max_len: int = 2000) -> str:
    """Strip HTML/script tags and enforce max length."""
    if not value:
        return ""
    value = re.sub(r"<[^>]+>", "", value)
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    return value.strip()[:max_len]


def sha3_256_hex(*parts: bytes | str) -> str:
    """SHA3-256 hash of concatenated parts, hex-encoded."""
    h = hashlib.sha3_256()
    for p in parts:
        h.update(p.encode("utf-8") if isinstance(p, str) else p)
    return h.hexdigest()
