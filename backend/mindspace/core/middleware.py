"""
HTTP middleware.

- Per-client sliding-window rate limit on the API prefix
- Request body size cap
- Security response headers
- Request logging
"""

import time
from typing import Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import ORJSONResponse
from loguru import logger

from mindspace.core.config import settings
from mindspace.core.rate_limiter import get_rate_limiter

CallNext = Callable[[Request], Awaitable[Response]]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def client_key(request: Request) -> str:
    """Identify the caller for rate limiting."""
    return request.client.host if request.client else "unknown"


async def rate_limit_middleware(request: Request, call_next: CallNext) -> Response:
    if not request.url.path.startswith(f"{settings.api_prefix}/"):
        return await call_next(request)

    limiter = get_rate_limiter()
    key = client_key(request)
    allowed, retry_after = await limiter.hit(key)
    if not allowed:
        logger.warning(f"Rate limit exceeded for {key} on {request.url.path}")
        return ORJSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": RATE_LIMIT_MESSAGE},
            headers={"Retry-After": str(retry_after)},
        )

    return await call_next(request)


def _too_large() -> Response:
    return ORJSONResponse(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        content={"error": "Request entity too large"},
    )


async def body_size_middleware(request: Request, call_next: CallNext) -> Response:
    limit = settings.max_body_size_bytes
    content_length = request.headers.get("content-length")
    if content_length is not None:
        try:
            size = int(content_length)
        except ValueError:
            return ORJSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid Content-Length header"},
            )
        if size > limit:
            return _too_large()
        return await call_next(request)

    # Chunked uploads carry no length; count bytes as they arrive
    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            logger.warning(f"Rejected {received}+ byte body on {request.url.path}")
            return _too_large()
        chunks.append(chunk)

    # Cached body is replayed to the route by Starlette
    request._body = b"".join(chunks)
    return await call_next(request)


async def security_headers_middleware(request: Request, call_next: CallNext) -> Response:
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


async def log_requests_middleware(request: Request, call_next: CallNext) -> Response:
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({elapsed_ms:.1f} ms)"
    )
    return response


def register_middleware(app: FastAPI) -> None:
    """
    Attach middleware in order.

    The last registered middleware runs first, so security headers wrap
    every response, including rate-limit and body-size rejections.
    """
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(body_size_middleware)
    app.middleware("http")(log_requests_middleware)
    app.middleware("http")(security_headers_middleware)
