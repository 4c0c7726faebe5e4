"""Per-IP rate limiting on top of slowapi."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from learning_platform import config

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."
API_RATE_LIMIT = f"{config.RATE_LIMIT_MAX_REQUESTS}/{config.RATE_LIMIT_WINDOW_SECONDS} seconds"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[API_RATE_LIMIT],
    headers_enabled=True,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # SlowAPIMiddleware calls this synchronously, so it must stay a plain def
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
    response = JSONResponse(status_code=429, content={"error": RATE_LIMIT_MESSAGE})
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


def install_rate_limiting(app: FastAPI, app_limiter: Limiter = limiter) -> None:
    """Apply ``app_limiter``'s default limits to every route of ``app``."""
    app.state.limiter = app_limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
