"""
CSRF Protection Middleware

Validates Origin header for state-changing requests to prevent CSRF attacks.
"""

import logging
from typing import Callable
from urllib.parse import urlparse

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# State-changing HTTP methods that need CSRF protection
STATE_CHANGING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class CSRFProtectionMiddleware(BaseHTTPMiddleware):
    """
    Middleware to validate Origin header for state-changing requests.

    Requests that carry neither Origin nor Referer (curl, server-to-server)
    are let through.
    """

    def __init__(self, app, allowed_origins: list[str]) -> None:
        super().__init__(app)
        self.allowed_origins = {origin.rstrip("/") for origin in allowed_origins}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method not in STATE_CHANGING_METHODS:
            return await call_next(request)

        origin = request.headers.get("Origin")
        referer = request.headers.get("Referer")

        # Fall back to the Referer's origin when Origin is missing
        if not origin and referer:
            parsed = urlparse(referer)
            if parsed.scheme and parsed.netloc:
                origin = f"{parsed.scheme}://{parsed.netloc}"

        if origin and origin.rstrip("/") not in self.allowed_origins:
            logger.warning(f"[CSRF] Rejected request from origin: {origin}")
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"error": "Origin not allowed"},
            )

        return await call_next(request)
