"""
Request logging middleware for the S3 Image Server.
Logs client and user agent information for incoming requests.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from loguru import logger

from .rate_limiter import client_identifier


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests and error responses."""

    def __init__(self, app, enabled: bool = True, trust_proxy: bool = True) -> None:
        super().__init__(app)
        self.enabled = enabled
        self.trust_proxy = trust_proxy

    async def dispatch(self, request: Request, call_next):
        user_agent = request.headers.get("user-agent", "unknown")
        client_ip = client_identifier(request, self.trust_proxy)
        method = request.method
        path = request.url.path

        if self.enabled:
            logger.info(
                f"Request: {method} {path} | "
                f"Client: {client_ip} | "
                f"User-Agent: {user_agent}"
            )

        response = await call_next(request)

        if 400 <= response.status_code < 600:
            logger.warning(
                f"Response: {response.status_code} {method} {path} | "
                f"Client: {client_ip} | "
                f"User-Agent: {user_agent}"
            )

        return response
