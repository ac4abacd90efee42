"""
Security middleware for the login popup endpoints:
- Security headers (CSP, HSTS, X-Frame-Options, etc.)
- Request/response audit logging
"""

from datetime import datetime

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    The popup pages carry inline scripts, so script-src allows
    'unsafe-inline' and nothing else beyond 'self'.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        csp = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "connect-src 'self'; "
            "frame-ancestors 'none'; "
            "base-uri 'self'; "
            "form-action 'self';"
        )
        response.headers["Content-Security-Policy"] = csp
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"

        return response


class AuditLoggingMiddleware(BaseHTTPMiddleware):
    """
    Audit log of every request and its status code.
    Query strings are left out since they carry auth codes.
    """

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        user_agent = request.headers.get("user-agent", "unknown")

        logger.info(
            f"Request: {request.method} {request.url.path} | "
            f"IP: {client_ip} | UA: {user_agent} | Time: {datetime.utcnow().isoformat()}"
        )

        response = await call_next(request)

        logger.info(f"Response: {response.status_code} for {request.method} {request.url.path}")
        return response
