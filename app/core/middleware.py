"""
HTTP middleware: request correlation and access logging.
"""
import logging
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.core.config import settings
from app.core.logging import employee_id_var, request_id_var
from app.services.auth import decode_access_token

logger = logging.getLogger("app.access")


def _bearer_employee_id(request: Request) -> Optional[int]:
    """Employee id claim of a valid bearer token, for log context only."""
    authorization = request.headers.get("authorization") or ""
    if not authorization.startswith("Bearer "):
        return None
    payload = decode_access_token(authorization[len("Bearer "):])
    if not payload or "error" in payload:
        return None
    return payload.get("employee_id")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Reads or generates X-Request-ID and exposes it, with the caller's employee id, to the logging context."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header) or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        employee_token = employee_id_var.set(_bearer_employee_id(request))
        try:
            response = await call_next(request)
        finally:
            employee_id_var.reset(employee_token)
            request_id_var.reset(token)
        response.headers[settings.request_id_header] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time"] = f"{elapsed_ms:.1f}ms"
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"duration_ms": round(elapsed_ms, 1)},
        )
        return response
