"""
Logging Middleware - Request/Response logging

Approval links carry their capability token in the query string, so
sensitive query parameters are masked before they reach the log.
"""
import time
from typing import Callable, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from guestglow.utils.logger import get_logger

logger = get_logger(__name__)

HEALTH_PATH = "/api/v1/health"
SENSITIVE_PARAMS = {"token", "api_key", "key"}


def mask_query_params(params: Dict[str, str]) -> Dict[str, str]:
    return {
        name: ("***" if name.lower() in SENSITIVE_PARAMS else value)
        for name, value in params.items()
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with status code and duration, and expose the duration
    as the X-Process-Time header (milliseconds)
    """

    async def dispatch(self, request: Request, call_next: Callable):
        # Health probes are polled constantly
        if request.url.path.startswith(HEALTH_PATH):
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        logger.info(
            f"→ {method} {path}",
            extra={
                "method": method,
                "path": path,
                "query_params": mask_query_params(dict(request.query_params)),
                "client": client_host,
                "user_agent": request.headers.get("user-agent", "unknown")
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                f"✗ {method} {path} ERROR ({duration_ms}ms): {str(e)}",
                extra={"method": method, "path": path, "duration_ms": duration_ms},
                exc_info=True
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            f"← {method} {path} {response.status_code} ({duration_ms}ms)",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms
            }
        )

        response.headers["X-Process-Time"] = str(duration_ms)
        return response
