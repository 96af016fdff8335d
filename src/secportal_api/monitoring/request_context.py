"""Request context middleware for logging."""
import json
import time
import uuid
from typing import Any
from typing import Callable
from typing import Optional

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from secportal_api.monitoring.logger import log_request_info

# Maximum size for request body logging
MAX_BODY_LOG_SIZE = 10000  # 10KB limit

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture and log request context information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add to logging.

        Captures:
        - Request ID (from header or generated)
        - Client IP (forwarded header or direct)
        - Request path and method
        - Request body (for POST/PUT/PATCH), kept on request.state for the error handlers
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        client_ip = self._get_client_ip(request)
        request_path = f"{request.method} {request.url.path}"

        # Store in request state early so error handlers can access it
        request.state.request_body = None
        if request.method in ("POST", "PUT", "PATCH"):
            request.state.request_body = await self._get_request_body(request)

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            request_path=request_path,
        ):
            log_request_info(request)

            start_time = time.time()
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                "Request completed",
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
                user_agent=request.headers.get("User-Agent", "unknown"),
            )

            return response

    async def _get_request_body(self, request: Request) -> Optional[Any]:
        """
        Read the request body for logging.

        Returns:
            Parsed JSON body, a truncated preview, or None if empty
        """
        body = await request.body()
        if not body:
            return None

        if len(body) > MAX_BODY_LOG_SIZE:
            return {"_truncated": True, "_size": len(body), "_preview": body[:1000].decode("utf-8", errors="replace")}

        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return {"_error": "Failed to parse request body", "_error_detail": str(e)}

    def _get_client_ip(self, request: Request) -> str:
        """
        Get real client IP address.

        X-Forwarded-For can contain multiple IPs; the first one is the client.
        """
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

