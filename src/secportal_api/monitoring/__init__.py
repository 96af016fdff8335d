"""Monitoring package for logging, request context, and observability."""

from secportal_api.monitoring.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
