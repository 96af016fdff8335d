"""Health check endpoint for monitoring application status."""

from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from loguru import logger

from secportal_api.schemas.schemas import HealthResponse

ROUTER_HEALTH = APIRouter(tags=["Health"])


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "OK",
                        "message": "Security Portal API is running!",
                        "timestamp": "2026-01-05T12:00:00.000000+00:00",
                        "version": "1.0.0",
                    }
                }
            },
        }
    },
)
async def health_check(request: Request) -> HealthResponse:
    """
    Basic health check endpoint.

    Lightweight: does not touch the database or the notification webhook.
    """
    settings = request.app.state.settings

    logger.debug("Health check requested", status="OK")

    return HealthResponse(
        status="OK",
        message=f"{settings.service_name} is running!",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )
