from fastapi import APIRouter
from fastapi import Depends
from loguru import logger

from secportal_api.dependencies import get_notifier
from secportal_api.schemas.schemas import MessageResponse
from secportal_api.tracking.notifier import WebhookNotifier
from secportal_api.tracking.notifier import sample_payload

ROUTER_NOTIFICATIONS = APIRouter(tags=["Notifications"])


@ROUTER_NOTIFICATIONS.post("/test-teams")
async def send_test_notification(notifier: WebhookNotifier = Depends(get_notifier)) -> MessageResponse:
    """Send a sample new-report notification. Delivery failures are only logged."""
    payload = sample_payload()
    delivered = await notifier.notify(payload)
    logger.info("Test notification requested", report_id=payload.request_id, delivered=delivered)
    return MessageResponse(message="Test notification sent, check logs")
