"""
New-report notifications.

Builds an Adaptive Card message (plus flat fields for flow automation) and posts
it to the configured webhook. Delivery is best-effort: a missing webhook URL is a
no-op and delivery failures are logged, never raised to the caller.
"""

import json
import time
from typing import Any
from typing import Dict
from typing import Optional

import httpx
from loguru import logger

from secportal_api.errors import NotificationError
from secportal_api.tracking.models import NotificationPayload

SEVERITY_EMOJIS = {
    "low": "🟢",
    "medium": "🟡",
    "high": "🔴",
    "critical": "🚨",
}

INCIDENT_TYPE_EMOJIS = {
    "phishing-email": "📧",
    "suspicious-website": "🌐",
    "social-engineering": "👥",
    "malware": "🦠",
    "data-breach": "🔓",
    "identity-theft": "🆔",
    "other": "❓",
}

DEFAULT_INCIDENT_EMOJI = "🛡️"
DESCRIPTION_PREVIEW_LENGTH = 200


def build_message(payload: NotificationPayload, dashboard_url: str) -> Dict[str, Any]:
    """
    Build the webhook body for a new report.

    The body carries an Adaptive Card attachment for the channel and flat
    ``reportId``/``severity``/``subject``/``reporterName``/``reporterEmail``
    keys for the automation flow that receives it.
    """
    summary = payload.form_data_summary
    submitter = payload.submitter_info
    severity = payload.severity
    severity_emoji = SEVERITY_EMOJIS.get(severity, "")

    incident_type = summary.get("incidentType") or payload.request_type
    incident_emoji = INCIDENT_TYPE_EMOJIS.get(summary.get("incidentType"), DEFAULT_INCIDENT_EMOJI)
    subject = summary.get("subject") or payload.reason
    reporter_name = submitter.get("name") or "Unknown"
    reporter_email = submitter.get("email") or "N/A"
    description = str(summary.get("description") or "No description provided")[:DESCRIPTION_PREVIEW_LENGTH]

    card = {
        "type": "AdaptiveCard",
        "version": "1.4",
        "body": [
            {
                "type": "TextBlock",
                "text": f"{severity_emoji} New Security Incident Report".strip(),
                "weight": "Bolder",
                "size": "Large",
            },
            {
                "type": "TextBlock",
                "text": f"Report ID: {payload.request_id}",
                "weight": "Bolder",
            },
            {
                "type": "FactSet",
                "facts": [
                    {"title": "Reporter", "value": f"{reporter_name} ({reporter_email})"},
                    {"title": "Department", "value": submitter.get("department") or "Not specified"},
                    {"title": "Incident Type", "value": f"{incident_emoji} {incident_type.replace('-', ' ')}"},
                    {"title": "Severity", "value": f"{severity_emoji} {severity.upper()}".strip()},
                    {"title": "Subject", "value": subject},
                    {"title": "Date Occurred", "value": summary.get("dateOccurred") or "Not specified"},
                ],
            },
            {
                "type": "TextBlock",
                "text": "**Description:**",
                "weight": "Bolder",
            },
            {
                "type": "TextBlock",
                "text": description,
                "wrap": True,
            },
        ],
        "actions": [
            {
                "type": "Action.OpenUrl",
                "title": "View Dashboard",
                "url": dashboard_url,
            }
        ],
    }

    return {
        "attachments": [
            {
                "contentType": "application/vnd.microsoft.card.adaptive",
                "content": card,
            }
        ],
        "reportId": payload.request_id,
        "severity": severity,
        "subject": subject,
        "reporterName": reporter_name,
        "reporterEmail": reporter_email,
    }


def sample_payload() -> NotificationPayload:
    """Payload used by the test-notification endpoint."""
    return NotificationPayload(
        request_id=f"TEST-{time.time_ns() // 1_000_000}",
        severity="high",
        request_type="phishing-email",
        reason="Testing Teams integration",
        submitter_info={"name": "Test User", "email": "test@test.com", "department": "IT"},
        form_data_summary={
            "subject": "Test notification from the portal API",
            "description": "This is a test notification",
            "incidentType": "phishing-email",
        },
    )


class WebhookNotifier:
    """Posts new-report notifications to an incoming-webhook URL."""

    def __init__(
        self,
        webhook_url: Optional[str],
        dashboard_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            webhook_url: Destination URL; None or empty disables notifications
            dashboard_url: Link rendered in the card's "View Dashboard" action
            timeout: Total request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.webhook_url = webhook_url
        self.dashboard_url = dashboard_url
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def notify(self, payload: NotificationPayload) -> bool:
        """
        Send a notification. Never raises.

        Returns:
            True if the webhook accepted the message, False if skipped or failed
        """
        if not self.enabled:
            logger.debug("Notification webhook URL not configured, skipping notification", report_id=payload.request_id)
            return False

        message = build_message(payload, self.dashboard_url)
        logger.info(
            "Sending report notification",
            report_id=payload.request_id,
            payload_bytes=len(json.dumps(message)),
        )

        try:
            status_code = await self._post(message)
        except NotificationError as e:
            logger.error("Failed to send report notification", report_id=payload.request_id, error=e.message)
            return False

        logger.info("Report notification sent", report_id=payload.request_id, status_code=status_code)
        return True

    async def _post(self, message: Dict[str, Any]) -> int:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.webhook_url, json=message)
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook request failed: {type(e).__name__}: {e}") from e

        if response.is_error:
            raise NotificationError(f"Webhook returned {response.status_code}: {response.text[:500]}")
        return response.status_code
