"""
Notification Model

Payload contract handed to the notifier when a report is created.
"""

from typing import Any
from typing import Dict

from pydantic import BaseModel
from pydantic import Field

# formData keys carried into the notification card
FORM_DATA_SUMMARY_KEYS = ("incidentType", "subject", "description", "dateOccurred")


class NotificationPayload(BaseModel):
    """New-report notification input."""

    request_id: str
    severity: str
    request_type: str
    reason: str
    submitter_info: Dict[str, Any] = Field(default_factory=dict)
    form_data_summary: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def summarize_form_data(cls, form_data: Dict[str, Any]) -> Dict[str, Any]:
        """Keep only the formData fields the card renders."""
        return {key: form_data[key] for key in FORM_DATA_SUMMARY_KEYS if form_data.get(key) is not None}
