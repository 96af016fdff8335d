"""
Tracking Models Module

All Pydantic models for the request-tracking system:
- Request/comment entities and the normalized create row
- Role records and resolved identities
- Statistics rollup
- Notification payload
"""

from secportal_api.tracking.models.notification import NotificationPayload
from secportal_api.tracking.models.request import (
    Comment,
    NormalizedRequest,
    SecurityRequest,
    StatusUpdate,
    StatusUpdateResult,
)
from secportal_api.tracking.models.role import RoleRecord, UserIdentity
from secportal_api.tracking.models.statistics import RequestStatistics

__all__ = [
    # Entity models
    "Comment",
    "SecurityRequest",
    "NormalizedRequest",
    "StatusUpdate",
    "StatusUpdateResult",
    # Roles
    "RoleRecord",
    "UserIdentity",
    # Statistics
    "RequestStatistics",
    # Notification
    "NotificationPayload",
]
