"""
Tracking Enums

All enum types used throughout the request-tracking system.
Values must match exactly with database constraints in schema.sql.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Request Enums
# ════════════════════════════════════════════════════════════════════════════


class RequestStatus(str, Enum):
    """Request lifecycle status."""

    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


# Statuses that count as finished for resolution-time statistics
TERMINAL_STATUSES = frozenset({RequestStatus.RESOLVED, RequestStatus.CLOSED})


class Priority(str, Enum):
    """Request priority, derived from the submitted severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RequestType(str, Enum):
    """Type of submitted report."""

    PHISHING_EMAIL = "phishing-email"
    SUSPICIOUS_WEBSITE = "suspicious-website"
    SOCIAL_ENGINEERING = "social-engineering"
    MALWARE = "malware"
    DATA_BREACH = "data-breach"
    IDENTITY_THEFT = "identity-theft"
    PHISHING_REPORT = "phishing-report"  # Emitted by the phishing report form
    OTHER = "other"


# ════════════════════════════════════════════════════════════════════════════
# Role Enums
# ════════════════════════════════════════════════════════════════════════════


class UserRole(str, Enum):
    """Caller role stored in user_roles."""

    USER = "user"
    IT_SUPPORT = "it-support"
    ADMIN = "admin"


IT_TEAM_ROLES = frozenset({UserRole.IT_SUPPORT, UserRole.ADMIN})


class Permission(str, Enum):
    """Capability strings granted to roles."""

    REQUEST_CREATE = "request:create"
    REQUEST_VIEW_OWN = "request:view-own"
    REQUEST_VIEW_ALL = "request:view-all"
    REQUEST_APPROVE = "request:approve"
    REQUEST_ASSIGN = "request:assign"
    REQUEST_DELETE = "request:delete"
    NOTIFICATION_SEND = "notification:send"
    USER_MANAGE = "user:manage"
    ANALYTICS_VIEW = "analytics:view"


# ════════════════════════════════════════════════════════════════════════════
# Audit Trail Enums
# ════════════════════════════════════════════════════════════════════════════


class AuditAction(str, Enum):
    """Audit log action types."""

    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
