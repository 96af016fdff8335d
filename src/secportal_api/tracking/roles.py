"""
Role Resolver

Maps a caller email to a role and permission set using the user_roles cache.
Unknown callers resolve to the basic user role; parsing problems fall back to
the role's default permissions instead of failing.
"""

import json
import time
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from loguru import logger

from secportal_api.errors import PersistenceError
from secportal_api.errors import RoleResolutionError
from secportal_api.errors import ValidationError
from secportal_api.tracking.enums import IT_TEAM_ROLES
from secportal_api.tracking.enums import Permission
from secportal_api.tracking.enums import UserRole
from secportal_api.tracking.models import RoleRecord
from secportal_api.tracking.models import UserIdentity
from secportal_api.tracking.store import RoleStore

_USER_PERMISSIONS = (
    Permission.REQUEST_CREATE,
    Permission.REQUEST_VIEW_OWN,
)
_IT_SUPPORT_PERMISSIONS = _USER_PERMISSIONS + (
    Permission.REQUEST_VIEW_ALL,
    Permission.REQUEST_APPROVE,
    Permission.REQUEST_ASSIGN,
    Permission.NOTIFICATION_SEND,
    Permission.ANALYTICS_VIEW,
)
_ADMIN_PERMISSIONS = _IT_SUPPORT_PERMISSIONS + (
    Permission.REQUEST_DELETE,
    Permission.USER_MANAGE,
)

_DEFAULT_PERMISSIONS: Dict[UserRole, tuple] = {
    UserRole.USER: _USER_PERMISSIONS,
    UserRole.IT_SUPPORT: _IT_SUPPORT_PERMISSIONS,
    UserRole.ADMIN: _ADMIN_PERMISSIONS,
}

UNKNOWN_USER_NAME = "Unknown User"

# Role names returned alongside the resolved user
ROLE_NAMES = {
    "USER": UserRole.USER.value,
    "IT_SUPPORT": UserRole.IT_SUPPORT.value,
    "ADMIN": UserRole.ADMIN.value,
}


def default_permissions(role: UserRole) -> List[str]:
    """Fixed permission set for a role (admin ⊃ it-support ⊃ user)."""
    return [permission.value for permission in _DEFAULT_PERMISSIONS.get(role, _USER_PERMISSIONS)]


def normalize_email(email: Optional[str]) -> str:
    """Lower-case and strip an email; blank input is a client error."""
    if email is None or not email.strip():
        raise ValidationError("Email is required for user role determination", fields=["email"])
    return email.strip().lower()


def parse_role(value: Any) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        logger.warning("Unknown role in user_roles, treating as user", stored_role=value)
        return UserRole.USER


def parse_permissions(raw: Any, role: UserRole) -> List[str]:
    """
    Read stored permissions.

    Accepts a list or a JSON-encoded list of strings. Anything else falls back
    to ``default_permissions(role)``.
    """
    value = raw
    if isinstance(raw, (str, bytes)):
        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.warning("Could not parse stored permissions, using role defaults", role=role.value, error=str(e))
            return default_permissions(role)

    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)

    logger.warning(
        "Unexpected permissions format, using role defaults",
        role=role.value,
        permissions_type=type(value).__name__,
    )
    return default_permissions(role)


class RoleResolver:
    """Resolve caller identity from the role store."""

    def __init__(self, role_store: RoleStore):
        self.role_store = role_store

    async def resolve(self, email: Optional[str]) -> UserIdentity:
        """
        Resolve the role and permissions for an email.

        Raises:
            ValidationError: email missing or blank
            RoleResolutionError: the role store failed (not the same as "not found")
        """
        lookup_email = normalize_email(email)

        try:
            record = await self.role_store.find_role(lookup_email)
        except PersistenceError as e:
            raise RoleResolutionError(f"Role lookup failed for {lookup_email}: {e.message}") from e

        if record is None:
            logger.info("User not found in role cache, assigning default role", email=lookup_email)
            return self._identity(email.strip(), UserRole.USER, default_permissions(UserRole.USER))

        role = parse_role(record.role)
        permissions = parse_permissions(record.permissions, role)
        logger.debug("Resolved user role", email=lookup_email, role=role.value)
        return self._identity(email.strip(), role, permissions, record)

    @staticmethod
    def _identity(
        email: str,
        role: UserRole,
        permissions: List[str],
        record: Optional[RoleRecord] = None,
    ) -> UserIdentity:
        user_id = (record.user_id if record else None) or f"user-{time.time_ns() // 1_000_000}"
        name = (record.name if record else None) or UNKNOWN_USER_NAME
        return UserIdentity(
            user_id=user_id,
            email=email,
            name=name,
            role=role,
            permissions=permissions,
            is_it_team=role in IT_TEAM_ROLES,
            is_admin=role == UserRole.ADMIN,
        )
