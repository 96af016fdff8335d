"""
Role Repository

Read-only access to the user_roles cache.
"""

from typing import Optional

from secportal_api.tracking.db.pool import DomainDBPool
from secportal_api.tracking.models import RoleRecord
from secportal_api.tracking.store import RoleStore


class RoleRepository(RoleStore):
    """Role repository (read-only; rows are seeded and administered outside the API)."""

    def __init__(self, pool: DomainDBPool):
        self.pool = pool

    async def find_role(self, email: str) -> Optional[RoleRecord]:
        row = await self.pool.fetchrow(
            """
            SELECT user_id, email, user_name, user_role, permissions
            FROM user_roles
            WHERE lower(email) = $1
            """,
            email.lower(),
        )
        if row is None:
            return None

        return RoleRecord(
            user_id=row["user_id"],
            email=row["email"],
            name=row["user_name"],
            role=row["user_role"],
            permissions=row["permissions"],
        )
