"""
Audit Log Repository

Repository for request audit log operations (append-only table).
"""

import json
from typing import Any
from typing import Dict
from typing import Optional

from secportal_api.tracking.db.pool import DomainDBPool
from secportal_api.tracking.enums import AuditAction


class AuditLogRepository:
    """Audit log repository (append-only)."""

    def __init__(self, pool: DomainDBPool):
        self.pool = pool

    async def create(
        self,
        request_id: str,
        user_id: str,
        action: AuditAction,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Create an audit log entry."""
        await self.pool.execute(
            """
            INSERT INTO request_audit_log (request_id, user_id, action_type, old_values, new_values, created_at)
            VALUES ($1, $2, $3, $4::jsonb, $5::jsonb, NOW())
            """,
            request_id,
            user_id,
            action.value,
            json.dumps(old_values, default=str) if old_values else None,
            json.dumps(new_values, default=str) if new_values else None,
        )
