"""
Request Repository

asyncpg-backed RequestStore. Writes live here; the read queries come from QueryComposer.
"""

from datetime import datetime
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from secportal_api.tracking.db.pool import DomainDBPool
from secportal_api.tracking.db.repository_audit import AuditLogRepository
from secportal_api.tracking.db.repository_comment import CommentRepository
from secportal_api.tracking.enums import TERMINAL_STATUSES
from secportal_api.tracking.enums import AuditAction
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.models import Comment
from secportal_api.tracking.models import NormalizedRequest
from secportal_api.tracking.models import RequestStatistics
from secportal_api.tracking.models import SecurityRequest
from secportal_api.tracking.queries import QueryComposer
from secportal_api.tracking.store import RequestStore

# prev is the pre-update snapshot of the same row, which gives us the old status
_UPDATE_STATUS = """
    UPDATE requests AS r
    SET request_status = $1,
        updated_at = $2,
        completed_at = CASE
            WHEN $1 = ANY($4::text[]) THEN COALESCE(r.completed_at, $2)
            ELSE NULL
        END
    FROM requests AS prev
    WHERE r.id = $3 AND prev.id = r.id
    RETURNING prev.request_status AS previous_status
"""


class RequestRepository(RequestStore):
    """Request repository with domain-specific queries."""

    def __init__(self, pool: DomainDBPool, composer: Optional[QueryComposer] = None):
        self.pool = pool
        self.composer = composer or QueryComposer()
        self.comments = CommentRepository(pool)
        self.audit = AuditLogRepository(pool)

    async def insert_request(self, row: NormalizedRequest) -> None:
        await self.pool.execute(
            """
            INSERT INTO requests (
                id, user_id, user_info, form_data, request_type, details, reason,
                request_status, priority_level, created_at, updated_at
            ) VALUES ($1, $2, $3::jsonb, $4::jsonb, $5, $6::jsonb, $7, $8, $9, $10, $11)
            """,
            row.id,
            row.owner_id,
            row.submitter_info_json,
            row.form_data_json,
            row.request_type.value,
            row.details_json,
            row.reason,
            row.status.value,
            row.priority.value,
            row.created_at,
            row.updated_at,
        )

    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        updated_at: datetime,
    ) -> Optional[RequestStatus]:
        terminal = sorted(terminal_status.value for terminal_status in TERMINAL_STATUSES)
        row = await self.pool.fetchrow(_UPDATE_STATUS, status.value, updated_at, request_id, terminal)
        if row is None:
            return None
        return RequestStatus(row["previous_status"])

    async def insert_comment(self, comment: Comment) -> None:
        await self.comments.create(comment)

    async def record_audit(
        self,
        request_id: str,
        user_id: str,
        action: AuditAction,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.audit.create(request_id, user_id, action, old_values, new_values)

    async def list_requests(self, owner_id: Optional[str] = None) -> List[SecurityRequest]:
        query = self.composer.list_requests(owner_id)
        rows = await self.pool.fetch(query.sql, *query.params)
        return self.composer.to_requests(rows)

    async def get_request(self, request_id: str) -> Optional[SecurityRequest]:
        query = self.composer.get_request(request_id)
        row = await self.pool.fetchrow(query.sql, *query.params)
        if row is None:
            return None
        return self.composer.to_request(row)

    async def statistics(self, now: datetime) -> RequestStatistics:
        totals_query = self.composer.statistics_totals(now)
        totals = await self.pool.fetchrow(totals_query.sql, *totals_query.params)

        groups = {}
        for name, query in self.composer.statistics_groups().items():
            groups[name] = await self.pool.fetch(query.sql, *query.params)

        return self.composer.to_statistics(totals, groups)
