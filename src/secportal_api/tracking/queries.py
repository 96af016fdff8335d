"""
Query Composer

Builds the read path for requests: list with aggregated comments, single fetch,
and the statistics rollup. Every caller-supplied value is bound as a $n
parameter; nothing is interpolated into the SQL text.
"""

import json
from datetime import datetime
from datetime import timedelta
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Mapping
from typing import NamedTuple
from typing import Optional

from loguru import logger

from secportal_api.tracking.enums import TERMINAL_STATUSES
from secportal_api.tracking.enums import Priority
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.enums import RequestType
from secportal_api.tracking.models import Comment
from secportal_api.tracking.models import RequestStatistics
from secportal_api.tracking.models import SecurityRequest
from secportal_api.tracking.models import UserIdentity


class Query(NamedTuple):
    """SQL text plus its positional parameters."""

    sql: str
    params: tuple = ()


# LEFT JOIN yields one all-NULL comment row for a request without comments;
# the FILTER drops it so the aggregate is empty rather than [null].
_REQUEST_WITH_COMMENTS = """
    SELECT r.id,
           r.user_id,
           r.user_info,
           r.form_data,
           r.request_type,
           r.details,
           r.reason,
           r.request_status,
           r.priority_level,
           r.created_at,
           r.updated_at,
           r.completed_at,
           COALESCE(
               json_agg(
                   json_build_object(
                       'id', c.id,
                       'requestId', c.request_id,
                       'userId', c.user_id,
                       'userName', c.user_name,
                       'message', c.message,
                       'timestamp', c.created_at,
                       'isInternal', c.is_internal
                   )
                   ORDER BY c.created_at, c.id
               ) FILTER (WHERE c.id IS NOT NULL),
               '[]'::json
           ) AS comments
    FROM requests r
    LEFT JOIN request_comments c ON c.request_id = r.id
"""

_STATISTICS_TOTALS = """
    SELECT COUNT(*) AS total,
           COUNT(*) FILTER (WHERE created_at >= $1) AS today,
           COUNT(*) FILTER (WHERE created_at >= $2) AS last_7_days,
           COUNT(*) FILTER (WHERE created_at >= $3) AS last_30_days,
           ROUND(
               (AVG(EXTRACT(EPOCH FROM (COALESCE(completed_at, updated_at) - created_at)) / 3600.0)
                   FILTER (WHERE request_status = ANY($4::text[])))::numeric,
               2
           ) AS avg_resolution_hours
    FROM requests
"""

# Column names are fixed here, never taken from input
_STATISTICS_GROUP_COLUMNS = {
    "by_status": "request_status",
    "by_type": "request_type",
    "by_priority": "priority_level",
}


def parse_json(value: Any, default: Any) -> Any:
    """Decode a JSON column that may arrive as text or already decoded."""
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Failed to parse JSON column", value=str(value)[:200])
            return default
    return value


def visibility_scope(user_id: str, identity: Optional[UserIdentity]) -> Optional[str]:
    """Owner filter for list queries: None (all requests) for the IT team, else the caller's id."""
    if identity is not None and identity.is_it_team:
        return None
    return user_id


class QueryComposer:
    """Composes read queries and shapes their rows into response models."""

    # ────────────────────────────────────────────────────────────────────────
    # Query builders
    # ────────────────────────────────────────────────────────────────────────

    def list_requests(self, owner_id: Optional[str] = None) -> Query:
        """All requests newest first, restricted to ``owner_id`` when given."""
        sql = _REQUEST_WITH_COMMENTS
        params: tuple = ()
        if owner_id is not None:
            sql += "    WHERE r.user_id = $1\n"
            params = (owner_id,)
        sql += "    GROUP BY r.id\n    ORDER BY r.created_at DESC, r.id DESC\n"
        return Query(sql, params)

    def get_request(self, request_id: str) -> Query:
        sql = _REQUEST_WITH_COMMENTS + "    WHERE r.id = $1\n    GROUP BY r.id\n"
        return Query(sql, (request_id,))

    def statistics_totals(self, now: datetime) -> Query:
        """Overall count, time buckets and average resolution hours."""
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        terminal = sorted(status.value for status in TERMINAL_STATUSES)
        return Query(
            _STATISTICS_TOTALS,
            (start_of_day, now - timedelta(days=7), now - timedelta(days=30), terminal),
        )

    def statistics_groups(self) -> Dict[str, Query]:
        """Per-status, per-type and per-priority counts."""
        return {
            name: Query(f"SELECT {column} AS bucket, COUNT(*) AS count FROM requests GROUP BY {column}")
            for name, column in _STATISTICS_GROUP_COLUMNS.items()
        }

    # ────────────────────────────────────────────────────────────────────────
    # Row shaping
    # ────────────────────────────────────────────────────────────────────────

    def to_request(self, row: Mapping[str, Any]) -> SecurityRequest:
        """Shape one aggregated row into a SecurityRequest."""
        return SecurityRequest(
            id=row["id"],
            owner_id=row["user_id"],
            submitter_info=parse_json(row["user_info"], {}) or {},
            form_data=parse_json(row["form_data"], {}) or {},
            request_type=row["request_type"],
            details=parse_json(row["details"], {}) or {},
            reason=row["reason"] or "",
            status=row["request_status"],
            priority=row["priority_level"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
            comments=self.to_comments(row["comments"]),
        )

    def to_requests(self, rows: Iterable[Mapping[str, Any]]) -> List[SecurityRequest]:
        return [self.to_request(row) for row in rows]

    @staticmethod
    def to_comments(value: Any) -> List[Comment]:
        """Decode the aggregated comments column, dropping null placeholders."""
        entries = parse_json(value, []) or []
        return [Comment.model_validate(entry) for entry in entries if entry is not None]

    @staticmethod
    def to_statistics(
        totals: Optional[Mapping[str, Any]],
        groups: Mapping[str, Iterable[Mapping[str, Any]]],
    ) -> RequestStatistics:
        """Combine the totals row and grouped counts, zero-filling every enum member."""
        totals = totals or {}

        def bucketed(name: str, members: Iterable[str]) -> Dict[str, int]:
            counts = {member: 0 for member in members}
            for row in groups.get(name, []):
                counts[row["bucket"]] = int(row["count"])
            return counts

        average = totals.get("avg_resolution_hours")
        return RequestStatistics(
            total=int(totals.get("total") or 0),
            by_status=bucketed("by_status", (status.value for status in RequestStatus)),
            by_type=bucketed("by_type", (request_type.value for request_type in RequestType)),
            by_priority=bucketed("by_priority", (priority.value for priority in Priority)),
            today=int(totals.get("today") or 0),
            last_7_days=int(totals.get("last_7_days") or 0),
            last_30_days=int(totals.get("last_30_days") or 0),
            avg_resolution_hours=round(float(average), 2) if average is not None else None,
        )
