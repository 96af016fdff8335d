"""
Persistence interfaces used by the lifecycle controller and role resolver.

The asyncpg implementations live in tracking/db/; tests substitute in-memory fakes.
"""

from abc import ABC
from abc import abstractmethod
from datetime import datetime
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from secportal_api.tracking.enums import AuditAction
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.models import Comment
from secportal_api.tracking.models import NormalizedRequest
from secportal_api.tracking.models import RequestStatistics
from secportal_api.tracking.models import RoleRecord
from secportal_api.tracking.models import SecurityRequest


class RequestStore(ABC):
    """Storage for requests, their comments and the audit log."""

    @abstractmethod
    async def insert_request(self, row: NormalizedRequest) -> None:
        """Insert a new request row."""

    @abstractmethod
    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        updated_at: datetime,
    ) -> Optional[RequestStatus]:
        """
        Set status and updated_at; maintain completed_at for terminal statuses.

        Returns:
            The status before the update, or None if no request has this id
        """

    @abstractmethod
    async def insert_comment(self, comment: Comment) -> None:
        """Append a comment to an existing request."""

    @abstractmethod
    async def record_audit(
        self,
        request_id: str,
        user_id: str,
        action: AuditAction,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Append an entry to the request audit log."""

    @abstractmethod
    async def list_requests(self, owner_id: Optional[str] = None) -> List[SecurityRequest]:
        """List requests newest first with comments; owner_id=None means no owner filter."""

    @abstractmethod
    async def get_request(self, request_id: str) -> Optional[SecurityRequest]:
        """Fetch one request with comments, or None."""

    @abstractmethod
    async def statistics(self, now: datetime) -> RequestStatistics:
        """Compute the statistics rollup relative to ``now``."""


class RoleStore(ABC):
    """Read-only access to cached role grants."""

    @abstractmethod
    async def find_role(self, email: str) -> Optional[RoleRecord]:
        """Look up a role record by lower-cased email."""
