"""In-memory stores, notifier mock and lifecycle controller fixtures."""

from datetime import datetime
from datetime import timedelta
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from unittest.mock import AsyncMock
from unittest.mock import MagicMock

import pytest

from secportal_api.errors import PersistenceError
from secportal_api.tracking.enums import TERMINAL_STATUSES
from secportal_api.tracking.enums import AuditAction
from secportal_api.tracking.enums import Priority
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.enums import RequestType
from secportal_api.tracking.lifecycle import LifecycleController
from secportal_api.tracking.models import Comment
from secportal_api.tracking.models import NormalizedRequest
from secportal_api.tracking.models import RequestStatistics
from secportal_api.tracking.models import RoleRecord
from secportal_api.tracking.models import SecurityRequest
from secportal_api.tracking.notifier import WebhookNotifier
from secportal_api.tracking.roles import RoleResolver
from secportal_api.tracking.store import RequestStore
from secportal_api.tracking.store import RoleStore
from tests.consts import ADMIN_EMAIL
from tests.consts import ADMIN_USER_ID
from tests.consts import FIXED_NOW
from tests.consts import SUPPORT_EMAIL
from tests.consts import SUPPORT_USER_ID


class InMemoryRequestStore(RequestStore):
    """RequestStore kept in dicts; failure flags simulate storage errors."""

    def __init__(self):
        self.requests: Dict[str, SecurityRequest] = {}
        self.audit_log: List[Dict[str, Any]] = []
        self.fail_inserts = False
        self.fail_comments = False
        self.fail_audit = False

    async def insert_request(self, row: NormalizedRequest) -> None:
        if self.fail_inserts:
            raise PersistenceError("insert failed")
        self.requests[row.id] = row.to_request()

    async def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        updated_at: datetime,
    ) -> Optional[RequestStatus]:
        request = self.requests.get(request_id)
        if request is None:
            return None

        previous = request.status
        completed_at = None
        if status in TERMINAL_STATUSES:
            completed_at = request.completed_at or updated_at
        self.requests[request_id] = request.model_copy(
            update={"status": status, "updated_at": updated_at, "completed_at": completed_at}
        )
        return previous

    async def insert_comment(self, comment: Comment) -> None:
        if self.fail_comments:
            raise PersistenceError("comment insert failed")
        request = self.requests[comment.request_id]
        request.comments.append(comment)

    async def record_audit(
        self,
        request_id: str,
        user_id: str,
        action: AuditAction,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.fail_audit:
            raise PersistenceError("audit insert failed")
        self.audit_log.append(
            {
                "request_id": request_id,
                "user_id": user_id,
                "action": action,
                "old_values": old_values,
                "new_values": new_values,
            }
        )

    async def list_requests(self, owner_id: Optional[str] = None) -> List[SecurityRequest]:
        selected = [r for r in self.requests.values() if owner_id is None or r.owner_id == owner_id]
        return sorted(selected, key=lambda r: (r.created_at, r.id), reverse=True)

    async def get_request(self, request_id: str) -> Optional[SecurityRequest]:
        return self.requests.get(request_id)

    async def statistics(self, now: datetime) -> RequestStatistics:
        requests = list(self.requests.values())
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        def counts(attribute: str, members) -> Dict[str, int]:
            result = {member.value: 0 for member in members}
            for request in requests:
                result[getattr(request, attribute).value] += 1
            return result

        durations = [
            ((r.completed_at or r.updated_at) - r.created_at).total_seconds() / 3600
            for r in requests
            if r.status in TERMINAL_STATUSES
        ]
        return RequestStatistics(
            total=len(requests),
            by_status=counts("status", RequestStatus),
            by_type=counts("request_type", RequestType),
            by_priority=counts("priority", Priority),
            today=sum(1 for r in requests if r.created_at >= start_of_day),
            last_7_days=sum(1 for r in requests if r.created_at >= now - timedelta(days=7)),
            last_30_days=sum(1 for r in requests if r.created_at >= now - timedelta(days=30)),
            avg_resolution_hours=round(sum(durations) / len(durations), 2) if durations else None,
        )


class InMemoryRoleStore(RoleStore):
    """RoleStore backed by a dict keyed by lower-cased email."""

    def __init__(self, records: Optional[List[RoleRecord]] = None):
        self.records = {record.email.lower(): record for record in records or []}
        self.fail = False
        self.lookups: List[str] = []

    async def find_role(self, email: str) -> Optional[RoleRecord]:
        self.lookups.append(email)
        if self.fail:
            raise PersistenceError("role store unavailable")
        return self.records.get(email.lower())


@pytest.fixture
def request_store():
    """Empty in-memory request store."""
    return InMemoryRequestStore()


@pytest.fixture
def role_store():
    """Role store seeded with one admin and one IT support user."""
    return InMemoryRoleStore(
        [
            RoleRecord(
                email=ADMIN_EMAIL,
                role="admin",
                permissions='["request:create", "request:view-all", "user:manage"]',
                user_id=ADMIN_USER_ID,
                name="Portal Admin",
            ),
            RoleRecord(
                email=SUPPORT_EMAIL,
                role="it-support",
                permissions=None,
                user_id=SUPPORT_USER_ID,
                name="Support Agent",
            ),
        ]
    )


@pytest.fixture
def mock_notifier():
    """Notifier mock; notify() reports success and records its payloads."""
    notifier = MagicMock(spec=WebhookNotifier)
    notifier.notify = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def role_resolver(role_store):
    return RoleResolver(role_store)


@pytest.fixture
def controller(request_store, role_resolver, mock_notifier):
    """Lifecycle controller over the in-memory stores with a fixed clock."""
    return LifecycleController(
        store=request_store,
        role_resolver=role_resolver,
        notifier=mock_notifier,
        clock=lambda: FIXED_NOW,
    )
