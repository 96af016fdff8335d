"""
Lifecycle Controller

Orchestrates the request lifecycle on top of the store, role resolver and notifier:
create (with notification), role-aware listing, single fetch, statistics and
status transitions with an optional audit comment.
"""

from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional

from loguru import logger

from secportal_api.errors import NotFoundError
from secportal_api.errors import PersistenceError
from secportal_api.errors import ValidationError
from secportal_api.tracking.enums import AuditAction
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.ids import IdentifierGenerator
from secportal_api.tracking.models import Comment
from secportal_api.tracking.models import NotificationPayload
from secportal_api.tracking.models import RequestStatistics
from secportal_api.tracking.models import SecurityRequest
from secportal_api.tracking.models import StatusUpdate
from secportal_api.tracking.models import StatusUpdateResult
from secportal_api.tracking.normalizer import PayloadNormalizer
from secportal_api.tracking.notifier import WebhookNotifier
from secportal_api.tracking.queries import visibility_scope
from secportal_api.tracking.roles import RoleResolver
from secportal_api.tracking.store import RequestStore

DEFAULT_OWNER_ID = "anonymous"
SYSTEM_ACTOR_ID = "system"
SYSTEM_ACTOR_NAME = "IT Support"


def parse_status_update(raw: Any) -> StatusUpdate:
    """
    Validate a status-change body ({status, notes?, updatedBy?, updatedByName?, isInternal?}).

    Raises:
        ValidationError: status missing or outside the allowed set, or a field has the wrong type
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Request body must be a JSON object")

    status = raw.get("status")
    if status is None or (isinstance(status, str) and not status.strip()):
        raise ValidationError.missing(["status"])

    try:
        status = RequestStatus(status)
    except ValueError:
        allowed = ", ".join(member.value for member in RequestStatus)
        raise ValidationError(f"Invalid status '{status}'. Allowed values: {allowed}", fields=["status"])

    for field in ("notes", "updatedBy", "updatedByName"):
        value = raw.get(field)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be a string", fields=[field])

    is_internal = raw.get("isInternal", False)
    if not isinstance(is_internal, bool):
        raise ValidationError("isInternal must be a boolean", fields=["isInternal"])

    return StatusUpdate(
        status=status,
        notes=raw.get("notes"),
        updated_by=raw.get("updatedBy") or None,
        updated_by_name=raw.get("updatedByName") or None,
        is_internal=is_internal,
    )


class LifecycleController:
    """Request lifecycle operations used by the HTTP routes."""

    def __init__(
        self,
        store: RequestStore,
        role_resolver: RoleResolver,
        notifier: WebhookNotifier,
        normalizer: Optional[PayloadNormalizer] = None,
        id_generator: Optional[IdentifierGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        default_owner_id: str = DEFAULT_OWNER_ID,
        system_actor_id: str = SYSTEM_ACTOR_ID,
        system_actor_name: str = SYSTEM_ACTOR_NAME,
    ):
        self.store = store
        self.role_resolver = role_resolver
        self.notifier = notifier
        self.id_generator = id_generator or IdentifierGenerator()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.normalizer = normalizer or PayloadNormalizer(self.id_generator, self.clock)
        self.default_owner_id = default_owner_id
        self.system_actor_id = system_actor_id
        self.system_actor_name = system_actor_name

    async def create(self, raw: Any) -> SecurityRequest:
        """
        Validate, store and announce a new report.

        The notification is awaited but its outcome never changes the result.

        Raises:
            ValidationError: invalid submission
            PersistenceError: the insert failed
        """
        if not isinstance(raw, Mapping):
            raise ValidationError("Request body must be a JSON object")

        owner_id = raw.get("userId") or self.default_owner_id
        row = self.normalizer.normalize(raw, owner_id)

        await self.store.insert_request(row)
        logger.info(
            "Created security request",
            request_id=row.id,
            owner_id=owner_id,
            request_type=row.request_type.value,
            priority=row.priority.value,
        )

        await self._audit(
            row.id,
            owner_id,
            AuditAction.CREATED,
            new_values={"status": row.status.value, "priority": row.priority.value, "type": row.request_type.value},
        )

        request = row.to_request()
        await self.notifier.notify(
            NotificationPayload(
                request_id=request.id,
                severity=request.priority.value,
                request_type=request.request_type.value,
                reason=request.reason,
                submitter_info=request.submitter_info,
                form_data_summary=NotificationPayload.summarize_form_data(request.form_data),
            )
        )
        return request

    async def list(self, user_id: Optional[str] = None, user_email: Optional[str] = None) -> List[SecurityRequest]:
        """
        List requests visible to the caller, newest first.

        IT-team callers (resolved from ``user_email``) see everything; everyone
        else, including callers without an email, sees only requests they own.

        Raises:
            RoleResolutionError: role lookup failed at the storage layer
        """
        identity = None
        if user_email and user_email.strip():
            identity = await self.role_resolver.resolve(user_email)

        owner_id = visibility_scope(user_id or self.default_owner_id, identity)
        requests = await self.store.list_requests(owner_id)
        logger.debug(
            "Listed requests",
            user_id=user_id,
            scope="all" if owner_id is None else "own",
            count=len(requests),
        )
        return requests

    async def get(self, request_id: str) -> SecurityRequest:
        request = await self.store.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Request {request_id} not found")
        return request

    async def statistics(self) -> RequestStatistics:
        return await self.store.statistics(self.clock())

    async def update_status(self, request_id: str, raw: Any) -> StatusUpdateResult:
        """
        Change a request's status and record an optional comment.

        A comment is written only when notes are non-blank. A failed comment
        insert does not undo the status change; it is reported as
        ``comment_error`` on the result.

        Raises:
            ValidationError: status missing or invalid
            NotFoundError: no request with this id
            PersistenceError: the status update failed
        """
        update = parse_status_update(raw)
        now = self.clock()

        previous_status = await self.store.update_status(request_id, update.status, now)
        if previous_status is None:
            raise NotFoundError(f"Request {request_id} not found")

        actor_id = update.updated_by or self.system_actor_id
        logger.info(
            "Request status changed",
            request_id=request_id,
            previous_status=previous_status.value,
            status=update.status.value,
            updated_by=actor_id,
        )

        comment = None
        comment_error = None
        notes = (update.notes or "").strip()
        if notes:
            comment = Comment(
                id=self.id_generator.new_comment_id(),
                request_id=request_id,
                author_id=actor_id,
                author_name=update.updated_by_name or self.system_actor_name,
                message=f"Status changed to {update.status.value}. Notes: {notes}",
                is_internal=update.is_internal,
                created_at=now,
            )
            try:
                await self.store.insert_comment(comment)
            except PersistenceError as e:
                logger.error(
                    "Status updated but the status comment could not be stored",
                    request_id=request_id,
                    error=e.message,
                )
                comment = None
                comment_error = "Status was updated but the comment could not be saved"

        await self._audit(
            request_id,
            actor_id,
            AuditAction.STATUS_CHANGED,
            old_values={"status": previous_status.value},
            new_values={"status": update.status.value},
        )

        request = await self.get(request_id)
        return StatusUpdateResult(
            request=request,
            previous_status=previous_status,
            comment=comment,
            comment_error=comment_error,
        )

    async def _audit(
        self,
        request_id: str,
        user_id: str,
        action: AuditAction,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Append to the audit log; failures are logged and otherwise ignored."""
        try:
            await self.store.record_audit(request_id, user_id, action, old_values, new_values)
        except PersistenceError as e:
            logger.warning(
                "Failed to write audit log entry",
                request_id=request_id,
                action=action.value,
                error=e.message,
            )
