"""Tests for the request lifecycle controller."""

from datetime import timedelta

import pytest

from secportal_api.errors import NotFoundError
from secportal_api.errors import PersistenceError
from secportal_api.errors import RoleResolutionError
from secportal_api.errors import ValidationError
from secportal_api.tracking.enums import AuditAction
from secportal_api.tracking.enums import Priority
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.lifecycle import LifecycleController
from secportal_api.tracking.lifecycle import parse_status_update
from tests.consts import ADMIN_EMAIL
from tests.consts import FIXED_NOW
from tests.consts import SUPPORT_EMAIL
from tests.consts import USER_EMAIL
from tests.consts import USER_ID
from tests.consts import VALID_SUBMISSION


class TestParseStatusUpdate:
    def test_minimal(self):
        update = parse_status_update({"status": "in-progress"})

        assert update.status == RequestStatus.IN_PROGRESS
        assert update.notes is None
        assert update.is_internal is False

    def test_full(self):
        update = parse_status_update(
            {"status": "closed", "notes": "dup", "updatedBy": "support-001", "updatedByName": "Sam", "isInternal": True}
        )

        assert update.updated_by == "support-001"
        assert update.updated_by_name == "Sam"
        assert update.is_internal is True

    @pytest.mark.parametrize("body", [{}, {"status": None}, {"status": " "}])
    def test_status_required(self, body):
        with pytest.raises(ValidationError) as exc_info:
            parse_status_update(body)

        assert exc_info.value.fields == ["status"]

    def test_status_must_be_known(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_status_update({"status": "archived"})

        assert "Allowed values" in exc_info.value.message

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            parse_status_update(None)


class TestCreate:
    """Tests for LifecycleController.create."""

    @pytest.mark.asyncio
    async def test_create_stores_open_request(self, controller, request_store):
        created = await controller.create(VALID_SUBMISSION)

        assert created.status == RequestStatus.OPEN
        assert created.priority == Priority.HIGH
        assert created.owner_id == USER_ID
        assert created.comments == []
        assert created.created_at == FIXED_NOW
        assert request_store.requests[created.id].reason == VALID_SUBMISSION["reason"]

    @pytest.mark.asyncio
    async def test_create_without_user_id_uses_default_owner(self, controller):
        raw = {key: value for key, value in VALID_SUBMISSION.items() if key != "userId"}

        created = await controller.create(raw)

        assert created.owner_id == "anonymous"

    @pytest.mark.asyncio
    async def test_create_notifies_with_summary(self, controller, mock_notifier):
        created = await controller.create(VALID_SUBMISSION)

        payload = mock_notifier.notify.await_args.args[0]
        assert payload.request_id == created.id
        assert payload.severity == "high"
        assert payload.request_type == "phishing-email"
        assert set(payload.form_data_summary) == {"incidentType", "subject", "description", "dateOccurred"}
        assert "severity" not in payload.form_data_summary

    @pytest.mark.asyncio
    @pytest.mark.parametrize("severity", ["urgent", 5, ["high"]])
    async def test_notification_carries_normalized_priority(self, controller, mock_notifier, severity):
        raw = {**VALID_SUBMISSION, "formData": {**VALID_SUBMISSION["formData"], "severity": severity}}

        created = await controller.create(raw)

        assert created.priority == Priority.MEDIUM
        assert mock_notifier.notify.await_args.args[0].severity == "medium"

    @pytest.mark.asyncio
    async def test_failed_notification_does_not_fail_create(self, controller, mock_notifier, request_store):
        mock_notifier.notify.return_value = False

        created = await controller.create(VALID_SUBMISSION)

        assert created.id in request_store.requests

    @pytest.mark.asyncio
    async def test_create_writes_audit_entry(self, controller, request_store):
        created = await controller.create(VALID_SUBMISSION)

        entry = request_store.audit_log[0]
        assert entry["request_id"] == created.id
        assert entry["action"] == AuditAction.CREATED
        assert entry["user_id"] == USER_ID

    @pytest.mark.asyncio
    async def test_audit_failure_is_ignored(self, controller, request_store):
        request_store.fail_audit = True

        created = await controller.create(VALID_SUBMISSION)

        assert created.id in request_store.requests

    @pytest.mark.asyncio
    async def test_invalid_submission_not_stored_or_notified(self, controller, request_store, mock_notifier):
        with pytest.raises(ValidationError):
            await controller.create({"reason": "no type"})

        assert request_store.requests == {}
        mock_notifier.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insert_failure_propagates_without_notification(self, controller, request_store, mock_notifier):
        request_store.fail_inserts = True

        with pytest.raises(PersistenceError):
            await controller.create(VALID_SUBMISSION)

        mock_notifier.notify.assert_not_awaited()


class TestList:
    """Visibility rules for LifecycleController.list."""

    @staticmethod
    async def seed(request_store, role_resolver, mock_notifier):
        """One request by the caller and one by somebody else, an hour apart."""
        times = iter([FIXED_NOW - timedelta(hours=1), FIXED_NOW])
        controller = LifecycleController(request_store, role_resolver, mock_notifier, clock=lambda: next(times))
        own = await controller.create(VALID_SUBMISSION)
        other = await controller.create({**VALID_SUBMISSION, "userId": "user-bob"})
        return own, other

    @pytest.mark.asyncio
    async def test_regular_user_sees_only_own(self, controller, request_store, role_resolver, mock_notifier):
        own, _ = await self.seed(request_store, role_resolver, mock_notifier)

        requests = await controller.list(user_id=USER_ID, user_email=USER_EMAIL)

        assert [r.id for r in requests] == [own.id]

    @pytest.mark.asyncio
    async def test_no_email_restricts_to_owner(self, controller, request_store, role_resolver, mock_notifier):
        own, _ = await self.seed(request_store, role_resolver, mock_notifier)

        requests = await controller.list(user_id=USER_ID)

        assert [r.id for r in requests] == [own.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", [ADMIN_EMAIL, SUPPORT_EMAIL])
    async def test_it_team_sees_all_newest_first(self, controller, request_store, role_resolver, mock_notifier, email):
        own, other = await self.seed(request_store, role_resolver, mock_notifier)

        requests = await controller.list(user_id="someone-else", user_email=email)

        assert [r.id for r in requests] == [other.id, own.id]

    @pytest.mark.asyncio
    async def test_role_store_failure_propagates(self, controller, request_store, role_store, role_resolver, mock_notifier):
        await self.seed(request_store, role_resolver, mock_notifier)
        role_store.fail = True

        with pytest.raises(RoleResolutionError):
            await controller.list(user_id=USER_ID, user_email=ADMIN_EMAIL)


class TestGetAndStatistics:
    @pytest.mark.asyncio
    async def test_get_missing(self, controller):
        with pytest.raises(NotFoundError):
            await controller.get("REQ-missing")

    @pytest.mark.asyncio
    async def test_statistics_empty(self, controller):
        stats = await controller.statistics()

        assert stats.total == 0
        assert stats.avg_resolution_hours is None
        assert stats.by_status == {"open": 0, "in-progress": 0, "resolved": 0, "closed": 0}

    @pytest.mark.asyncio
    async def test_statistics_counts_new_request(self, controller):
        await controller.create(VALID_SUBMISSION)

        stats = await controller.statistics()

        assert stats.total == 1
        assert stats.today == 1
        assert stats.by_status["open"] == 1
        assert stats.by_priority["high"] == 1

    @pytest.mark.asyncio
    async def test_average_resolution_counts_only_terminal_requests(self, request_store, role_resolver, mock_notifier):
        now = [FIXED_NOW]
        controller = LifecycleController(
            store=request_store,
            role_resolver=role_resolver,
            notifier=mock_notifier,
            clock=lambda: now[0],
        )
        resolved = await controller.create(VALID_SUBMISSION)
        await controller.create(VALID_SUBMISSION)

        now[0] = FIXED_NOW + timedelta(hours=6, minutes=30)
        await controller.update_status(resolved.id, {"status": "resolved"})
        stats = await controller.statistics()

        assert stats.by_status["resolved"] == 1
        assert stats.by_status["open"] == 1
        assert stats.avg_resolution_hours == 6.5

    @pytest.mark.asyncio
    async def test_statistics_repeatable_on_unchanged_data(self, controller):
        first = await controller.create(VALID_SUBMISSION)
        await controller.create({**VALID_SUBMISSION, "type": "malware"})
        await controller.update_status(first.id, {"status": "closed", "notes": "done"})

        stats = await controller.statistics()
        again = await controller.statistics()

        assert again == stats
        assert stats.total == 2
        assert stats.avg_resolution_hours == 0.0


class TestUpdateStatus:
    """Tests for LifecycleController.update_status."""

    @pytest.mark.asyncio
    async def test_status_change_without_notes_adds_no_comment(self, controller):
        created = await controller.create(VALID_SUBMISSION)

        result = await controller.update_status(created.id, {"status": "in-progress"})

        assert result.request.status == RequestStatus.IN_PROGRESS
        assert result.previous_status == RequestStatus.OPEN
        assert result.request.comments == []
        assert result.comment is None

    @pytest.mark.asyncio
    async def test_blank_notes_add_no_comment(self, controller):
        created = await controller.create(VALID_SUBMISSION)

        result = await controller.update_status(created.id, {"status": "in-progress", "notes": "   "})

        assert result.request.comments == []

    @pytest.mark.asyncio
    async def test_notes_become_comment(self, controller):
        created = await controller.create(VALID_SUBMISSION)

        result = await controller.update_status(
            created.id,
            {"status": "resolved", "notes": " Blocked sender ", "updatedBy": "support-001", "isInternal": True},
        )

        comments = result.request.comments
        assert len(comments) == 1
        assert comments[0].message == "Status changed to resolved. Notes: Blocked sender"
        assert comments[0].author_id == "support-001"
        assert comments[0].author_name == "IT Support"
        assert comments[0].is_internal is True
        assert comments[0].id.startswith("CMT-")

    @pytest.mark.asyncio
    async def test_default_author_is_system_actor(self, controller):
        created = await controller.create(VALID_SUBMISSION)

        result = await controller.update_status(created.id, {"status": "closed", "notes": "done"})

        assert result.comment.author_id == "system"
        assert result.comment.is_internal is False

    @pytest.mark.asyncio
    async def test_terminal_status_sets_completed_at(self, controller):
        created = await controller.create(VALID_SUBMISSION)

        resolved = await controller.update_status(created.id, {"status": "resolved"})
        reopened = await controller.update_status(created.id, {"status": "open"})

        assert resolved.request.completed_at == FIXED_NOW
        assert reopened.request.completed_at is None

    @pytest.mark.asyncio
    async def test_any_status_reachable(self, controller):
        created = await controller.create(VALID_SUBMISSION)

        await controller.update_status(created.id, {"status": "closed"})
        result = await controller.update_status(created.id, {"status": "open"})

        assert result.request.status == RequestStatus.OPEN
        assert result.previous_status == RequestStatus.CLOSED

    @pytest.mark.asyncio
    async def test_missing_request_raises_without_comment(self, controller, request_store):
        with pytest.raises(NotFoundError):
            await controller.update_status("REQ-missing", {"status": "closed", "notes": "x"})

        assert request_store.audit_log == []

    @pytest.mark.asyncio
    async def test_invalid_status_leaves_request_unchanged(self, controller, request_store):
        created = await controller.create(VALID_SUBMISSION)

        with pytest.raises(ValidationError):
            await controller.update_status(created.id, {"status": "done"})

        assert request_store.requests[created.id].status == RequestStatus.OPEN

    @pytest.mark.asyncio
    async def test_comment_failure_keeps_status_and_reports_error(self, controller, request_store):
        created = await controller.create(VALID_SUBMISSION)
        request_store.fail_comments = True

        result = await controller.update_status(created.id, {"status": "resolved", "notes": "fixed"})

        assert result.request.status == RequestStatus.RESOLVED
        assert result.comment is None
        assert result.comment_error == "Status was updated but the comment could not be saved"

    @pytest.mark.asyncio
    async def test_status_change_audited(self, controller, request_store):
        created = await controller.create(VALID_SUBMISSION)

        await controller.update_status(created.id, {"status": "closed", "updatedBy": "support-001"})

        entry = request_store.audit_log[-1]
        assert entry["action"] == AuditAction.STATUS_CHANGED
        assert entry["user_id"] == "support-001"
        assert entry["old_values"] == {"status": "open"}
        assert entry["new_values"] == {"status": "closed"}
