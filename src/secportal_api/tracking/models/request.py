"""
Request Model

Models for security requests, their comments and the normalized row written on create.
"""

from datetime import datetime
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import computed_field

from secportal_api.tracking.enums import Priority
from secportal_api.tracking.enums import RequestStatus
from secportal_api.tracking.enums import RequestType


class Comment(BaseModel):
    """Comment attached to a request (request_comments row)."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    request_id: str = Field(alias="requestId")
    author_id: str = Field(alias="userId")
    author_name: str = Field(alias="userName")
    message: str
    is_internal: bool = Field(default=False, alias="isInternal")
    created_at: datetime = Field(alias="timestamp")


class SecurityRequest(BaseModel):
    """Security request with its comments aggregated in creation order."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    owner_id: str = Field(alias="userId")
    submitter_info: Dict[str, Any] = Field(default_factory=dict, alias="userInfo")
    form_data: Dict[str, Any] = Field(default_factory=dict, alias="formData")
    request_type: RequestType = Field(alias="type")
    details: Dict[str, Any] = Field(default_factory=dict)
    reason: str
    status: RequestStatus
    priority: Priority
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    comments: List[Comment] = Field(default_factory=list)
    is_security_incident: bool = Field(default=True, alias="isSecurityIncident")

    @computed_field
    @property
    def severity(self) -> str:
        """Submitted severity, falling back to the stored priority."""
        return str(self.form_data.get("severity") or self.priority.value)


class NormalizedRequest(BaseModel):
    """
    Persisted-row representation of a new submission.

    The ``*_json`` fields hold the canonical text written to the JSONB columns;
    the decoded blobs are kept alongside for the response and the notification.
    """

    id: str
    owner_id: str
    request_type: RequestType
    reason: str
    priority: Priority
    status: RequestStatus = RequestStatus.OPEN
    submitter_info: Dict[str, Any]
    form_data: Dict[str, Any]
    details: Dict[str, Any]
    submitter_info_json: str
    form_data_json: str
    details_json: str
    created_at: datetime
    updated_at: datetime

    def to_request(self) -> SecurityRequest:
        """Shape the new row as it reads back: open, no comments."""
        return SecurityRequest(
            id=self.id,
            owner_id=self.owner_id,
            submitter_info=self.submitter_info,
            form_data=self.form_data,
            request_type=self.request_type,
            details=self.details,
            reason=self.reason,
            status=self.status,
            priority=self.priority,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class StatusUpdate(BaseModel):
    """Status transition command."""

    status: RequestStatus
    notes: Optional[str] = None
    updated_by: Optional[str] = None
    updated_by_name: Optional[str] = None
    is_internal: bool = False


class StatusUpdateResult(BaseModel):
    """Outcome of a status transition; comment_error is set when the audit comment was not stored."""

    request: SecurityRequest
    previous_status: Optional[RequestStatus] = None
    comment: Optional[Comment] = None
    comment_error: Optional[str] = None
