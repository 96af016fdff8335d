####################################
# --- Request/response schemas --- #
####################################

from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from secportal_api.tracking.models import RequestStatistics
from secportal_api.tracking.models import SecurityRequest
from secportal_api.tracking.models import UserIdentity


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str
    message: str
    timestamp: str
    version: str


class MessageResponse(BaseModel):
    """Response carrying only a message."""

    message: str


class ErrorResponse(BaseModel):
    """Error body returned by the exception handlers."""

    error: str
    message: str
    fields: Optional[List[str]] = None


# read (cRud)
class UserRoleResponse(BaseModel):
    """Resolved identity plus the role names the client can compare against."""

    user: UserIdentity
    roles: Dict[str, str]


# create (Crud)
class CreateRequestBody(BaseModel):
    """
    Documented shape of a new report.

    The route validates the raw body itself so that missing fields come back as a
    single 400 naming all of them; this model only describes the contract.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    user_id: Optional[str] = Field(default=None, alias="userId")
    user_info: Dict[str, object] = Field(alias="userInfo")
    type: str
    reason: str
    form_data: Optional[Dict[str, object]] = Field(default=None, alias="formData")
    details: Optional[Dict[str, object]] = None


class CreateRequestResponse(BaseModel):
    """Response model for a created report."""

    message: str
    request: SecurityRequest


# read (cRud)
class ListRequestsResponse(BaseModel):
    """Response model for listing requests."""

    requests: List[SecurityRequest]
    count: int


class GetRequestResponse(BaseModel):
    """Response model for a single request."""

    request: SecurityRequest


class StatisticsResponse(BaseModel):
    """Response model for the statistics rollup."""

    statistics: RequestStatistics


# update (crUd)
class StatusUpdateBody(BaseModel):
    """Documented shape of a status change."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    notes: Optional[str] = None
    updated_by: Optional[str] = Field(default=None, alias="updatedBy")
    updated_by_name: Optional[str] = Field(default=None, alias="updatedByName")
    is_internal: bool = Field(default=False, alias="isInternal")


class StatusUpdateResponse(BaseModel):
    """Response model for a status change; warning is present only when the comment was not stored."""

    message: str
    request: SecurityRequest
    warning: Optional[str] = None
