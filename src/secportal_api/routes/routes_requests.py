import json
from typing import Any
from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from secportal_api.dependencies import get_lifecycle_controller
from secportal_api.errors import ValidationError
from secportal_api.schemas.schemas import CreateRequestBody
from secportal_api.schemas.schemas import CreateRequestResponse
from secportal_api.schemas.schemas import ErrorResponse
from secportal_api.schemas.schemas import GetRequestResponse
from secportal_api.schemas.schemas import ListRequestsResponse
from secportal_api.schemas.schemas import StatisticsResponse
from secportal_api.schemas.schemas import StatusUpdateBody
from secportal_api.schemas.schemas import StatusUpdateResponse
from secportal_api.tracking.lifecycle import LifecycleController

ROUTER_REQUESTS = APIRouter(tags=["Requests"])

_BAD_REQUEST = {status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid input"}}
_NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Request not found"}}


def _json_body(model) -> dict:
    """OpenAPI requestBody for routes that read and validate the raw JSON body themselves."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema(by_alias=True)}},
        }
    }


def _reject_constant(name: str) -> Any:
    raise ValidationError(f"Request body must be valid JSON ({name} is not allowed)")


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")


@ROUTER_REQUESTS.get("/requests")
async def list_requests(
    user_id: Optional[str] = Query(default=None, alias="userId", description="Id of the calling user"),
    user_email: Optional[str] = Query(default=None, alias="userEmail", description="Email used to resolve the role"),
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> ListRequestsResponse:
    """
    List requests newest first, each with its comments.

    IT support and admins see every request; other callers see only their own.
    """
    requests = await controller.list(user_id=user_id, user_email=user_email)
    return ListRequestsResponse(requests=requests, count=len(requests))


@ROUTER_REQUESTS.post(
    "/requests",
    status_code=status.HTTP_201_CREATED,
    responses=_BAD_REQUEST,
    openapi_extra=_json_body(CreateRequestBody),
)
async def create_request(
    request: Request,
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> CreateRequestResponse:
    """Submit a new security report. The notification webhook is called once the report is stored."""
    raw = await _read_json(request)
    created = await controller.create(raw)
    return CreateRequestResponse(message="Security report created successfully", request=created)


# Declared before /requests/{request_id} so "stats" is not taken as an id
@ROUTER_REQUESTS.get("/requests/stats")
async def get_statistics(
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> StatisticsResponse:
    """Counts by status, type and priority, recent-volume buckets and average resolution time."""
    return StatisticsResponse(statistics=await controller.statistics())


@ROUTER_REQUESTS.get("/requests/{request_id}", responses=_NOT_FOUND)
async def get_request(
    request_id: str,
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> GetRequestResponse:
    """Fetch one request with its comments."""
    return GetRequestResponse(request=await controller.get(request_id))


@ROUTER_REQUESTS.put(
    "/requests/{request_id}/status",
    response_model=StatusUpdateResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    openapi_extra=_json_body(StatusUpdateBody),
)
async def update_request_status(
    request: Request,
    request_id: str,
    controller: LifecycleController = Depends(get_lifecycle_controller),
):
    """
    Change a request's status.

    Non-blank notes are stored as a comment. If the comment cannot be stored the
    status change still stands and the response carries a warning.
    """
    raw = await _read_json(request)
    result = await controller.update_status(request_id, raw)

    response = StatusUpdateResponse(
        message="Request status updated successfully",
        request=result.request,
        warning=result.comment_error,
    )
    content = response.model_dump(mode="json", by_alias=True)
    if response.warning is None:
        content.pop("warning")
    else:
        logger.warning("Status update returned with warning", request_id=request_id, warning=response.warning)

    return JSONResponse(status_code=status.HTTP_200_OK, content=content)
