from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import status
from loguru import logger

from secportal_api.dependencies import get_role_resolver
from secportal_api.schemas.schemas import ErrorResponse
from secportal_api.schemas.schemas import UserRoleResponse
from secportal_api.tracking.roles import ROLE_NAMES
from secportal_api.tracking.roles import RoleResolver

ROUTER_AUTH = APIRouter(tags=["Auth"])


@ROUTER_AUTH.get(
    "/auth/user-role",
    responses={
        status.HTTP_400_BAD_REQUEST: {
            "model": ErrorResponse,
            "description": "Email missing",
            "content": {
                "application/json": {
                    "example": {
                        "error": "Bad Request",
                        "message": "Email is required for user role determination",
                        "fields": ["email"],
                    }
                }
            },
        },
        status.HTTP_500_INTERNAL_SERVER_ERROR: {
            "model": ErrorResponse,
            "description": "Role store unavailable",
        },
    },
)
async def get_user_role(
    email: Optional[str] = Query(default=None, description="Email of the signed-in user"),
    role_resolver: RoleResolver = Depends(get_role_resolver),
) -> UserRoleResponse:
    """Resolve the caller's role and permissions from the role cache. Unknown emails get the basic user role."""
    identity = await role_resolver.resolve(email)
    logger.info("User role resolved", email=identity.email, role=identity.role.value)
    return UserRoleResponse(user=identity, roles=ROLE_NAMES)
