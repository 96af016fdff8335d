"""
Role Models

Cached role grants (user_roles rows) and the identity resolved from them.
"""

from typing import Any
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from secportal_api.tracking.enums import UserRole


class RoleRecord(BaseModel):
    """user_roles row as read from the store; permissions are left raw until resolution."""

    email: str
    role: str
    permissions: Any = None
    user_id: Optional[str] = None
    name: Optional[str] = None

    class Config:
        from_attributes = True


class UserIdentity(BaseModel):
    """Resolved caller identity returned by /api/auth/user-role."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    email: str
    name: str
    role: UserRole
    permissions: List[str]
    is_it_team: bool = Field(alias="isITTeam")
    is_admin: bool = Field(alias="isAdmin")
