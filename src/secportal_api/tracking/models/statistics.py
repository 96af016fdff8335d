"""
Statistics Model

Rollup of request counts and resolution time across the full request set.
"""

from typing import Dict
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class RequestStatistics(BaseModel):
    """Request statistics rollup.

    Every status, type and priority appears in its mapping, zero-filled.
    avg_resolution_hours is None when no request has reached a terminal status.
    """

    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict, alias="byStatus")
    by_type: Dict[str, int] = Field(default_factory=dict, alias="byType")
    by_priority: Dict[str, int] = Field(default_factory=dict, alias="byPriority")
    today: int = 0
    last_7_days: int = Field(default=0, alias="last7Days")
    last_30_days: int = Field(default=0, alias="last30Days")
    avg_resolution_hours: Optional[float] = Field(default=None, alias="avgResolutionHours")
