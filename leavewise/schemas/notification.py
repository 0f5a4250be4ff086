"""
Notification schemas
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_serializer

from leavewise.utils.datetime_utils import iso_8601_utc


class NotificationOut(BaseModel):
    id: int
    kind: str
    subject_employee_id: int
    message: str
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)


class NotificationListResponse(BaseModel):
    items: List[NotificationOut]
    unread_count: int
