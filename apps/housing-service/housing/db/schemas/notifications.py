import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class NotificationBase(BaseModel):
    recipient_id: uuid.UUID
    recipient_farm_id: str = ''
    event_type: str
    title: str
    message: str
    priority: Literal['low', 'medium', 'high', 'urgent'] = 'medium'
    action_data: Optional[Dict[str, Any]] = None


class NotificationCreate(NotificationBase):
    created_by: Optional[uuid.UUID] = None
    created_by_name: Optional[str] = None


class Notification(NotificationBase):
    id: uuid.UUID
    status: str
    created_by: Optional[uuid.UUID] = None
    created_by_name: Optional[str] = None
    created_at: datetime
    read_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int
    total_count: int


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    audience: Literal['all', 'users', 'admins'] = 'all'
    priority: Literal['low', 'medium', 'high', 'urgent'] = 'medium'


class AnnouncementResult(BaseModel):
    sent: int
