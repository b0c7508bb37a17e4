from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from myteacher.models.alert import AlertType


class AlertCreate(BaseModel):
    user_id: str
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    alert_type: AlertType = AlertType.GENERAL
    link_url: Optional[str] = Field(None, max_length=500)
    related_entity_type: Optional[str] = Field(None, max_length=50)
    related_entity_id: Optional[str] = None


class BulkAlertCreate(BaseModel):
    user_ids: List[str] = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    alert_type: AlertType = AlertType.GENERAL
    link_url: Optional[str] = Field(None, max_length=500)


class AlertResponse(BaseModel):
    id: str
    user_id: str
    alert_type: AlertType
    title: str
    message: str
    link_url: Optional[str] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AlertListResponse(BaseModel):
    alerts: List[AlertResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int
