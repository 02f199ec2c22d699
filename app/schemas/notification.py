# app/schemas/notification.py
# Response models for the in-app notification feed

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: UUID
    type: str                               # "<entity>.<status>", e.g. "demo.scheduled"
    title: str
    body: str
    action_url: Optional[str] = None
    event_id: Optional[UUID] = None         # outbox event it was rendered from
    extra_data: Optional[Dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationFeed(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
    total: int


class UnreadCounts(BaseModel):
    """Badge counts: overall and per entity kind (requirement, association, demo, class)."""
    count: int
    by_kind: Dict[str, int]


class MessageResponse(BaseModel):
    message: str
