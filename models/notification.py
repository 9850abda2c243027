from __future__ import annotations
from typing import Dict, Any
from datetime import datetime
from enum import Enum
from uuid import uuid4, UUID
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class NotificationType(str, Enum):
    TAGGED = "tagged"
    TAG_ACCEPTED = "tag_accepted"
    FOLLOWED = "followed"
    RECOMMENDATION = "recommendation"
    INVITE_JOINED = "invite_joined"
    COMMENT = "comment"
    LIKED = "liked"


class NotificationIntent(SQLModel):
    """A notification an operation wants sent; delivered later by the dispatcher."""
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = {}


class Notification(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: str = Field(index=True)
    type: str
    title: str
    message: str
    read: bool = Field(default=False, index=True)
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
