from __future__ import annotations
from typing import Optional
from datetime import datetime
from enum import Enum
from uuid import uuid4, UUID
from sqlmodel import SQLModel, Field


class TagStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Tag(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    source_interaction_id: UUID = Field(index=True)

    tagger_id: str = Field(index=True)
    tagger_name: str
    tagged_user_id: Optional[str] = Field(default=None, index=True)  # None when the person has no account yet
    tagged_name: str
    tagged_email: Optional[str] = None

    thing_id: UUID = Field(index=True)
    thing_title: Optional[str] = None
    state: str  # mirrors the tagger's interaction state
    rating: Optional[int] = None

    status: str = Field(default=TagStatus.PENDING.value, index=True)
    invite_code: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    resolved_at: Optional[datetime] = None
