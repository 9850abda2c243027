from __future__ import annotations
from typing import List, Optional
from datetime import datetime
from enum import Enum
from uuid import uuid4, UUID
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON, UniqueConstraint


class InteractionState(str, Enum):
    BUCKET_LIST = "bucketList"
    COMPLETED = "completed"


class Visibility(str, Enum):
    PRIVATE = "private"
    FRIENDS = "friends"


class UserThingInteraction(SQLModel, table=True):
    __tablename__ = "user_thing_interaction"
    __table_args__ = (
        UniqueConstraint("user_id", "thing_id", name="uq_interaction_user_thing"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: str = Field(index=True)
    user_name: str
    thing_id: UUID = Field(index=True)

    state: str = InteractionState.BUCKET_LIST.value
    visibility: str = Field(default=Visibility.FRIENDS.value, index=True)
    rating: Optional[int] = None
    notes: Optional[str] = None
    content: Optional[str] = None
    photos: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    liked_by: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    experienced_with: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    comment_count: int = 0

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    removed: bool = Field(default=False, index=True)
    removed_at: Optional[datetime] = None
