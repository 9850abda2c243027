from __future__ import annotations
from typing import Optional
from datetime import datetime
from uuid import uuid4, UUID
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint


class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profile"

    id: str = Field(primary_key=True)  # opaque id from the identity provider
    name: str = Field(index=True)
    username: Optional[str] = Field(default=None, unique=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Follow(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("follower_id", "followee_id", name="uq_follow_edge"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    follower_id: str = Field(index=True)
    followee_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
