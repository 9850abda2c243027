from __future__ import annotations
from typing import Optional
from datetime import datetime
from uuid import uuid4, UUID
from sqlmodel import SQLModel, Field


class Comment(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    thing_id: UUID = Field(index=True)
    interaction_id: Optional[UUID] = Field(default=None, index=True)
    author_id: str = Field(index=True)
    author_name: str
    content: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
