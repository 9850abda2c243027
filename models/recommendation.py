from __future__ import annotations
from typing import Optional
from datetime import datetime
from uuid import uuid4, UUID
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint


class Recommendation(SQLModel, table=True):
    """Directed edge: ``from_user_id`` surfaced ``thing_id`` to ``to_user_id``."""
    __table_args__ = (
        UniqueConstraint("from_user_id", "to_user_id", "thing_id", name="uq_recommendation_edge"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    from_user_id: str = Field(index=True)
    to_user_id: str = Field(index=True)
    thing_id: UUID = Field(index=True)
    message: Optional[str] = None
    date: datetime = Field(default_factory=datetime.utcnow, index=True)
