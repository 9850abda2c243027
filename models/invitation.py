from __future__ import annotations
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class Invitation(SQLModel, table=True):
    code: str = Field(primary_key=True)
    inviter_id: str = Field(index=True)
    inviter_name: str
    inviter_username: Optional[str] = None
    thing_id: UUID = Field(index=True)
    thing_title: Optional[str] = None
    interaction_id: Optional[UUID] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    used_by: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    converted_users: List[str] = Field(default_factory=list, sa_column=Column(JSON))
