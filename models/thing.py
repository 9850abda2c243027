from __future__ import annotations
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum
from uuid import uuid4, UUID
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class ThingCategory(str, Enum):
    PLACE = "place"
    BOOK = "book"
    FILM = "film"  # films and shows; details["media_type"] tells them apart
    MANUAL = "manual"


class ThingSource(str, Enum):
    GOOGLE_PLACES = "google_places"
    GOOGLE_BOOKS = "google_books"
    TMDB = "tmdb"
    MANUAL = "manual"


# details key carrying the authoritative provider identity
PROVIDER_IDENTITY_FIELDS: Dict[str, str] = {
    ThingSource.GOOGLE_PLACES.value: "place_id",
    ThingSource.GOOGLE_BOOKS.value: "isbn",
    ThingSource.TMDB.value: "tmdb_id",
}


class RawItem(SQLModel):
    """A candidate from an external provider or a manual entry, before normalization."""
    title: str
    category: ThingCategory
    source: ThingSource = ThingSource.MANUAL
    source_id: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_manual(self) -> bool:
        return self.source == ThingSource.MANUAL


class Thing(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(index=True)
    category: str = Field(index=True)
    description: Optional[str] = None
    image: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    source: str = Field(default=ThingSource.MANUAL.value, index=True)
    source_id: Optional[str] = Field(default=None, index=True)
    # "<identity field>:<value>", e.g. "isbn:9780141439518"
    identity_key: Optional[str] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    created_by: str = Field(index=True)
    comment_count: int = 0
