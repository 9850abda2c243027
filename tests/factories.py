"""Shared builders for service tests; every id is unique so tests can share one database."""

from typing import Optional
from uuid import uuid4, UUID
from sqlmodel import Session

from models.interaction import InteractionState, Visibility
from models.thing import RawItem, ThingCategory, ThingSource
from services.catalog.catalog_service import CatalogService
from services.core.interaction_service import InteractionService


def new_user_id(prefix: str = "user") -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def create_test_thing(session: Session, title: Optional[str] = None, created_by: Optional[str] = None) -> UUID:
    raw_item = RawItem(
        title=title or f"Test Thing {uuid4()}",
        category=ThingCategory.BOOK,
        source=ThingSource.GOOGLE_BOOKS,
        source_id=uuid4().hex,
        details={"isbn": str(uuid4().int)[:13]},
    )
    return CatalogService(providers=[]).resolve_thing(session, raw_item, created_by or new_user_id())


def create_test_interaction(
    session: Session,
    user_id: str,
    thing_id: UUID,
    state: InteractionState = InteractionState.COMPLETED,
    visibility: Visibility = Visibility.FRIENDS,
    rating: Optional[int] = None
) -> UUID:
    return InteractionService().upsert_interaction(
        session,
        user_id=user_id,
        user_name=user_id.title(),
        thing_id=thing_id,
        state=state.value,
        visibility=visibility.value,
        rating=rating,
    )


def stale_first_lookup(lookup):
    """Wrap ``lookup`` so its first call misses, as if another writer had not committed yet."""
    calls = {"count": 0}

    def wrapper(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return lookup(*args, **kwargs)

    return wrapper
