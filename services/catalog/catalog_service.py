"""
Catalog Service

Normalizes manual entries and external provider results into canonical
``Thing`` rows, deduplicating against what the catalog already holds.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.thing import Thing, RawItem, ThingSource, PROVIDER_IDENTITY_FIELDS
from services.catalog.provider_clients import (
    GoogleBooksClient,
    GooglePlacesClient,
    ProviderClient,
    TMDbClient,
)
from utils.payload import strip_empty
from utils.logger import setup_logger

logger = setup_logger(__name__)


class ThingNotFoundError(Exception):
    pass


def identity_key_for(raw_item: RawItem) -> Optional[str]:
    field_name = PROVIDER_IDENTITY_FIELDS.get(ThingSource(raw_item.source).value)
    if not field_name:
        return None

    value = raw_item.details.get(field_name)
    if value is None or not str(value).strip():
        return None

    return f"{field_name}:{str(value).strip()}"


class CatalogService:
    def __init__(self, providers: Optional[List[ProviderClient]] = None):
        self._providers = providers

    @property
    def providers(self) -> List[ProviderClient]:
        if self._providers is None:
            self._providers = [GooglePlacesClient(), GoogleBooksClient(), TMDbClient()]
        return self._providers

    def resolve_thing(self, db_session: Session, raw_item: RawItem, acting_user_id: str) -> UUID:
        """
        Return the id of the catalog entry for ``raw_item``, creating it on first sighting.

        Provider items match on their identity field first, then on the raw
        provider id; manual items match on exact (title, category). A failed
        lookup is treated as "not found", so the worst case is a duplicate
        entry rather than a lost log.
        """
        title = (raw_item.title or "").strip()
        if not title:
            raise ValueError("title is required to resolve a thing")

        if not acting_user_id:
            raise ValueError("acting_user_id is required to resolve a thing")

        if raw_item.is_manual:
            existing = self._find_manual_thing(db_session, title, raw_item.category.value)
        else:
            existing = self._find_provider_thing(db_session, raw_item)

        if existing:
            logger.debug(
                "Thing resolved to existing catalog entry",
                extra={"thing_id": str(existing.id), "source": raw_item.source.value}
            )
            return existing.id

        thing = self._create_thing(db_session, raw_item, title, acting_user_id)
        return thing.id

    def _find_provider_thing(self, db_session: Session, raw_item: RawItem) -> Optional[Thing]:
        identity_key = identity_key_for(raw_item)

        try:
            if identity_key:
                thing = db_session.exec(
                    select(Thing).where(Thing.identity_key == identity_key)
                ).first()
                if thing:
                    return thing

            if raw_item.source_id:
                return db_session.exec(
                    select(Thing)
                    .where(Thing.source == raw_item.source.value)
                    .where(Thing.source_id == str(raw_item.source_id))
                ).first()
        except SQLAlchemyError as e:
            db_session.rollback()
            logger.warning(
                "Catalog dedup lookup failed, creating new entry",
                extra={"source": raw_item.source.value, "identity_key": identity_key, "error": str(e)}
            )

        return None

    def _find_manual_thing(self, db_session: Session, title: str, category: str) -> Optional[Thing]:
        try:
            return db_session.exec(
                select(Thing)
                .where(Thing.source == ThingSource.MANUAL.value)
                .where(Thing.title == title)
                .where(Thing.category == category)
            ).first()
        except SQLAlchemyError as e:
            db_session.rollback()
            logger.warning(
                "Manual catalog lookup failed, creating new entry",
                extra={"title": title, "category": category, "error": str(e)}
            )
            return None

    def _create_thing(self, db_session: Session, raw_item: RawItem, title: str, acting_user_id: str) -> Thing:
        fields = strip_empty({
            "title": title,
            "category": raw_item.category.value,
            "description": raw_item.description,
            "image": raw_item.image,
            "details": raw_item.details,
            "source": raw_item.source.value,
            "source_id": str(raw_item.source_id) if raw_item.source_id is not None else None,
            "identity_key": identity_key_for(raw_item),
            "created_by": acting_user_id,
        })

        thing = Thing(**fields)
        db_session.add(thing)
        db_session.commit()
        db_session.refresh(thing)

        logger.info(
            "Thing created",
            extra={
                "thing_id": str(thing.id),
                "category": thing.category,
                "source": thing.source,
                "created_by": acting_user_id
            }
        )
        return thing

    def get_thing(self, db_session: Session, thing_id: UUID) -> Thing:
        thing = db_session.get(Thing, thing_id)
        if not thing:
            raise ThingNotFoundError(f"thing {thing_id} not found")
        return thing

    def get_things(self, db_session: Session, thing_ids: Iterable[UUID]) -> Dict[UUID, Thing]:
        ids = list(set(thing_ids))
        if not ids:
            return {}

        things = db_session.exec(select(Thing).where(Thing.id.in_(ids))).all()
        return {thing.id: thing for thing in things}

    def search_catalog(self, db_session: Session, query: str, limit: int = 20) -> List[Thing]:
        query = (query or "").strip()
        if not query:
            return []

        return list(db_session.exec(
            select(Thing)
            .where(Thing.title.ilike(f"%{query}%"))
            .order_by(Thing.created_at.desc())
            .limit(limit)
        ).all())

    def search_providers(self, query: str) -> List[RawItem]:
        providers = self.providers
        if not providers:
            return []

        with ThreadPoolExecutor(max_workers=len(providers)) as executor:
            results = list(executor.map(lambda provider: provider.search(query), providers))

        return [item for candidates in results for item in candidates]

    def universal_search(self, db_session: Session, query: str) -> Dict[str, list]:
        things = self.search_catalog(db_session, query)
        candidates = self.search_providers(query)

        known_keys = {thing.identity_key for thing in things if thing.identity_key}
        fresh_candidates = [
            candidate for candidate in candidates
            if identity_key_for(candidate) not in known_keys or identity_key_for(candidate) is None
        ]

        logger.info(
            "Universal search completed",
            extra={"query": query, "things": len(things), "candidates": len(fresh_candidates)}
        )
        return {"things": things, "candidates": fresh_candidates}
