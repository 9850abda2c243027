#!/usr/bin/env python3
"""
Migrate legacy Post / PersonalItem exports into Things and interactions.

Input is a JSON file with two optional top-level lists, "posts" and
"personal_items", as exported from the old document store. Each entry is
resolved to a Thing, upserted as the owner's interaction, and linked to its
recommender when one is recorded. Running the script twice is safe.
"""

import argparse
import json
import os
import sys
from typing import Any, Dict, List, Optional

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlmodel import Session
from config.database import engine, create_db_and_tables
from models.interaction import InteractionState, Visibility
from models.thing import RawItem, ThingCategory, ThingSource
from services.catalog.catalog_service import CatalogService
from services.core.interaction_service import InteractionService
from services.core.recommendation_service import RecommendationService
from utils.correlation_id import correlation_scope
from utils.logger import setup_logger

logger = setup_logger(__name__)

LEGACY_CATEGORIES = {
    "places": ThingCategory.PLACE,
    "books": ThingCategory.BOOK,
    "movies": ThingCategory.FILM,
}

LEGACY_STATES = {
    "want_to_try": InteractionState.BUCKET_LIST,
    "completed": InteractionState.COMPLETED,
    "shared": InteractionState.COMPLETED,
}

LEGACY_SOURCE_IDENTITY = {
    ThingSource.GOOGLE_BOOKS: "isbn",
    ThingSource.TMDB: "tmdb_id",
    ThingSource.GOOGLE_PLACES: "place_id",
}


def legacy_visibility(value: Optional[str]) -> Visibility:
    # the old public tier was never queried separately from friends
    if value == Visibility.PRIVATE.value:
        return Visibility.PRIVATE
    return Visibility.FRIENDS


def legacy_raw_item(entry: Dict[str, Any]) -> RawItem:
    universal = entry.get("universalItem") or {}
    category = LEGACY_CATEGORIES.get(entry.get("category"), ThingCategory.MANUAL)

    try:
        source = ThingSource(universal.get("source", "manual"))
    except ValueError:
        source = ThingSource.MANUAL

    details = dict(universal.get("metadata") or {})
    if entry.get("location"):
        details.setdefault("address", entry["location"])

    source_id = None
    if source != ThingSource.MANUAL:
        source_id = universal.get("id")
        identity_field = LEGACY_SOURCE_IDENTITY[source]
        # a books volume id is not an ISBN, so only places and films can borrow it
        if source_id and identity_field != "isbn":
            details.setdefault(identity_field, source_id)

    return RawItem(
        title=universal.get("title") or entry["title"],
        category=category,
        source=source,
        source_id=source_id,
        description=universal.get("description") or entry.get("description"),
        image=universal.get("image"),
        details=details,
    )


def rating_of(entry: Dict[str, Any]) -> Optional[int]:
    rating = entry.get("rating")
    if isinstance(rating, (int, float)) and 1 <= rating <= 5:
        return int(rating)
    return None


def migrate_entry(
    session: Session,
    entry: Dict[str, Any],
    user_id: str,
    user_name: str,
    state: InteractionState,
    catalog_service: CatalogService,
    interaction_service: InteractionService,
    recommendation_service: RecommendationService,
    dry_run: bool = False
) -> bool:
    raw_item = legacy_raw_item(entry)
    if dry_run:
        print(f"  would migrate '{raw_item.title}' ({raw_item.category.value}) for {user_id} as {state.value}")
        return True

    thing_id = catalog_service.resolve_thing(session, raw_item, user_id)
    interaction_service.upsert_interaction(
        session,
        user_id=user_id,
        user_name=user_name,
        thing_id=thing_id,
        state=state.value,
        visibility=legacy_visibility(entry.get("visibility")).value,
        rating=rating_of(entry),
        notes=entry.get("description"),
        photos=entry.get("photos"),
    )

    recommender_id = entry.get("recommendedByUserId")
    if recommender_id and recommender_id != user_id:
        recommendation_service.create_recommendation(session, recommender_id, user_id, thing_id)
    return True


def migrate_legacy_posts(path: str, dry_run: bool = False) -> Dict[str, int]:
    with open(path, "r", encoding="utf-8") as fh:
        export = json.load(fh)

    posts: List[Dict[str, Any]] = export.get("posts", [])
    personal_items: List[Dict[str, Any]] = export.get("personal_items", [])
    stats = {"migrated": 0, "skipped": 0, "failed": 0}

    catalog_service = CatalogService(providers=[])
    interaction_service = InteractionService()
    recommendation_service = RecommendationService()

    create_db_and_tables()
    print(f"Migrating {len(posts)} posts and {len(personal_items)} personal items from {path}")

    with Session(engine) as session:
        # posts were always published by someone who had done the thing
        work = [
            (entry, entry.get("authorId"), entry.get("authorName", ""), InteractionState.COMPLETED)
            for entry in posts
        ]
        for entry in personal_items:
            state = LEGACY_STATES.get(entry.get("status"))
            work.append((entry, entry.get("userId"), entry.get("userName", ""), state))

        for entry, user_id, user_name, state in work:
            if not user_id or not entry.get("title") or state is None:
                stats["skipped"] += 1
                continue
            try:
                migrate_entry(
                    session, entry, user_id, user_name, state,
                    catalog_service, interaction_service, recommendation_service,
                    dry_run=dry_run
                )
                stats["migrated"] += 1
            except (ValueError, KeyError) as e:
                session.rollback()
                stats["failed"] += 1
                logger.warning(
                    "Legacy entry failed to migrate",
                    extra={"legacy_id": entry.get("id"), "error": str(e)}
                )

    print(f"Done: {stats['migrated']} migrated, {stats['skipped']} skipped, {stats['failed']} failed")
    return stats


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Migrate legacy posts and personal items into interactions"
    )
    parser.add_argument(
        "export_path",
        type=str,
        help="Path to the JSON export holding 'posts' and 'personal_items'"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print what would be migrated without writing"
    )

    args = parser.parse_args()

    with correlation_scope():
        migrate_legacy_posts(args.export_path, dry_run=args.dry_run)
