"""
Feed Service

Builds a viewer's feed: every visible interaction by the viewer or the people
they follow, grouped into one ``FeedThing`` per catalog entry, most recently
active first. Results are cached briefly per (viewer, follow-set) and the
viewer's entries are dropped as soon as their follow graph changes.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional
from uuid import UUID
from sqlalchemy import or_, and_
from sqlmodel import Session, select

from config.settings import settings
from models.feed import FeedThing
from models.interaction import UserThingInteraction, Visibility
from services.catalog.catalog_service import CatalogService
from utils.cache import TTLCache, escape_key_part, make_cache_key
from utils.events import event_bus, FOLLOW_GRAPH_CHANGED, FEED_CACHE_INVALIDATED
from utils.timing import StageTimer
from utils.logger import setup_logger

logger = setup_logger(__name__)

FEED_CACHE_NAMESPACE = "feed"

feed_cache = TTLCache(name=FEED_CACHE_NAMESPACE, ttl_seconds=settings.FEED_CACHE_TTL_SECONDS)


def feed_cache_key(viewer_id: str, following_ids: Iterable[str]) -> str:
    following = ",".join(escape_key_part(user_id, ",") for user_id in sorted(set(following_ids)))
    return make_cache_key(FEED_CACHE_NAMESPACE, viewer_id, following)


def invalidate_feed_cache(user_id: str, **_) -> int:
    # trailing separator keeps "u1" from matching "u10"
    dropped = feed_cache.invalidate(make_cache_key(FEED_CACHE_NAMESPACE, user_id) + ":")
    event_bus.publish(FEED_CACHE_INVALIDATED, user_id=user_id)
    logger.info("Feed cache invalidated", extra={"user_id": user_id, "entries": dropped})
    return dropped


event_bus.subscribe(FOLLOW_GRAPH_CHANGED, invalidate_feed_cache)


def average_rating(interactions: List[UserThingInteraction]) -> Optional[float]:
    ratings = [interaction.rating for interaction in interactions if interaction.rating and interaction.rating > 0]
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


class FeedService:
    def __init__(self, catalog_service: Optional[CatalogService] = None, cache: Optional[TTLCache] = None):
        self.catalog_service = catalog_service or CatalogService(providers=[])
        self.cache = cache or feed_cache

    def build_feed(self, db_session: Session, viewer_id: str, following_ids: Iterable[str]) -> List[FeedThing]:
        if not viewer_id:
            raise ValueError("viewer_id is required to build a feed")

        following = sorted({user_id for user_id in following_ids if user_id and user_id != viewer_id})
        cache_key = feed_cache_key(viewer_id, following)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Feed served from cache", extra={"viewer_id": viewer_id, "following": len(following)})
            return cached

        timer = StageTimer("build_feed")

        with timer.stage("fetch_interactions"):
            interactions = self._visible_interactions(db_session, viewer_id, following)

        with timer.stage("group"):
            groups: Dict[UUID, List[UserThingInteraction]] = defaultdict(list)
            for interaction in interactions:
                groups[interaction.thing_id].append(interaction)

        with timer.stage("fetch_things"):
            things = self.catalog_service.get_things(db_session, groups.keys())

        with timer.stage("aggregate"):
            feed: List[FeedThing] = []
            for thing_id, members in groups.items():
                thing = things.get(thing_id)
                if thing is None:
                    logger.warning(
                        "Feed group skipped, thing missing",
                        extra={"thing_id": str(thing_id), "viewer_id": viewer_id}
                    )
                    continue
                feed.append(self._aggregate(thing, members, viewer_id))

            feed.sort(key=lambda item: item.most_recent_update, reverse=True)

        self.cache.set(cache_key, feed)

        timer.log_summary(extra={
            "viewer_id": viewer_id,
            "following": len(following),
            "interactions": len(interactions),
            "groups": len(feed)
        })
        return feed

    def _visible_interactions(self, db_session: Session, viewer_id: str, following: List[str]) -> List[UserThingInteraction]:
        authors = [viewer_id, *following]

        return list(db_session.exec(
            select(UserThingInteraction)
            .where(UserThingInteraction.user_id.in_(authors))
            .where(UserThingInteraction.removed == False)  # noqa: E712
            .where(or_(
                UserThingInteraction.visibility == Visibility.FRIENDS.value,
                and_(
                    UserThingInteraction.visibility == Visibility.PRIVATE.value,
                    UserThingInteraction.user_id == viewer_id,
                ),
            ))
            .order_by(UserThingInteraction.created_at.desc())
            .limit(settings.FEED_INTERACTION_LIMIT)
        ).all())

    def _aggregate(self, thing, members: List[UserThingInteraction], viewer_id: str) -> FeedThing:
        ordered = sorted(members, key=lambda interaction: interaction.created_at)
        mine = next((interaction for interaction in ordered if interaction.user_id == viewer_id), None)

        return FeedThing(
            thing=thing.model_dump(),
            interactions=[interaction.model_dump() for interaction in ordered],
            my_interaction=mine.model_dump() if mine else None,
            average_rating=average_rating(ordered),
            most_recent_update=ordered[-1].created_at,
            interaction_ids=[str(interaction.id) for interaction in ordered],
        )
