from services.core.interaction_service import InteractionService, InteractionNotFoundError, PermissionDeniedError
from services.core.recommendation_service import RecommendationService
from services.core.feed_service import FeedService, feed_cache, invalidate_feed_cache

__all__ = [
    "InteractionService",
    "InteractionNotFoundError",
    "PermissionDeniedError",
    "RecommendationService",
    "FeedService",
    "feed_cache",
    "invalidate_feed_cache",
]
