import json
from uuid import uuid4
from sqlmodel import Session

from config.database import engine, create_db_and_tables
from models.interaction import InteractionState, Visibility
from models.thing import ThingCategory, ThingSource
from scripts.migrate_legacy_posts import legacy_raw_item, legacy_visibility, migrate_legacy_posts
from services.core.interaction_service import InteractionService
from services.core.recommendation_service import RecommendationService
from tests.factories import new_user_id


def setup_module():
    create_db_and_tables()


def test_legacy_public_visibility_maps_to_friends():
    assert legacy_visibility("public") == Visibility.FRIENDS
    assert legacy_visibility(None) == Visibility.FRIENDS
    assert legacy_visibility("private") == Visibility.PRIVATE


def test_legacy_universal_item_keeps_provider_identity():
    raw_item = legacy_raw_item({
        "title": "Heat",
        "category": "movies",
        "universalItem": {"id": "movie/949", "title": "Heat", "source": "tmdb", "metadata": {"year": 1995}},
    })

    assert raw_item.category == ThingCategory.FILM
    assert raw_item.source == ThingSource.TMDB
    assert raw_item.details == {"year": 1995, "tmdb_id": "movie/949"}

    music = legacy_raw_item({"title": "Kind of Blue", "category": "music"})
    assert music.category == ThingCategory.MANUAL
    assert music.is_manual


def test_migration_is_repeatable(tmp_path):
    author, saver, recommender = new_user_id(), new_user_id(), new_user_id()
    title = f"Legacy diner {uuid4()}"
    export = {
        "posts": [
            {"id": "p1", "authorId": author, "authorName": "Ana", "category": "places", "title": title, "rating": 5},
        ],
        "personal_items": [
            {
                "id": "i1",
                "userId": saver,
                "category": "places",
                "title": title,
                "status": "want_to_try",
                "recommendedByUserId": recommender,
            },
            {"id": "i2", "userId": saver, "category": "places", "title": "No status"},
        ],
    }
    path = tmp_path / "export.json"
    path.write_text(json.dumps(export))

    first = migrate_legacy_posts(str(path))
    migrate_legacy_posts(str(path))

    assert first == {"migrated": 2, "skipped": 1, "failed": 0}

    with Session(engine) as session:
        service = InteractionService()
        authored = service.get_interaction_by_id(
            session, service.get_user_interactions(session, author)[0].id
        )
        saved = service.get_user_interactions(session, saver)

        assert authored.state == InteractionState.COMPLETED.value
        assert authored.rating == 5
        assert len(saved) == 1
        assert saved[0].state == InteractionState.BUCKET_LIST.value
        assert saved[0].thing_id == authored.thing_id
        assert RecommendationService().count_recommendations_given(session, recommender) == 1
