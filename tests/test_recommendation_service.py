from unittest.mock import patch
from sqlmodel import Session, select
import pytest

from config.database import engine, create_db_and_tables
from models.notification import NotificationType
from models.recommendation import Recommendation
from services.core.recommendation_service import RecommendationService
from tests.factories import new_user_id, create_test_thing, stale_first_lookup


def setup_module():
    create_db_and_tables()


def test_recommendation_is_created_once():
    service = RecommendationService()
    recommender = new_user_id()
    recipient = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)

        first = service.create_recommendation(session, recommender, recipient, thing_id, message="you'll love it")
        second = service.create_recommendation(session, recommender, recipient, thing_id)

        assert first.created is True
        assert second.created is False
        assert first.value == second.value

        edges = session.exec(
            select(Recommendation)
            .where(Recommendation.from_user_id == recommender)
            .where(Recommendation.to_user_id == recipient)
        ).all()
        assert len(edges) == 1
        assert edges[0].message == "you'll love it"

        intents = first.notifications + second.notifications
        assert len(intents) == 1
        assert intents[0].type == NotificationType.RECOMMENDATION


def test_self_recommendation_rejected():
    user_id = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)
        with pytest.raises(ValueError):
            RecommendationService().create_recommendation(session, user_id, user_id, thing_id)


def test_received_and_given_listings():
    service = RecommendationService()
    recommender = new_user_id()
    recipients = [new_user_id(), new_user_id()]

    with Session(engine) as session:
        thing_id = create_test_thing(session)
        for recipient in recipients:
            service.create_recommendation(session, recommender, recipient, thing_id)

        assert service.count_recommendations_given(session, recommender) == 2
        assert {edge.to_user_id for edge in service.recommendations_given(session, recommender)} == set(recipients)
        assert [edge.from_user_id for edge in service.recommendations_received(session, recipients[0])] == [recommender]


def test_lost_create_race_returns_existing_edge_without_notifying():
    recommender, recipient = new_user_id(), new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)

    with Session(engine) as winner_session:
        winner = RecommendationService().create_recommendation(winner_session, recommender, recipient, thing_id)

    loser = RecommendationService()
    with Session(engine) as loser_session:
        with patch.object(loser, "_find_edge", side_effect=stale_first_lookup(loser._find_edge)):
            lost = loser.create_recommendation(loser_session, recommender, recipient, thing_id)

        assert lost.value == winner.value
        assert lost.created is False
        assert lost.notifications == []
        assert loser.count_recommendations_given(loser_session, recommender) == 1
