"""
Unit tests for InteractionService

The core guarantee is one interaction per (user, thing): repeated logs update
the existing row instead of adding another.
"""

from uuid import uuid4
from unittest.mock import patch
from sqlmodel import Session, select
import pytest

from config.database import engine, create_db_and_tables
from models.interaction import UserThingInteraction, InteractionState, Visibility
from models.notification import NotificationType
from services.catalog.catalog_service import ThingNotFoundError
from services.core.interaction_service import (
    InteractionService,
    InteractionNotFoundError,
    PermissionDeniedError,
)
from tests.factories import new_user_id, create_test_thing, stale_first_lookup


def setup_module():
    create_db_and_tables()


def count_rows(session: Session, user_id: str, thing_id) -> int:
    return len(session.exec(
        select(UserThingInteraction)
        .where(UserThingInteraction.user_id == user_id)
        .where(UserThingInteraction.thing_id == thing_id)
    ).all())


def test_upsert_keeps_one_row_per_user_and_thing():
    service = InteractionService()
    user_id = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)

        first = service.upsert_interaction(
            session, user_id, "Ana", thing_id,
            InteractionState.BUCKET_LIST.value, Visibility.PRIVATE.value,
            notes="heard good things",
        )
        second = service.upsert_interaction(
            session, user_id, "Ana", thing_id,
            InteractionState.COMPLETED.value, Visibility.FRIENDS.value,
            rating=4,
        )

        assert first == second
        assert count_rows(session, user_id, thing_id) == 1

        interaction = session.get(UserThingInteraction, first)
        assert interaction.state == InteractionState.COMPLETED.value
        assert interaction.visibility == Visibility.FRIENDS.value
        assert interaction.rating == 4
        # blank fields on the second call do not wipe earlier values
        assert interaction.notes == "heard good things"


def test_upsert_rejects_unknown_thing():
    with Session(engine) as session:
        with pytest.raises(ThingNotFoundError):
            InteractionService().upsert_interaction(
                session, new_user_id(), "Ana", uuid4(),
                InteractionState.COMPLETED.value, Visibility.FRIENDS.value,
            )


def test_upsert_validates_state_and_rating():
    service = InteractionService()

    with Session(engine) as session:
        thing_id = create_test_thing(session)

        with pytest.raises(ValueError):
            service.upsert_interaction(session, new_user_id(), "Ana", thing_id, "shared", Visibility.FRIENDS.value)

        with pytest.raises(ValueError):
            service.upsert_interaction(
                session, new_user_id(), "Ana", thing_id,
                InteractionState.COMPLETED.value, Visibility.FRIENDS.value, rating=7,
            )


def test_zero_rating_means_unrated():
    with Session(engine) as session:
        thing_id = create_test_thing(session)
        interaction_id = InteractionService().upsert_interaction(
            session, new_user_id(), "Ana", thing_id,
            InteractionState.COMPLETED.value, Visibility.FRIENDS.value, rating=0,
        )

        assert session.get(UserThingInteraction, interaction_id).rating is None


def test_remove_is_soft_and_upsert_revives():
    service = InteractionService()
    user_id = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)
        interaction_id = service.upsert_interaction(
            session, user_id, "Ana", thing_id, InteractionState.COMPLETED.value, Visibility.FRIENDS.value,
        )

        assert service.remove_interaction(session, interaction_id, user_id) is True
        assert service.remove_interaction(session, interaction_id, user_id) is False
        assert service.get_interaction(session, user_id, thing_id) is None

        revived = service.upsert_interaction(
            session, user_id, "Ana", thing_id, InteractionState.BUCKET_LIST.value, Visibility.FRIENDS.value,
        )
        assert revived == interaction_id
        assert service.get_interaction(session, user_id, thing_id).state == InteractionState.BUCKET_LIST.value


def test_only_owner_can_edit_or_remove():
    service = InteractionService()
    owner = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)
        interaction_id = service.upsert_interaction(
            session, owner, "Ana", thing_id, InteractionState.COMPLETED.value, Visibility.FRIENDS.value,
        )

        with pytest.raises(PermissionDeniedError):
            service.update_interaction_content(session, interaction_id, new_user_id(), content="mine now")

        with pytest.raises(PermissionDeniedError):
            service.remove_interaction(session, interaction_id, new_user_id())

        updated = service.update_interaction_content(session, interaction_id, owner, content="Loved it", photos=["a.jpg", " "])
        assert updated.content == "Loved it"
        assert updated.photos == ["a.jpg"]


def test_like_is_idempotent_and_notifies_owner_once():
    service = InteractionService()
    owner = new_user_id()
    liker = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)
        interaction_id = service.upsert_interaction(
            session, owner, "Ana", thing_id, InteractionState.COMPLETED.value, Visibility.FRIENDS.value,
        )

        first = service.like_interaction(session, interaction_id, liker, "Ben")
        second = service.like_interaction(session, interaction_id, liker, "Ben")

        assert first.created is True
        assert [intent.type for intent in first.notifications] == [NotificationType.LIKED]
        assert first.notifications[0].user_id == owner
        assert second.created is False
        assert second.notifications == []
        assert session.get(UserThingInteraction, interaction_id).liked_by == [liker]

        assert service.unlike_interaction(session, interaction_id, liker) is True
        assert service.unlike_interaction(session, interaction_id, liker) is False


def test_self_like_sends_nothing():
    service = InteractionService()
    owner = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)
        interaction_id = service.upsert_interaction(
            session, owner, "Ana", thing_id, InteractionState.COMPLETED.value, Visibility.FRIENDS.value,
        )

        assert service.like_interaction(session, interaction_id, owner).notifications == []


def test_missing_interaction_raises():
    with Session(engine) as session:
        with pytest.raises(InteractionNotFoundError):
            InteractionService().get_interaction_by_id(session, uuid4())


def test_lost_create_race_converges_on_existing_row():
    user_id = new_user_id()

    with Session(engine) as session:
        thing_id = create_test_thing(session)

    with Session(engine) as winner_session:
        winner_id = InteractionService().upsert_interaction(
            winner_session, user_id, "Ana", thing_id,
            InteractionState.BUCKET_LIST.value, Visibility.FRIENDS.value, notes="first",
        )

    # the second writer looked before the first one committed
    loser = InteractionService()
    with Session(engine) as loser_session:
        with patch.object(loser, "_find_for_update", side_effect=stale_first_lookup(loser._find_for_update)):
            loser_id = loser.upsert_interaction(
                loser_session, user_id, "Ana", thing_id,
                InteractionState.COMPLETED.value, Visibility.FRIENDS.value, rating=4,
            )

        assert loser_id == winner_id
        assert count_rows(loser_session, user_id, thing_id) == 1

        interaction = loser_session.get(UserThingInteraction, winner_id)
        assert interaction.state == InteractionState.COMPLETED.value
        assert interaction.rating == 4
        assert interaction.notes == "first"
