"""
Interaction Service

Owns each user's relationship to a Thing. The hard invariant is that a
(user_id, thing_id) pair has at most one ``UserThingInteraction``; repeated
logs update that row in place. The unique constraint on the table is the
arbiter when two writers race past the initial lookup.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import Session, select

from models.interaction import UserThingInteraction, InteractionState, Visibility
from models.notification import NotificationIntent, NotificationType
from models.outcome import Outcome
from models.thing import Thing
from services.catalog.catalog_service import ThingNotFoundError
from utils.events import event_bus, INTERACTION_UPDATED
from utils.logger import setup_logger

logger = setup_logger(__name__)


class InteractionNotFoundError(Exception):
    pass


class PermissionDeniedError(Exception):
    pass


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def clean_rating(rating: Optional[int]) -> Optional[int]:
    if rating is None or rating <= 0:
        return None
    if rating > 5:
        raise ValueError("rating must be between 1 and 5")
    return int(rating)


class InteractionService:

    def upsert_interaction(
        self,
        db_session: Session,
        user_id: str,
        user_name: str,
        thing_id: UUID,
        state: str,
        visibility: str,
        rating: Optional[int] = None,
        notes: Optional[str] = None,
        content: Optional[str] = None,
        photos: Optional[List[str]] = None
    ) -> UUID:
        if not user_id:
            raise ValueError("user_id is required to log an interaction")

        if not thing_id:
            raise ValueError("thing_id is required to log an interaction")

        state = InteractionState(state).value
        visibility = Visibility(visibility).value
        rating = clean_rating(rating)
        photos = [photo for photo in (photos or []) if photo and photo.strip()] or None

        if not db_session.get(Thing, thing_id):
            raise ThingNotFoundError(f"thing {thing_id} not found")

        existing = self._find_for_update(db_session, user_id, thing_id)

        if existing is None:
            interaction = UserThingInteraction(
                user_id=user_id,
                user_name=user_name,
                thing_id=thing_id,
                state=state,
                visibility=visibility,
                rating=rating,
                notes=_clean_text(notes),
                content=_clean_text(content),
                photos=photos,
            )
            interaction.updated_at = interaction.created_at
            db_session.add(interaction)

            try:
                db_session.commit()
            except IntegrityError:
                # a concurrent writer created the row first; converge on it
                db_session.rollback()
                existing = self._find_for_update(db_session, user_id, thing_id)
                if existing is None:
                    raise

                logger.info(
                    "Interaction create lost race, updating existing row",
                    extra={"user_id": user_id, "thing_id": str(thing_id)}
                )
            else:
                db_session.refresh(interaction)
                logger.info(
                    "Interaction created",
                    extra={
                        "interaction_id": str(interaction.id),
                        "user_id": user_id,
                        "thing_id": str(thing_id),
                        "state": state,
                        "visibility": visibility
                    }
                )
                event_bus.publish(INTERACTION_UPDATED, user_id=user_id, interaction_id=interaction.id)
                return interaction.id

        self._apply_update(existing, user_name, state, visibility, rating, notes, content, photos)
        db_session.add(existing)
        db_session.commit()
        db_session.refresh(existing)

        logger.info(
            "Interaction updated",
            extra={
                "interaction_id": str(existing.id),
                "user_id": user_id,
                "thing_id": str(thing_id),
                "state": state,
                "visibility": visibility
            }
        )
        event_bus.publish(INTERACTION_UPDATED, user_id=user_id, interaction_id=existing.id)
        return existing.id

    def _find_for_update(self, db_session: Session, user_id: str, thing_id: UUID) -> Optional[UserThingInteraction]:
        return db_session.exec(
            select(UserThingInteraction)
            .where(UserThingInteraction.user_id == user_id)
            .where(UserThingInteraction.thing_id == thing_id)
            .with_for_update()
        ).first()

    def _apply_update(
        self,
        interaction: UserThingInteraction,
        user_name: Optional[str],
        state: str,
        visibility: str,
        rating: Optional[int],
        notes: Optional[str],
        content: Optional[str],
        photos: Optional[List[str]]
    ) -> None:
        interaction.state = state
        interaction.visibility = visibility

        # blank values never overwrite present ones
        if user_name:
            interaction.user_name = user_name
        if rating is not None:
            interaction.rating = rating
        if _clean_text(notes) is not None:
            interaction.notes = _clean_text(notes)
        if _clean_text(content) is not None:
            interaction.content = _clean_text(content)
        if photos:
            interaction.photos = photos
            flag_modified(interaction, "photos")

        if interaction.removed:
            interaction.removed = False
            interaction.removed_at = None

        interaction.updated_at = datetime.utcnow()

    def get_interaction(self, db_session: Session, user_id: str, thing_id: UUID) -> Optional[UserThingInteraction]:
        return db_session.exec(
            select(UserThingInteraction)
            .where(UserThingInteraction.user_id == user_id)
            .where(UserThingInteraction.thing_id == thing_id)
            .where(UserThingInteraction.removed == False)  # noqa: E712
        ).first()

    def get_interaction_by_id(self, db_session: Session, interaction_id: UUID) -> UserThingInteraction:
        interaction = db_session.get(UserThingInteraction, interaction_id)
        if not interaction or interaction.removed:
            raise InteractionNotFoundError(f"interaction {interaction_id} not found")
        return interaction

    def get_user_interactions(self, db_session: Session, user_id: str) -> List[UserThingInteraction]:
        return list(db_session.exec(
            select(UserThingInteraction)
            .where(UserThingInteraction.user_id == user_id)
            .where(UserThingInteraction.removed == False)  # noqa: E712
            .order_by(UserThingInteraction.updated_at.desc())
        ).all())

    def update_interaction_content(
        self,
        db_session: Session,
        interaction_id: UUID,
        user_id: str,
        content: Optional[str] = None,
        photos: Optional[List[str]] = None,
        rating: Optional[int] = None,
        notes: Optional[str] = None
    ) -> UserThingInteraction:
        interaction = self.get_interaction_by_id(db_session, interaction_id)
        if interaction.user_id != user_id:
            raise PermissionDeniedError("only the owner can edit an interaction")

        self._apply_update(
            interaction,
            None,
            interaction.state,
            interaction.visibility,
            clean_rating(rating),
            notes,
            content,
            [photo for photo in (photos or []) if photo and photo.strip()] or None,
        )
        db_session.add(interaction)
        db_session.commit()
        db_session.refresh(interaction)

        event_bus.publish(INTERACTION_UPDATED, user_id=user_id, interaction_id=interaction.id)
        return interaction

    def remove_interaction(self, db_session: Session, interaction_id: UUID, user_id: str) -> bool:
        """Soft-delete: the row stays so tags and comments keep their history."""
        interaction = db_session.get(UserThingInteraction, interaction_id)
        if not interaction:
            raise InteractionNotFoundError(f"interaction {interaction_id} not found")

        if interaction.user_id != user_id:
            raise PermissionDeniedError("only the owner can remove an interaction")

        if interaction.removed:
            return False

        interaction.removed = True
        interaction.removed_at = datetime.utcnow()
        interaction.updated_at = interaction.removed_at
        db_session.add(interaction)
        db_session.commit()

        logger.info(
            "Interaction removed",
            extra={"interaction_id": str(interaction_id), "user_id": user_id}
        )
        event_bus.publish(INTERACTION_UPDATED, user_id=user_id, interaction_id=interaction_id)
        return True

    def like_interaction(self, db_session: Session, interaction_id: UUID, user_id: str, user_name: str = "") -> Outcome:
        interaction = self._lock_interaction(db_session, interaction_id)

        if user_id in interaction.liked_by:
            return Outcome(value=interaction.id, created=False)

        interaction.liked_by = [*interaction.liked_by, user_id]
        flag_modified(interaction, "liked_by")
        db_session.add(interaction)
        db_session.commit()

        outcome = Outcome(value=interaction.id, created=True)
        if interaction.user_id != user_id:
            display_name = user_name or "Someone"
            outcome.notifications.append(NotificationIntent(
                user_id=interaction.user_id,
                type=NotificationType.LIKED,
                title=f"{display_name} liked your post",
                message=f"{display_name} liked what you shared",
                data={"from_user_id": user_id, "from_user_name": user_name, "interaction_id": interaction.id, "thing_id": interaction.thing_id},
            ))
        return outcome

    def unlike_interaction(self, db_session: Session, interaction_id: UUID, user_id: str) -> bool:
        interaction = self._lock_interaction(db_session, interaction_id)

        if user_id not in interaction.liked_by:
            return False

        interaction.liked_by = [liker for liker in interaction.liked_by if liker != user_id]
        flag_modified(interaction, "liked_by")
        db_session.add(interaction)
        db_session.commit()
        return True

    def _lock_interaction(self, db_session: Session, interaction_id: UUID) -> UserThingInteraction:
        interaction = db_session.exec(
            select(UserThingInteraction)
            .where(UserThingInteraction.id == interaction_id)
            .with_for_update()
        ).first()
        if not interaction or interaction.removed:
            raise InteractionNotFoundError(f"interaction {interaction_id} not found")
        return interaction
