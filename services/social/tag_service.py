"""
Tag Service

A tag is a pending "you experienced this too" assertion from one user to
another. Accepting clones the assertion into the recipient's own interaction;
declining just closes it. Both outcomes are terminal.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import Session, select

from models.interaction import UserThingInteraction, InteractionState, Visibility
from models.notification import NotificationIntent, NotificationType
from models.outcome import Outcome
from models.tag import Tag, TagStatus
from models.thing import Thing
from services.core.interaction_service import (
    InteractionService,
    InteractionNotFoundError,
    PermissionDeniedError,
    clean_rating,
)
from services.social.invitation_service import InvitationService
from utils.logger import setup_logger

logger = setup_logger(__name__)


class TagService:
    def __init__(
        self,
        interaction_service: Optional[InteractionService] = None,
        invitation_service: Optional[InvitationService] = None
    ):
        self.interaction_service = interaction_service or InteractionService()
        self.invitation_service = invitation_service or InvitationService(interaction_service=self.interaction_service)

    def create_tag(
        self,
        db_session: Session,
        source_interaction_id: UUID,
        tagger_id: str,
        tagger_name: str,
        tagged_user_id: Optional[str],
        tagged_name: str,
        thing_id: UUID,
        state: str,
        rating: Optional[int] = None,
        tagged_email: Optional[str] = None,
        thing_title: Optional[str] = None
    ) -> Outcome:
        state = InteractionState(state).value
        tagged_user_id = tagged_user_id or None

        if tagged_user_id is not None and tagged_user_id == tagger_id:
            raise ValueError("a user cannot tag themselves")

        if not tagged_user_id and not (tagged_name or "").strip():
            raise ValueError("tagged_name is required when tagging someone without an account")

        source = db_session.get(UserThingInteraction, source_interaction_id)
        if not source or source.removed:
            raise InteractionNotFoundError(f"interaction {source_interaction_id} not found")

        if source.user_id != tagger_id:
            raise PermissionDeniedError("only the owner of an interaction can tag people in it")

        # the tag mirrors the source interaction
        if thing_id != source.thing_id:
            raise ValueError("thing_id does not match the tagged interaction")
        if state != source.state:
            raise ValueError("state does not match the tagged interaction")
        rating = clean_rating(rating) or source.rating

        if tagged_user_id:
            existing = db_session.exec(
                select(Tag)
                .where(Tag.source_interaction_id == source_interaction_id)
                .where(Tag.tagged_user_id == tagged_user_id)
            ).first()
            if existing:
                return Outcome(value=existing.id, created=False)

        if not thing_title:
            thing = db_session.get(Thing, thing_id)
            thing_title = thing.title if thing else None

        tag = Tag(
            source_interaction_id=source_interaction_id,
            tagger_id=tagger_id,
            tagger_name=tagger_name,
            tagged_user_id=tagged_user_id,
            tagged_name=tagged_name,
            tagged_email=tagged_email,
            thing_id=thing_id,
            thing_title=thing_title,
            state=state,
            rating=rating,
        )
        db_session.add(tag)
        db_session.commit()
        db_session.refresh(tag)

        outcome = Outcome(value=tag.id, created=True)

        if tagged_user_id:
            if tagged_user_id not in source.experienced_with:
                source.experienced_with = [*source.experienced_with, tagged_user_id]
                flag_modified(source, "experienced_with")
                db_session.add(source)
                db_session.commit()

            state_label = "Completed" if state == InteractionState.COMPLETED.value else "To Do"
            outcome.notifications.append(NotificationIntent(
                user_id=tagged_user_id,
                type=NotificationType.TAGGED,
                title=f"{tagger_name} tagged you",
                message=f"{tagger_name} tagged you in {thing_title or 'something'} ({state_label})",
                data={
                    "from_user_id": tagger_id,
                    "from_user_name": tagger_name,
                    "thing_id": thing_id,
                    "interaction_id": source_interaction_id,
                    "tag_id": tag.id,
                },
            ))
        else:
            tag.invite_code = self.invitation_service.create_invitation(
                db_session,
                inviter_id=tagger_id,
                inviter_name=tagger_name,
                thing_id=thing_id,
                thing_title=thing_title,
                interaction_id=source_interaction_id,
            )
            db_session.add(tag)
            db_session.commit()

        logger.info(
            "Tag created",
            extra={
                "tag_id": str(tag.id),
                "tagger_id": tagger_id,
                "tagged_user_id": tagged_user_id,
                "has_invite": tag.invite_code is not None
            }
        )
        return outcome

    def get_tag(self, db_session: Session, tag_id: UUID) -> Optional[Tag]:
        return db_session.get(Tag, tag_id)

    def get_pending_tags(self, db_session: Session, user_id: str) -> List[Tag]:
        return list(db_session.exec(
            select(Tag)
            .where(Tag.tagged_user_id == user_id)
            .where(Tag.status == TagStatus.PENDING.value)
            .order_by(Tag.created_at.desc())
        ).all())

    def accept_tag(self, db_session: Session, tag_id: UUID, user_id: str, user_name: str) -> Outcome:
        tag = self._lock_tag(db_session, tag_id)
        if tag is None or tag.tagged_user_id != user_id:
            logger.info("Tag not acceptable by user", extra={"tag_id": str(tag_id), "user_id": user_id})
            return Outcome(value=False)

        if tag.status == TagStatus.ACCEPTED.value:
            return Outcome(value=True, created=False)

        if tag.status == TagStatus.DECLINED.value:
            return Outcome(value=False)

        interaction_id = self.interaction_service.upsert_interaction(
            db_session,
            user_id=user_id,
            user_name=user_name,
            thing_id=tag.thing_id,
            state=tag.state,
            visibility=Visibility.FRIENDS.value,
            rating=tag.rating,
        )

        # the upsert committed, so re-read before the terminal transition
        tag = self._lock_tag(db_session, tag_id)
        if tag.status != TagStatus.PENDING.value:
            db_session.rollback()
            return Outcome(value=tag.status == TagStatus.ACCEPTED.value, created=False)

        tag.status = TagStatus.ACCEPTED.value
        tag.resolved_at = datetime.utcnow()
        db_session.add(tag)
        db_session.commit()

        logger.info(
            "Tag accepted",
            extra={"tag_id": str(tag_id), "user_id": user_id, "interaction_id": str(interaction_id)}
        )

        return Outcome(
            value=True,
            created=True,
            notifications=[NotificationIntent(
                user_id=tag.tagger_id,
                type=NotificationType.TAG_ACCEPTED,
                title=f"{user_name} accepted your tag",
                message=f"{user_name} added {tag.thing_title or 'it'} to their list",
                data={"from_user_id": user_id, "from_user_name": user_name, "thing_id": tag.thing_id, "tag_id": tag.id},
            )],
        )

    def decline_tag(self, db_session: Session, tag_id: UUID, user_id: str) -> bool:
        tag = self._lock_tag(db_session, tag_id)
        if tag is None or tag.tagged_user_id != user_id:
            return False

        if tag.status == TagStatus.DECLINED.value:
            return True

        if tag.status == TagStatus.ACCEPTED.value:
            return False

        tag.status = TagStatus.DECLINED.value
        tag.resolved_at = datetime.utcnow()
        db_session.add(tag)
        db_session.commit()

        logger.info("Tag declined", extra={"tag_id": str(tag_id), "user_id": user_id})
        return True

    def _lock_tag(self, db_session: Session, tag_id: UUID) -> Optional[Tag]:
        return db_session.exec(select(Tag).where(Tag.id == tag_id).with_for_update()).first()
