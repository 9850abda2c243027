"""
Invitation Service

Mints short referral codes that bind an inviter to a Thing, and redeems them.
Redemption fans out into a follow edge, an interaction, a recommendation edge
and (for new accounts) a "joined via your link" notification. Every step is
idempotent on its own, so a redemption that failed halfway can simply be run
again.
"""

import secrets
from typing import Callable, Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import Session, select

from config.settings import settings
from models.interaction import InteractionState, Visibility
from models.invitation import Invitation
from models.notification import NotificationIntent, NotificationType
from models.outcome import Outcome
from models.thing import Thing
from services.catalog.catalog_service import ThingNotFoundError
from services.core.interaction_service import InteractionService
from services.core.recommendation_service import RecommendationService
from services.social.follow_service import FollowService
from utils.logger import setup_logger

logger = setup_logger(__name__)

# no 0/O, 1/I/L: codes get read aloud and typed from text messages
INVITE_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


class InvitationCodeExhaustedError(Exception):
    pass


def generate_invite_code(length: Optional[int] = None) -> str:
    length = length or settings.INVITE_CODE_LENGTH
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: str) -> str:
    return (code or "").strip().upper()


class InvitationService:
    def __init__(
        self,
        code_factory: Callable[[], str] = generate_invite_code,
        max_attempts: Optional[int] = None,
        interaction_service: Optional[InteractionService] = None,
        recommendation_service: Optional[RecommendationService] = None,
        follow_service: Optional[FollowService] = None
    ):
        self.code_factory = code_factory
        self.max_attempts = max_attempts or settings.INVITE_CODE_MAX_ATTEMPTS
        self.interaction_service = interaction_service or InteractionService()
        self.recommendation_service = recommendation_service or RecommendationService()
        self.follow_service = follow_service or FollowService()

    def create_invitation(
        self,
        db_session: Session,
        inviter_id: str,
        inviter_name: str,
        thing_id: UUID,
        thing_title: Optional[str] = None,
        interaction_id: Optional[UUID] = None,
        inviter_username: Optional[str] = None
    ) -> str:
        if not inviter_id:
            raise ValueError("inviter_id is required to create an invitation")

        thing = db_session.get(Thing, thing_id)
        if not thing:
            raise ThingNotFoundError(f"thing {thing_id} not found")

        for attempt in range(1, self.max_attempts + 1):
            code = normalize_invite_code(self.code_factory())

            if db_session.get(Invitation, code) is not None:
                logger.warning("Invite code collision", extra={"attempt": attempt})
                continue

            invitation = Invitation(
                code=code,
                inviter_id=inviter_id,
                inviter_name=inviter_name,
                inviter_username=inviter_username,
                thing_id=thing_id,
                thing_title=thing_title or thing.title,
                interaction_id=interaction_id,
            )
            db_session.add(invitation)

            try:
                db_session.commit()
            except IntegrityError:
                db_session.rollback()
                logger.warning("Invite code collision on insert", extra={"attempt": attempt})
                continue

            logger.info(
                "Invitation created",
                extra={"code": code, "inviter_id": inviter_id, "thing_id": str(thing_id), "attempts": attempt}
            )
            return code

        raise InvitationCodeExhaustedError(
            f"could not generate a unique invite code after {self.max_attempts} attempts"
        )

    def get_invitation(self, db_session: Session, code: str) -> Optional[Invitation]:
        code = normalize_invite_code(code)
        if not code:
            return None
        return db_session.get(Invitation, code)

    def invite_url(self, code: str) -> str:
        return f"{settings.INVITE_BASE_URL.rstrip('/')}/?i={code}"

    def redeem_invitation(
        self,
        db_session: Session,
        user_id: str,
        user_name: str,
        code: str,
        is_new_account: bool
    ) -> Outcome:
        if not user_id:
            raise ValueError("user_id is required to redeem an invitation")

        invitation = self.get_invitation(db_session, code)
        if invitation is None:
            logger.info("Invitation not found", extra={"code": normalize_invite_code(code), "user_id": user_id})
            return Outcome(value=False)

        if invitation.inviter_id == user_id:
            logger.info("Inviter opened their own invitation", extra={"code": invitation.code, "user_id": user_id})
            return Outcome(value=False)

        inviter_id = invitation.inviter_id
        thing_id = invitation.thing_id
        invitation_code = invitation.code
        already_redeemed = user_id in invitation.used_by
        outcome = Outcome(value=True)

        outcome.merge(self.follow_service.follow_user(db_session, user_id, inviter_id, follower_name=user_name))

        # a repeat redemption must not undo edits made to the interaction since the first one
        if not already_redeemed:
            self.interaction_service.upsert_interaction(
                db_session,
                user_id=user_id,
                user_name=user_name,
                thing_id=thing_id,
                state=InteractionState.COMPLETED.value,
                visibility=Visibility.FRIENDS.value,
            )

        outcome.merge(self.recommendation_service.create_recommendation(
            db_session,
            from_user_id=user_id,
            to_user_id=inviter_id,
            thing_id=thing_id,
            to_user_name=invitation.inviter_name,
        ))

        newly_used, newly_converted = self._record_redemption(db_session, invitation_code, user_id, is_new_account)
        outcome.created = newly_used

        if newly_converted:
            invitation = db_session.get(Invitation, invitation_code)
            outcome.notifications.append(NotificationIntent(
                user_id=inviter_id,
                type=NotificationType.INVITE_JOINED,
                title=f"{user_name} joined from your invite",
                message=f"{user_name} joined Rex through your link for {invitation.thing_title or 'your recommendation'}",
                data={"from_user_id": user_id, "from_user_name": user_name, "thing_id": thing_id, "invite_code": invitation_code},
            ))

        logger.info(
            "Invitation redeemed",
            extra={
                "code": invitation_code,
                "user_id": user_id,
                "inviter_id": inviter_id,
                "first_redemption": newly_used,
                "new_account": is_new_account
            }
        )
        return outcome

    def _record_redemption(self, db_session: Session, code: str, user_id: str, is_new_account: bool):
        invitation = db_session.exec(
            select(Invitation).where(Invitation.code == code).with_for_update()
        ).one()

        newly_used = user_id not in invitation.used_by
        newly_converted = is_new_account and user_id not in invitation.converted_users

        if newly_used:
            invitation.used_by = [*invitation.used_by, user_id]
            flag_modified(invitation, "used_by")
        if newly_converted:
            invitation.converted_users = [*invitation.converted_users, user_id]
            flag_modified(invitation, "converted_users")

        if newly_used or newly_converted:
            db_session.add(invitation)
            db_session.commit()
        else:
            db_session.rollback()

        return newly_used, newly_converted
