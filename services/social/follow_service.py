from typing import List
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from models.notification import NotificationIntent, NotificationType
from models.outcome import Outcome
from models.social import Follow
from utils.events import event_bus, FOLLOW_GRAPH_CHANGED
from utils.logger import setup_logger

logger = setup_logger(__name__)


class FollowService:

    def follow_user(self, db_session: Session, follower_id: str, followee_id: str, follower_name: str = "") -> Outcome:
        if not follower_id or not followee_id:
            raise ValueError("follower_id and followee_id are required to follow")

        if follower_id == followee_id:
            raise ValueError("a user cannot follow themselves")

        existing = self._find_edge(db_session, follower_id, followee_id)
        if existing:
            return Outcome(value=existing.id, created=False)

        edge = Follow(follower_id=follower_id, followee_id=followee_id)
        db_session.add(edge)

        try:
            db_session.commit()
        except IntegrityError:
            db_session.rollback()
            existing = self._find_edge(db_session, follower_id, followee_id)
            if existing is None:
                raise
            return Outcome(value=existing.id, created=False)

        db_session.refresh(edge)

        logger.info("Follow edge created", extra={"follower_id": follower_id, "followee_id": followee_id})
        event_bus.publish(FOLLOW_GRAPH_CHANGED, user_id=follower_id)

        display_name = follower_name or "Someone"
        return Outcome(
            value=edge.id,
            created=True,
            notifications=[NotificationIntent(
                user_id=followee_id,
                type=NotificationType.FOLLOWED,
                title=f"{display_name} followed you",
                message=f"{display_name} started following you",
                data={"from_user_id": follower_id, "from_user_name": follower_name},
            )],
        )

    def unfollow_user(self, db_session: Session, follower_id: str, followee_id: str) -> bool:
        existing = self._find_edge(db_session, follower_id, followee_id)
        if not existing:
            return False

        db_session.delete(existing)
        db_session.commit()

        logger.info("Follow edge removed", extra={"follower_id": follower_id, "followee_id": followee_id})
        event_bus.publish(FOLLOW_GRAPH_CHANGED, user_id=follower_id)
        return True

    def _find_edge(self, db_session: Session, follower_id: str, followee_id: str):
        return db_session.exec(
            select(Follow)
            .where(Follow.follower_id == follower_id)
            .where(Follow.followee_id == followee_id)
        ).first()

    def get_following(self, db_session: Session, user_id: str) -> List[str]:
        return list(db_session.exec(
            select(Follow.followee_id).where(Follow.follower_id == user_id)
        ).all())

    def get_followers(self, db_session: Session, user_id: str) -> List[str]:
        return list(db_session.exec(
            select(Follow.follower_id).where(Follow.followee_id == user_id)
        ).all())

    def is_following(self, db_session: Session, follower_id: str, followee_id: str) -> bool:
        return self._find_edge(db_session, follower_id, followee_id) is not None
