"""
Recommendation Graph

Directed edges recording who surfaced a Thing to whom. Creation is
find-or-create on the exact (from, to, thing) triple so callers can invoke
it speculatively on every save.
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from models.notification import NotificationIntent, NotificationType
from models.outcome import Outcome
from models.recommendation import Recommendation
from models.thing import Thing
from utils.logger import setup_logger

logger = setup_logger(__name__)


class RecommendationService:

    def create_recommendation(
        self,
        db_session: Session,
        from_user_id: str,
        to_user_id: str,
        thing_id: UUID,
        message: Optional[str] = None,
        to_user_name: Optional[str] = None
    ) -> Outcome:
        if not from_user_id or not to_user_id:
            raise ValueError("from_user_id and to_user_id are required for a recommendation")

        if from_user_id == to_user_id:
            raise ValueError("a user cannot recommend a thing to themselves")

        if not thing_id:
            raise ValueError("thing_id is required for a recommendation")

        existing = self._find_edge(db_session, from_user_id, to_user_id, thing_id)
        if existing:
            logger.debug(
                "Recommendation already exists",
                extra={"recommendation_id": str(existing.id), "from_user_id": from_user_id, "to_user_id": to_user_id}
            )
            return Outcome(value=existing.id, created=False)

        message = (message or "").strip() or None
        recommendation = Recommendation(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            thing_id=thing_id,
            message=message,
        )
        db_session.add(recommendation)

        try:
            db_session.commit()
        except IntegrityError:
            db_session.rollback()
            existing = self._find_edge(db_session, from_user_id, to_user_id, thing_id)
            if existing is None:
                raise
            return Outcome(value=existing.id, created=False)

        db_session.refresh(recommendation)

        logger.info(
            "Recommendation created",
            extra={
                "recommendation_id": str(recommendation.id),
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "thing_id": str(thing_id)
            }
        )

        thing = db_session.get(Thing, thing_id)
        thing_title = thing.title if thing else "something you recommended"
        display_name = to_user_name or "Someone"

        return Outcome(
            value=recommendation.id,
            created=True,
            notifications=[NotificationIntent(
                user_id=from_user_id,
                type=NotificationType.RECOMMENDATION,
                title="Your recommendation was saved",
                message=f"{display_name} saved {thing_title} from your recommendation",
                data={
                    "from_user_id": to_user_id,
                    "from_user_name": to_user_name,
                    "thing_id": thing_id,
                    "recommendation_id": recommendation.id,
                },
            )],
        )

    def _find_edge(self, db_session: Session, from_user_id: str, to_user_id: str, thing_id: UUID) -> Optional[Recommendation]:
        return db_session.exec(
            select(Recommendation)
            .where(Recommendation.from_user_id == from_user_id)
            .where(Recommendation.to_user_id == to_user_id)
            .where(Recommendation.thing_id == thing_id)
        ).first()

    def recommendations_received(self, db_session: Session, user_id: str) -> List[Recommendation]:
        return list(db_session.exec(
            select(Recommendation)
            .where(Recommendation.to_user_id == user_id)
            .order_by(Recommendation.date.desc())
        ).all())

    def recommendations_given(self, db_session: Session, user_id: str) -> List[Recommendation]:
        return list(db_session.exec(
            select(Recommendation)
            .where(Recommendation.from_user_id == user_id)
            .order_by(Recommendation.date.desc())
        ).all())

    def count_recommendations_given(self, db_session: Session, user_id: str) -> int:
        return db_session.exec(
            select(func.count()).select_from(Recommendation).where(Recommendation.from_user_id == user_id)
        ).one()
