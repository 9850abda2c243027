from typing import List, Optional
from uuid import UUID
from sqlmodel import Session, select

from models.comment import Comment
from models.interaction import UserThingInteraction
from models.notification import NotificationIntent, NotificationType
from models.outcome import Outcome
from models.thing import Thing
from services.catalog.catalog_service import ThingNotFoundError
from services.core.interaction_service import InteractionNotFoundError, PermissionDeniedError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class CommentService:

    def add_comment(
        self,
        db_session: Session,
        thing_id: UUID,
        author_id: str,
        author_name: str,
        content: str,
        interaction_id: Optional[UUID] = None
    ) -> Outcome:
        content = (content or "").strip()
        if not content:
            raise ValueError("comment content cannot be empty")

        thing = db_session.exec(select(Thing).where(Thing.id == thing_id).with_for_update()).first()
        if not thing:
            raise ThingNotFoundError(f"thing {thing_id} not found")

        interaction = None
        if interaction_id is not None:
            interaction = db_session.exec(
                select(UserThingInteraction).where(UserThingInteraction.id == interaction_id).with_for_update()
            ).first()
            if not interaction or interaction.thing_id != thing_id:
                raise InteractionNotFoundError(f"interaction {interaction_id} not found on thing {thing_id}")

        comment = Comment(
            thing_id=thing_id,
            interaction_id=interaction_id,
            author_id=author_id,
            author_name=author_name,
            content=content,
        )
        db_session.add(comment)

        thing.comment_count += 1
        db_session.add(thing)
        if interaction is not None:
            interaction.comment_count += 1
            db_session.add(interaction)

        db_session.commit()
        db_session.refresh(comment)

        logger.info(
            "Comment added",
            extra={"comment_id": str(comment.id), "thing_id": str(thing_id), "author_id": author_id}
        )

        outcome = Outcome(value=comment.id, created=True)
        if interaction is not None and interaction.user_id != author_id:
            outcome.notifications.append(NotificationIntent(
                user_id=interaction.user_id,
                type=NotificationType.COMMENT,
                title=f"{author_name} commented",
                message=f"{author_name} commented on {thing.title}",
                data={
                    "from_user_id": author_id,
                    "from_user_name": author_name,
                    "thing_id": thing_id,
                    "interaction_id": interaction_id,
                    "comment_id": comment.id,
                },
            ))
        return outcome

    def delete_comment(self, db_session: Session, comment_id: UUID, user_id: str) -> bool:
        comment = db_session.get(Comment, comment_id)
        if not comment:
            return False

        if comment.author_id != user_id:
            raise PermissionDeniedError("only the author can delete a comment")

        thing = db_session.exec(select(Thing).where(Thing.id == comment.thing_id).with_for_update()).first()
        if thing:
            thing.comment_count = max(0, thing.comment_count - 1)
            db_session.add(thing)

        if comment.interaction_id is not None:
            interaction = db_session.exec(
                select(UserThingInteraction)
                .where(UserThingInteraction.id == comment.interaction_id)
                .with_for_update()
            ).first()
            if interaction:
                interaction.comment_count = max(0, interaction.comment_count - 1)
                db_session.add(interaction)

        db_session.delete(comment)
        db_session.commit()

        logger.info("Comment deleted", extra={"comment_id": str(comment_id), "user_id": user_id})
        return True

    def list_comments(self, db_session: Session, thing_id: UUID) -> List[Comment]:
        return list(db_session.exec(
            select(Comment)
            .where(Comment.thing_id == thing_id)
            .order_by(Comment.created_at.asc())
        ).all())
