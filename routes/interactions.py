from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field
from sqlmodel import Session

from config.database import get_session
from models.interaction import InteractionState, Visibility
from models.thing import RawItem
from routes.dependencies import CurrentUser, get_current_user, domain_errors
from services.catalog.catalog_service import CatalogService
from services.communication.notification_service import notification_dispatcher
from services.core.interaction_service import InteractionService, InteractionNotFoundError
from services.core.recommendation_service import RecommendationService
from services.social.invitation_service import InvitationCodeExhaustedError
from services.social.tag_service import TagService
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/interactions", tags=["interactions"])


class TaggedPerson(BaseModel):
    user_id: Optional[str] = None
    name: str
    email: Optional[str] = None


class LogInteractionRequest(BaseModel):
    thing_id: Optional[UUID] = None
    item: Optional[RawItem] = None
    state: InteractionState
    visibility: Visibility = Visibility.FRIENDS
    rating: Optional[int] = Field(None, ge=0, le=5)
    notes: Optional[str] = None
    content: Optional[str] = None
    photos: Optional[List[str]] = None
    recommended_by_user_id: Optional[str] = None
    recommendation_message: Optional[str] = None
    experienced_with: List[TaggedPerson] = []


class UpdateContentRequest(BaseModel):
    content: Optional[str] = None
    photos: Optional[List[str]] = None
    rating: Optional[int] = Field(None, ge=0, le=5)
    notes: Optional[str] = None


@router.post("")
def log_interaction(
    request: LogInteractionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    if request.thing_id is None and request.item is None:
        raise HTTPException(status_code=400, detail="either thing_id or item is required")

    notifications = []

    with domain_errors():
        thing_id = request.thing_id or CatalogService().resolve_thing(session, request.item, current_user.id)

        interaction_id = InteractionService().upsert_interaction(
            session,
            user_id=current_user.id,
            user_name=current_user.name,
            thing_id=thing_id,
            state=request.state.value,
            visibility=request.visibility.value,
            rating=request.rating,
            notes=request.notes,
            content=request.content,
            photos=request.photos,
        )

        if request.recommended_by_user_id and request.recommended_by_user_id != current_user.id:
            outcome = RecommendationService().create_recommendation(
                session,
                from_user_id=request.recommended_by_user_id,
                to_user_id=current_user.id,
                thing_id=thing_id,
                message=request.recommendation_message,
                to_user_name=current_user.name,
            )
            notifications.extend(outcome.notifications)

    tag_service = TagService()
    tag_ids = []
    for person in request.experienced_with:
        try:
            outcome = tag_service.create_tag(
                session,
                source_interaction_id=interaction_id,
                tagger_id=current_user.id,
                tagger_name=current_user.name,
                tagged_user_id=person.user_id,
                tagged_name=person.name,
                tagged_email=person.email,
                thing_id=thing_id,
                state=request.state.value,
                rating=request.rating,
            )
        except (ValueError, InteractionNotFoundError, InvitationCodeExhaustedError) as e:
            logger.warning(
                "Tag creation failed",
                extra={"interaction_id": str(interaction_id), "tagged_name": person.name, "error": str(e)}
            )
            continue
        tag_ids.append(str(outcome.value))
        notifications.extend(outcome.notifications)

    notification_dispatcher.dispatch(session, notifications)

    return {
        "thing_id": str(thing_id),
        "interaction_id": str(interaction_id),
        "tag_ids": tag_ids,
    }


@router.get("/mine")
def my_interactions(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return InteractionService().get_user_interactions(session, current_user.id)


@router.patch("/{interaction_id}")
def update_interaction(
    interaction_id: UUID,
    request: UpdateContentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        return InteractionService().update_interaction_content(
            session,
            interaction_id,
            current_user.id,
            content=request.content,
            photos=request.photos,
            rating=request.rating,
            notes=request.notes,
        )


@router.delete("/{interaction_id}")
def remove_interaction(
    interaction_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        removed = InteractionService().remove_interaction(session, interaction_id, current_user.id)
    return {"removed": removed}


@router.post("/{interaction_id}/like")
def like_interaction(
    interaction_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        outcome = InteractionService().like_interaction(session, interaction_id, current_user.id, current_user.name)
    notification_dispatcher.dispatch(session, outcome.notifications)
    return {"liked": True, "changed": outcome.created}


@router.delete("/{interaction_id}/like")
def unlike_interaction(
    interaction_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        changed = InteractionService().unlike_interaction(session, interaction_id, current_user.id)
    return {"liked": False, "changed": changed}
