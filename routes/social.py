from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field
from sqlmodel import Session

from config.database import get_session
from models.interaction import InteractionState
from routes.dependencies import CurrentUser, get_current_user, domain_errors
from services.communication.notification_service import notification_dispatcher
from services.core.recommendation_service import RecommendationService
from services.social.invitation_service import InvitationService
from services.social.profile_service import ProfileService
from services.social.tag_service import TagService
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(tags=["social"])


class RecommendationRequest(BaseModel):
    to_user_id: str
    thing_id: UUID
    message: Optional[str] = None


class InvitationRequest(BaseModel):
    thing_id: UUID
    interaction_id: Optional[UUID] = None
    inviter_username: Optional[str] = None


class RedeemRequest(BaseModel):
    is_new_account: bool = False


class TagRequest(BaseModel):
    source_interaction_id: UUID
    thing_id: UUID
    tagged_user_id: Optional[str] = None
    tagged_name: str
    tagged_email: Optional[str] = None
    state: InteractionState
    rating: Optional[int] = Field(None, ge=0, le=5)


@router.post("/recommendations")
def create_recommendation(
    request: RecommendationRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    recipient = ProfileService().get_profile(session, request.to_user_id)
    with domain_errors():
        outcome = RecommendationService().create_recommendation(
            session,
            current_user.id,
            request.to_user_id,
            request.thing_id,
            request.message,
            to_user_name=recipient.name if recipient else None,
        )
    notification_dispatcher.dispatch(session, outcome.notifications)
    return {"recommendation_id": str(outcome.value), "created": outcome.created}


@router.get("/recommendations/received")
def recommendations_received(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return RecommendationService().recommendations_received(session, current_user.id)


@router.get("/recommendations/given")
def recommendations_given(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return RecommendationService().recommendations_given(session, current_user.id)


@router.post("/invitations")
def create_invitation(
    request: InvitationRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    service = InvitationService()
    with domain_errors():
        code = service.create_invitation(
            session,
            inviter_id=current_user.id,
            inviter_name=current_user.name,
            thing_id=request.thing_id,
            interaction_id=request.interaction_id,
            inviter_username=request.inviter_username,
        )
    return {"code": code, "url": service.invite_url(code)}


@router.get("/invitations/{code}")
def get_invitation(code: str, session: Session = Depends(get_session)):
    invitation = InvitationService().get_invitation(session, code)
    if not invitation:
        raise HTTPException(status_code=404, detail="invitation not found")
    return {
        "code": invitation.code,
        "inviter_name": invitation.inviter_name,
        "inviter_username": invitation.inviter_username,
        "thing_id": str(invitation.thing_id),
        "thing_title": invitation.thing_title,
    }


@router.post("/invitations/{code}/redeem")
def redeem_invitation(
    code: str,
    request: RedeemRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        outcome = InvitationService().redeem_invitation(
            session, current_user.id, current_user.name, code, request.is_new_account
        )
    notification_dispatcher.dispatch(session, outcome.notifications)
    return {"success": bool(outcome.value)}


@router.post("/tags")
def create_tag(
    request: TagRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        outcome = TagService().create_tag(
            session,
            source_interaction_id=request.source_interaction_id,
            tagger_id=current_user.id,
            tagger_name=current_user.name,
            tagged_user_id=request.tagged_user_id,
            tagged_name=request.tagged_name,
            thing_id=request.thing_id,
            state=request.state.value,
            rating=request.rating,
            tagged_email=request.tagged_email,
        )
    notification_dispatcher.dispatch(session, outcome.notifications)
    return {"tag_id": str(outcome.value), "created": outcome.created}


@router.get("/tags/pending")
def pending_tags(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return TagService().get_pending_tags(session, current_user.id)


@router.post("/tags/{tag_id}/accept")
def accept_tag(
    tag_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        outcome = TagService().accept_tag(session, tag_id, current_user.id, current_user.name)
    notification_dispatcher.dispatch(session, outcome.notifications)
    return {"success": bool(outcome.value)}


@router.post("/tags/{tag_id}/decline")
def decline_tag(
    tag_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return {"success": TagService().decline_tag(session, tag_id, current_user.id)}


@router.get("/tags/{tag_id}")
def get_tag(tag_id: UUID, session: Session = Depends(get_session)):
    tag = TagService().get_tag(session, tag_id)
    if not tag:
        raise HTTPException(status_code=404, detail="tag not found")
    return tag
