from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
from uuid import UUID
from pydantic import BaseModel
from sqlmodel import Session

from config.database import get_session
from routes.dependencies import CurrentUser, get_current_user, domain_errors
from services.communication.notification_service import NotificationService, notification_dispatcher
from services.core.feed_service import FeedService
from services.core.recommendation_service import RecommendationService
from services.social.follow_service import FollowService
from services.social.profile_service import ProfileService
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(tags=["users"])


class UsernameRequest(BaseModel):
    username: str


@router.put("/users/me")
def sync_profile(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        return ProfileService().ensure_profile(session, current_user.id, current_user.name)


@router.post("/users/me/username")
def reserve_username(
    request: UsernameRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    service = ProfileService()
    with domain_errors():
        service.ensure_profile(session, current_user.id, current_user.name)
        profile = service.reserve_username(session, current_user.id, request.username)
    return {"username": profile.username}


@router.get("/users/username-available")
def username_available(username: str, session: Session = Depends(get_session)):
    return {"available": ProfileService().check_username_availability(session, username)}


@router.get("/users/search")
def search_users(q: str = Query(..., min_length=1), session: Session = Depends(get_session)):
    return ProfileService().search_users(session, q)


@router.get("/users/{user_id}")
def get_user(user_id: str, session: Session = Depends(get_session)):
    profile = ProfileService().get_profile(session, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="user not found")
    return {
        "profile": profile,
        "recommendations_given": RecommendationService().count_recommendations_given(session, user_id),
    }


@router.post("/users/{user_id}/follow")
def follow(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        outcome = FollowService().follow_user(session, current_user.id, user_id, current_user.name)
    notification_dispatcher.dispatch(session, outcome.notifications)
    return {"following": True, "changed": outcome.created}


@router.delete("/users/{user_id}/follow")
def unfollow(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return {"following": False, "changed": FollowService().unfollow_user(session, current_user.id, user_id)}


@router.get("/users/{user_id}/following")
def following(user_id: str, session: Session = Depends(get_session)):
    ids = FollowService().get_following(session, user_id)
    return ProfileService().get_profiles(session, ids)


@router.get("/users/{user_id}/followers")
def followers(user_id: str, session: Session = Depends(get_session)):
    ids = FollowService().get_followers(session, user_id)
    return ProfileService().get_profiles(session, ids)


@router.get("/feed")
def feed(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    following_ids = FollowService().get_following(session, current_user.id)
    items = FeedService().build_feed(session, current_user.id, following_ids)
    return {"items": [item.to_dict() for item in items], "count": len(items)}


@router.get("/notifications")
def notifications(
    unread_only: bool = False,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return NotificationService().get_notifications(session, current_user.id, unread_only=unread_only)


@router.post("/notifications/read-all")
def mark_all_read(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return {"updated": NotificationService().mark_all_read(session, current_user.id)}


@router.post("/notifications/{notification_id}/read")
def mark_read(
    notification_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    if not NotificationService().mark_read(session, notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="notification not found")
    return {"status": "ok"}
