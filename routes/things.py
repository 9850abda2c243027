from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from uuid import UUID
from pydantic import BaseModel
from sqlmodel import Session

from config.database import get_session
from models.thing import RawItem
from routes.dependencies import CurrentUser, get_current_user, domain_errors
from services.catalog.catalog_service import CatalogService
from services.communication.notification_service import notification_dispatcher
from services.social.comment_service import CommentService
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(tags=["catalog"])


class CommentRequest(BaseModel):
    content: str
    interaction_id: Optional[UUID] = None


@router.post("/things/resolve")
def resolve_thing(
    item: RawItem,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        thing_id = CatalogService().resolve_thing(session, item, current_user.id)
    return {"thing_id": str(thing_id)}


@router.get("/things/search")
def search_things(q: str = Query(..., min_length=1), session: Session = Depends(get_session)):
    results = CatalogService().universal_search(session, q)
    return {
        "things": results["things"],
        "candidates": [candidate.model_dump() for candidate in results["candidates"]],
    }


@router.get("/things/{thing_id}")
def get_thing(thing_id: UUID, session: Session = Depends(get_session)):
    with domain_errors():
        return CatalogService().get_thing(session, thing_id)


@router.get("/things/{thing_id}/comments")
def list_comments(thing_id: UUID, session: Session = Depends(get_session)):
    return CommentService().list_comments(session, thing_id)


@router.post("/things/{thing_id}/comments")
def add_comment(
    thing_id: UUID,
    request: CommentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        outcome = CommentService().add_comment(
            session, thing_id, current_user.id, current_user.name, request.content, request.interaction_id
        )
    notification_dispatcher.dispatch(session, outcome.notifications)
    return {"comment_id": str(outcome.value)}


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    with domain_errors():
        deleted = CommentService().delete_comment(session, comment_id, current_user.id)
    if not deleted:
        raise HTTPException(status_code=404, detail="comment not found")
    return {"status": "ok"}
