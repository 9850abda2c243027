import re
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from models.social import UserProfile
from utils.logger import setup_logger

logger = setup_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]{3,30}$")


class UsernameUnavailableError(Exception):
    pass


def normalize_username(username: str) -> str:
    normalized = (username or "").strip().lower()
    if not USERNAME_PATTERN.match(normalized):
        raise ValueError("username must be 3-30 characters of lowercase letters, digits or underscores")
    return normalized


class ProfileService:

    def ensure_profile(self, db_session: Session, user_id: str, name: str) -> UserProfile:
        if not user_id:
            raise ValueError("user_id is required")

        profile = db_session.get(UserProfile, user_id)
        if profile:
            if name and profile.name != name:
                profile.name = name
                db_session.add(profile)
                db_session.commit()
                db_session.refresh(profile)
            return profile

        profile = UserProfile(id=user_id, name=name or user_id)
        db_session.add(profile)
        try:
            db_session.commit()
        except IntegrityError:
            db_session.rollback()
            return db_session.get(UserProfile, user_id)

        db_session.refresh(profile)
        logger.info("User profile created", extra={"user_id": user_id})
        return profile

    def get_profile(self, db_session: Session, user_id: str) -> Optional[UserProfile]:
        return db_session.get(UserProfile, user_id)

    def check_username_availability(self, db_session: Session, username: str) -> bool:
        try:
            normalized = normalize_username(username)
        except ValueError:
            return False

        taken = db_session.exec(select(UserProfile).where(UserProfile.username == normalized)).first()
        return taken is None

    def reserve_username(self, db_session: Session, user_id: str, username: str) -> UserProfile:
        """
        Claim ``username`` for ``user_id`` inside one transaction.

        The unique index on ``user_profile.username`` decides races: the
        losing commit raises ``UsernameUnavailableError`` and may be retried
        with another name.
        """
        normalized = normalize_username(username)

        profile = db_session.exec(
            select(UserProfile).where(UserProfile.id == user_id).with_for_update()
        ).first()
        if not profile:
            raise ValueError(f"user {user_id} has no profile")

        if profile.username == normalized:
            return profile

        holder = db_session.exec(select(UserProfile).where(UserProfile.username == normalized)).first()
        if holder and holder.id != user_id:
            db_session.rollback()
            raise UsernameUnavailableError(f"username {normalized} is not available")

        profile.username = normalized
        db_session.add(profile)
        try:
            db_session.commit()
        except IntegrityError:
            db_session.rollback()
            logger.info("Username reservation conflict", extra={"user_id": user_id, "username": normalized})
            raise UsernameUnavailableError(f"username {normalized} is not available")

        db_session.refresh(profile)
        logger.info("Username reserved", extra={"user_id": user_id, "username": normalized})
        return profile

    def search_users(self, db_session: Session, term: str, limit: int = 20) -> List[UserProfile]:
        term = (term or "").strip().lower()
        if not term:
            return []

        return list(db_session.exec(
            select(UserProfile)
            .where(or_(
                func.lower(UserProfile.name).like(f"{term}%"),
                UserProfile.username.like(f"{term}%"),
            ))
            .order_by(UserProfile.name)
            .limit(limit)
        ).all())

    def get_profiles(self, db_session: Session, user_ids: List[str]) -> List[UserProfile]:
        if not user_ids:
            return []
        return list(db_session.exec(select(UserProfile).where(UserProfile.id.in_(user_ids))).all())
