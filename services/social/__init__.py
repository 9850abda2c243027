from services.social.follow_service import FollowService
from services.social.profile_service import ProfileService, UsernameUnavailableError
from services.social.invitation_service import InvitationService, InvitationCodeExhaustedError
from services.social.tag_service import TagService
from services.social.comment_service import CommentService

__all__ = [
    "FollowService",
    "ProfileService",
    "UsernameUnavailableError",
    "InvitationService",
    "InvitationCodeExhaustedError",
    "TagService",
    "CommentService",
]
