from contextlib import contextmanager
from typing import Iterator
from fastapi import Header, HTTPException
from pydantic import BaseModel

from services.catalog.catalog_service import ThingNotFoundError
from services.core.interaction_service import InteractionNotFoundError, PermissionDeniedError
from services.social.profile_service import UsernameUnavailableError
from services.social.invitation_service import InvitationCodeExhaustedError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class CurrentUser(BaseModel):
    id: str
    name: str


def get_current_user(
    x_user_id: str = Header(None),
    x_user_name: str = Header(None)
) -> CurrentUser:
    # identity is established upstream; we only receive the opaque id and display name
    if not x_user_id:
        raise HTTPException(status_code=401, detail="missing X-User-Id header")
    return CurrentUser(id=x_user_id, name=x_user_name or x_user_id)


@contextmanager
def domain_errors() -> Iterator[None]:
    try:
        yield
    except (ThingNotFoundError, InteractionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except UsernameUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvitationCodeExhaustedError as e:
        logger.error("Invite code generation exhausted", extra={"error": str(e)})
        raise HTTPException(status_code=503, detail="could not create invitation, try again")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
