from fastapi import APIRouter, Depends
from sqlmodel import Session, select, func
from datetime import datetime

from config.database import get_session
from models.thing import Thing
from routes.interactions import router as interactions_router
from routes.social import router as social_router
from routes.things import router as things_router
from routes.users import router as users_router
from utils.circuit_breaker import (
    google_books_circuit_breaker,
    google_places_circuit_breaker,
    tmdb_circuit_breaker,
)

router = APIRouter()


@router.get("/health")
def health(session: Session = Depends(get_session)):
    status = {
        "status": "ok",
        "version": "0.1.0",
        "timestamp": datetime.utcnow().isoformat(),
        "providers": [
            breaker.get_state()
            for breaker in (google_places_circuit_breaker, google_books_circuit_breaker, tmdb_circuit_breaker)
        ],
    }
    try:
        status["things_count"] = session.exec(select(func.count()).select_from(Thing)).one()
    except Exception as e:
        status["status"] = "degraded"
        status["database_error"] = str(e)
    return status


router.include_router(things_router)
router.include_router(interactions_router)
router.include_router(social_router)
router.include_router(users_router)
