import os
from typing import Optional, List
from dotenv import load_dotenv
from pathlib import Path

# Load .env from project folder explicitly (works even if CWD differs)
_BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=_BASE_DIR / ".env")


class Settings:
    # Database
    DATABASE_URL: str = os.getenv("REX_DATABASE_URL", "sqlite:///./rex.db")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8010"))
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"

    # CORS
    ALLOWED_ORIGINS: List[str] = os.getenv("ALLOWED_ORIGINS", "*").split(",")

    # External catalog providers
    GOOGLE_BOOKS_API_KEY: Optional[str] = os.getenv("GOOGLE_BOOKS_API_KEY")
    TMDB_API_KEY: Optional[str] = os.getenv("TMDB_API_KEY")
    GOOGLE_PLACES_API_KEY: Optional[str] = os.getenv("GOOGLE_PLACES_API_KEY")
    PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))
    PROVIDER_MAX_RESULTS: int = int(os.getenv("PROVIDER_MAX_RESULTS", "10"))

    # Feed
    FEED_CACHE_TTL_SECONDS: int = int(os.getenv("FEED_CACHE_TTL_SECONDS", "30"))
    FEED_INTERACTION_LIMIT: int = int(os.getenv("FEED_INTERACTION_LIMIT", "200"))

    # Invitations
    INVITE_CODE_LENGTH: int = int(os.getenv("INVITE_CODE_LENGTH", "6"))
    INVITE_CODE_MAX_ATTEMPTS: int = int(os.getenv("INVITE_CODE_MAX_ATTEMPTS", "5"))
    INVITE_BASE_URL: str = os.getenv("INVITE_BASE_URL", "http://localhost:3000")


settings = Settings()
