"""
External catalog providers.

Each client turns a free-text query into ``RawItem`` candidates carrying the
provider's stable identity in ``details`` (ISBN, TMDb media id, place id).
A provider outage, a missing API key or an open circuit all degrade to an
empty candidate list.
"""

from typing import Any, Dict, List, Optional
import httpx

from config.settings import settings
from models.thing import RawItem, ThingCategory, ThingSource
from utils.circuit_breaker import (
    CircuitBreaker,
    google_books_circuit_breaker,
    google_places_circuit_breaker,
    tmdb_circuit_breaker,
)
from utils.fallback import with_fallback, no_candidates
from utils.logger import setup_logger

logger = setup_logger(__name__)

TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"


class ProviderClient:
    name: str = "provider"
    base_url: str = ""

    def __init__(
        self,
        api_key: Optional[str],
        circuit_breaker: CircuitBreaker,
        http_client: Optional[httpx.Client] = None,
        max_results: Optional[int] = None
    ):
        self.api_key = api_key
        self.circuit_breaker = circuit_breaker
        self.http_client = http_client
        self.max_results = max_results or settings.PROVIDER_MAX_RESULTS

    @with_fallback(no_candidates)
    def search(self, query: str) -> List[RawItem]:
        query = (query or "").strip()
        if not query:
            return []

        if not self.api_key:
            logger.warning("Provider API key not configured", extra={"provider": self.name})
            return []

        payload = self.circuit_breaker.call(self._fetch, query)
        candidates = self._parse(payload)[: self.max_results]

        logger.info(
            "Provider search completed",
            extra={"provider": self.name, "query": query, "candidates": len(candidates)}
        )
        return candidates

    def _fetch(self, query: str) -> Dict[str, Any]:
        params = self._params(query)
        if self.http_client is not None:
            response = self.http_client.get(self.base_url, params=params)
        else:
            with httpx.Client(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
                response = client.get(self.base_url, params=params)
        response.raise_for_status()
        return response.json()

    def _params(self, query: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _parse(self, payload: Dict[str, Any]) -> List[RawItem]:
        raise NotImplementedError


class GoogleBooksClient(ProviderClient):
    name = "google_books"
    base_url = "https://www.googleapis.com/books/v1/volumes"

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        super().__init__(
            api_key if api_key is not None else settings.GOOGLE_BOOKS_API_KEY,
            google_books_circuit_breaker,
            http_client,
        )

    def _params(self, query: str) -> Dict[str, Any]:
        return {"q": query, "maxResults": self.max_results, "key": self.api_key}

    def _parse(self, payload: Dict[str, Any]) -> List[RawItem]:
        items = []
        for volume in payload.get("items") or []:
            info = volume.get("volumeInfo") or {}
            if not info.get("title"):
                continue

            identifiers = {
                ident.get("type"): ident.get("identifier")
                for ident in info.get("industryIdentifiers") or []
            }
            image_links = info.get("imageLinks") or {}

            items.append(RawItem(
                title=info["title"],
                category=ThingCategory.BOOK,
                source=ThingSource.GOOGLE_BOOKS,
                source_id=volume.get("id"),
                description=info.get("description"),
                image=image_links.get("thumbnail"),
                details={
                    "author": ", ".join(info.get("authors") or []) or None,
                    "isbn": identifiers.get("ISBN_13") or identifiers.get("ISBN_10"),
                    "published_date": info.get("publishedDate"),
                    "page_count": info.get("pageCount"),
                },
            ))
        return items


class TMDbClient(ProviderClient):
    name = "tmdb"
    base_url = "https://api.themoviedb.org/3/search/multi"

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        super().__init__(
            api_key if api_key is not None else settings.TMDB_API_KEY,
            tmdb_circuit_breaker,
            http_client,
        )

    def _params(self, query: str) -> Dict[str, Any]:
        return {"query": query, "api_key": self.api_key, "include_adult": "false"}

    def _parse(self, payload: Dict[str, Any]) -> List[RawItem]:
        items = []
        for result in payload.get("results") or []:
            media_type = result.get("media_type")
            if media_type not in ("movie", "tv"):
                continue

            title = result.get("title") or result.get("name")
            if not title:
                continue

            release = result.get("release_date") or result.get("first_air_date") or ""
            poster = result.get("poster_path")

            items.append(RawItem(
                title=title,
                category=ThingCategory.FILM,
                source=ThingSource.TMDB,
                source_id=str(result["id"]),
                description=result.get("overview"),
                image=f"{TMDB_IMAGE_BASE_URL}{poster}" if poster else None,
                details={
                    # movie and tv ids are separate number spaces on TMDb
                    "tmdb_id": f"{media_type}/{result['id']}",
                    "media_type": media_type,
                    "year": int(release[:4]) if release[:4].isdigit() else None,
                    "tmdb_rating": result.get("vote_average"),
                },
            ))
        return items


class GooglePlacesClient(ProviderClient):
    name = "google_places"
    base_url = "https://maps.googleapis.com/maps/api/place/textsearch/json"

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        super().__init__(
            api_key if api_key is not None else settings.GOOGLE_PLACES_API_KEY,
            google_places_circuit_breaker,
            http_client,
        )

    def _params(self, query: str) -> Dict[str, Any]:
        return {"query": query, "key": self.api_key}

    def _parse(self, payload: Dict[str, Any]) -> List[RawItem]:
        status = payload.get("status")
        if status not in (None, "OK", "ZERO_RESULTS"):
            raise RuntimeError(f"google places returned status {status}")

        items = []
        for place in payload.get("results") or []:
            if not place.get("place_id") or not place.get("name"):
                continue

            types = place.get("types") or []
            items.append(RawItem(
                title=place["name"],
                category=ThingCategory.PLACE,
                source=ThingSource.GOOGLE_PLACES,
                source_id=place["place_id"],
                details={
                    "place_id": place["place_id"],
                    "address": place.get("formatted_address"),
                    "rating": place.get("rating"),
                    "price_level": place.get("price_level"),
                    "place_type": types[0] if types else None,
                },
            ))
        return items
