from services.catalog.catalog_service import CatalogService, ThingNotFoundError, identity_key_for
from services.catalog.provider_clients import GoogleBooksClient, GooglePlacesClient, TMDbClient

__all__ = [
    "CatalogService",
    "ThingNotFoundError",
    "identity_key_for",
    "GoogleBooksClient",
    "GooglePlacesClient",
    "TMDbClient",
]
