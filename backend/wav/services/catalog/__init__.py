"""
Track catalog providers.
"""
from wav.core.config import settings
from wav.services.catalog.base import (
    AVAILABLE_GENRES,
    AudioFeatures,
    CatalogTrack,
    TrackCatalog,
    TrackSelection,
)
from wav.services.catalog.spotify import SpotifyCatalog, TokenCache
from wav.services.catalog.static import DEMO_TRACKS, StaticCatalog
from wav.services.catalog.stats import derive_card_stats, to_selection


def create_catalog() -> TrackCatalog:
    """Spotify when credentials are configured, otherwise the demo catalog."""
    if settings.catalog_configured:
        return SpotifyCatalog(token_cache=TokenCache())
    return StaticCatalog(DEMO_TRACKS)


__all__ = [
    "AVAILABLE_GENRES",
    "AudioFeatures",
    "CatalogTrack",
    "TrackCatalog",
    "TrackSelection",
    "SpotifyCatalog",
    "StaticCatalog",
    "TokenCache",
    "create_catalog",
    "derive_card_stats",
    "to_selection",
]
