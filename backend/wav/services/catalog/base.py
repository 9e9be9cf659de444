"""
Base classes for track catalog providers.

Defines the interface the card economy consumes for track metadata. The
catalog is an external collaborator: everything behind this interface is
replaceable.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

GENRE_QUERIES: dict[str, list[str]] = {
    "rap": ["hip hop", "rap", "trap", "drill"],
    "pop": ["pop", "dance pop", "synth pop"],
    "rock": ["rock", "alternative rock", "indie rock"],
    "electronic": ["electronic", "edm", "house", "techno"],
    "rnb": ["r&b", "soul", "neo soul"],
    "jazz": ["jazz", "smooth jazz", "jazz fusion"],
    "country": ["country", "country pop", "americana"],
    "latin": ["latin", "reggaeton", "latin pop"],
    "indie": ["indie", "indie pop", "indie folk"],
    "metal": ["metal", "heavy metal", "hard rock"],
}

AVAILABLE_GENRES = list(GENRE_QUERIES)


@dataclass
class AudioFeatures:
    """Subset of audio analysis used to seed card stats."""
    tempo: float
    energy: float | None = None
    danceability: float | None = None


@dataclass
class CatalogTrack:
    """A track as returned by the catalog."""
    external_id: str
    name: str
    artists: list[str]
    album_name: str = ""
    album_art_url: str = ""
    preview_url: str | None = None
    popularity: int = 50
    audio_features: AudioFeatures | None = None
    genre: str | None = None

    @property
    def artist_name(self) -> str:
        return ", ".join(self.artists)


@dataclass
class TrackSelection:
    """
    A concrete track chosen for acquisition, with its card stats resolved.

    Produced either by the presentation layer (wheel spin) or from a
    CatalogTrack via derive_card_stats.
    """
    external_track_id: str
    song_name: str
    artist_name: str
    momentum: int
    bpm: int = 120
    album_name: str = ""
    album_art_url: str = ""
    preview_url: str | None = None
    popularity: int = 50
    genre: str = "mixed"
    extra: dict = field(default_factory=dict)


class TrackCatalog(ABC):
    """
    Abstract track catalog.

    Implementations raise ProviderUnavailableError when the upstream
    service fails or times out, and return None/empty when nothing matched.
    """

    @abstractmethod
    async def random_track(self, genre: str) -> CatalogTrack | None:
        """Return a random track for a genre."""

    @abstractmethod
    async def random_tracks(
        self,
        count: int,
        genres: list[str] | None = None,
    ) -> list[CatalogTrack]:
        """Return up to count random tracks, optionally biased to genres."""

    @abstractmethod
    async def get_track(self, external_id: str) -> CatalogTrack | None:
        """Look up a single track by its external id."""

    async def close(self) -> None:
        """Release any held resources."""
