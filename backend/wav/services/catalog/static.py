"""
In-memory track catalog for development and tests.

Serves tracks from a fixed list without any network access.
"""
import random

from wav.services.catalog.base import CatalogTrack, TrackCatalog


class StaticCatalog(TrackCatalog):
    """Catalog backed by a fixed list of tracks."""

    def __init__(self, tracks: list[CatalogTrack], rng: random.Random | None = None):
        self._tracks = list(tracks)
        self._by_id = {t.external_id: t for t in self._tracks}
        self._rng = rng or random.Random()

    async def random_track(self, genre: str) -> CatalogTrack | None:
        matching = [t for t in self._tracks if (t.genre or "").lower() == genre.lower()]
        pool = matching or self._tracks
        if not pool:
            return None
        return self._rng.choice(pool)

    async def random_tracks(
        self,
        count: int,
        genres: list[str] | None = None,
    ) -> list[CatalogTrack]:
        pool = self._tracks
        if genres:
            wanted = {g.lower() for g in genres}
            pool = [t for t in self._tracks if (t.genre or "").lower() in wanted] or self._tracks
        if len(pool) <= count:
            return self._rng.sample(pool, len(pool))
        return self._rng.sample(pool, count)

    async def get_track(self, external_id: str) -> CatalogTrack | None:
        return self._by_id.get(external_id)


DEMO_TRACKS = [
    CatalogTrack(
        external_id="demo-pop-1",
        name="Midnight Drive",
        artists=["The Neon Lines"],
        album_name="City Glow",
        popularity=72,
        genre="pop",
    ),
    CatalogTrack(
        external_id="demo-rap-1",
        name="Block Theory",
        artists=["K. Vance"],
        album_name="Concrete",
        popularity=64,
        genre="rap",
    ),
    CatalogTrack(
        external_id="demo-rock-1",
        name="Static Hearts",
        artists=["Paper Wolves"],
        album_name="Feedback",
        popularity=55,
        genre="rock",
    ),
    CatalogTrack(
        external_id="demo-electronic-1",
        name="Pulsewidth",
        artists=["Ostra"],
        album_name="Modular",
        popularity=48,
        genre="electronic",
    ),
    CatalogTrack(
        external_id="demo-jazz-1",
        name="Blue Interval",
        artists=["Mara Quintet"],
        album_name="Late Set",
        popularity=31,
        genre="jazz",
    ),
]
