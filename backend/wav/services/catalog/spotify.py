"""
Spotify Web API adapter for the track catalog.

Uses the client-credentials flow. The access token is held in an injected
TokenCache so callers (and tests) control its lifetime.
"""
import asyncio
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import httpx
import structlog

from wav.core.config import settings
from wav.core.exceptions import ProviderUnavailableError
from wav.core.utils import utc_now
from wav.services.catalog.base import (
    AVAILABLE_GENRES,
    GENRE_QUERIES,
    AudioFeatures,
    CatalogTrack,
    TrackCatalog,
)

logger = structlog.get_logger()

# Refresh tokens this long before they actually expire
TOKEN_EXPIRY_MARGIN = timedelta(seconds=60)
DEFAULT_ALBUM_ART = "/default-album-art.jpg"


@dataclass
class CachedToken:
    access_token: str
    expires_at: datetime


class TokenCache:
    """Holds one access token and knows when it needs refreshing."""

    def __init__(self) -> None:
        self._token: CachedToken | None = None
        self._lock = asyncio.Lock()

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    def get(self, now: datetime | None = None) -> str | None:
        now = now or utc_now()
        if self._token and self._token.expires_at > now + TOKEN_EXPIRY_MARGIN:
            return self._token.access_token
        return None

    def set(self, access_token: str, expires_in: int, now: datetime | None = None) -> None:
        now = now or utc_now()
        self._token = CachedToken(access_token, now + timedelta(seconds=expires_in))

    def clear(self) -> None:
        self._token = None


def best_album_art(images: list[dict[str, Any]]) -> str:
    """Prefer a 300-640px image, fall back to the largest."""
    if not images:
        return DEFAULT_ALBUM_ART
    ordered = sorted(images, key=lambda img: img.get("width") or 0, reverse=True)
    for img in ordered:
        if 300 <= (img.get("width") or 0) <= 640:
            return img["url"]
    return ordered[0]["url"]


def parse_track(data: dict[str, Any], genre: str | None = None) -> CatalogTrack:
    album = data.get("album") or {}
    return CatalogTrack(
        external_id=data["id"],
        name=data.get("name", "Unknown Track"),
        artists=[a.get("name", "") for a in data.get("artists", [])],
        album_name=album.get("name", "Unknown Album"),
        album_art_url=best_album_art(album.get("images", [])),
        preview_url=data.get("preview_url"),
        popularity=data.get("popularity") or 50,
        genre=genre,
    )


class SpotifyCatalog(TrackCatalog):
    """Track catalog backed by the Spotify Web API."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_cache: TokenCache | None = None,
        client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
    ):
        self.client_id = client_id if client_id is not None else settings.spotify_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.spotify_client_secret
        )
        self.token_cache = token_cache or TokenCache()
        self._client = client
        self._rng = rng or random.Random()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=settings.catalog_timeout_seconds)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _access_token(self) -> str:
        token = self.token_cache.get()
        if token:
            return token

        if not self.client_id or not self.client_secret:
            raise ProviderUnavailableError("Track catalog credentials are not configured")

        async with self.token_cache.lock:
            # Another request may have refreshed while we waited
            token = self.token_cache.get()
            if token:
                return token

            client = await self._get_client()
            try:
                response = await client.post(
                    settings.spotify_accounts_url,
                    data={"grant_type": "client_credentials"},
                    auth=(self.client_id, self.client_secret),
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("catalog_token_request_failed", error=str(e))
                raise ProviderUnavailableError("Track catalog authentication failed") from e

            payload = response.json()
            self.token_cache.set(payload["access_token"], int(payload.get("expires_in", 3600)))
            return payload["access_token"]

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """
        GET an API path. Returns None on 404, raises ProviderUnavailableError
        on transport errors, timeouts and server errors.
        """
        token = await self._access_token()
        client = await self._get_client()
        try:
            response = await client.get(
                f"{settings.spotify_api_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error("catalog_request_failed", path=path, error=str(e))
            raise ProviderUnavailableError("Track catalog is unavailable") from e

        if response.status_code == 401:
            self.token_cache.clear()
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.warning(
                "catalog_error_status",
                path=path,
                status=response.status_code,
            )
            raise ProviderUnavailableError(
                f"Track catalog returned status {response.status_code}"
            )
        return response.json()

    async def _search_genre(self, genre: str, limit: int = 50) -> list[dict[str, Any]]:
        queries = GENRE_QUERIES.get(genre.lower(), [genre])
        query = self._rng.choice(queries)
        year = 2015 + self._rng.randrange(10)
        data = await self._request(
            "/search",
            params={
                "q": f"genre:{query} year:{year - 2}-{year + 2}",
                "type": "track",
                "limit": limit,
                "offset": self._rng.randrange(100),
                "market": settings.spotify_market,
            },
        )
        items = ((data or {}).get("tracks") or {}).get("items") or []
        return [
            t for t in items
            if t and t.get("artists") and (t.get("album") or {}).get("images")
        ]

    async def _audio_features(self, track_ids: list[str]) -> dict[str, AudioFeatures]:
        if not track_ids:
            return {}
        try:
            data = await self._request("/audio-features", params={"ids": ",".join(track_ids)})
        except ProviderUnavailableError:
            # Audio features only refine bpm; cards can be minted without them
            logger.warning("audio_features_unavailable", count=len(track_ids))
            return {}
        features = {}
        for item in (data or {}).get("audio_features") or []:
            if item and item.get("tempo") is not None:
                features[item["id"]] = AudioFeatures(
                    tempo=float(item["tempo"]),
                    energy=item.get("energy"),
                    danceability=item.get("danceability"),
                )
        return features

    async def random_track(self, genre: str) -> CatalogTrack | None:
        items = await self._search_genre(genre)
        if not items:
            return None
        track = parse_track(self._rng.choice(items), genre=genre)
        features = await self._audio_features([track.external_id])
        track.audio_features = features.get(track.external_id)
        return track

    async def random_tracks(
        self,
        count: int,
        genres: list[str] | None = None,
    ) -> list[CatalogTrack]:
        pool = [g for g in (genres or []) if g] or AVAILABLE_GENRES
        picked_genres = [self._rng.choice(pool) for _ in range(count + 5)]

        results = await asyncio.gather(
            *(self._search_genre(g) for g in picked_genres),
            return_exceptions=True,
        )

        seen: set[str] = set()
        tracks: list[CatalogTrack] = []
        for genre, items in zip(picked_genres, results):
            if len(tracks) >= count:
                break
            if isinstance(items, BaseException):
                logger.warning("genre_search_failed", genre=genre, error=str(items))
                continue
            fresh = [t for t in items if t["id"] not in seen]
            if not fresh:
                continue
            track = parse_track(self._rng.choice(fresh), genre=genre)
            seen.add(track.external_id)
            tracks.append(track)

        if len(tracks) < count:
            logger.warning("catalog_short_sample", got=len(tracks), wanted=count)

        features = await self._audio_features([t.external_id for t in tracks])
        for track in tracks:
            track.audio_features = features.get(track.external_id)
        return tracks

    async def get_track(self, external_id: str) -> CatalogTrack | None:
        data = await self._request(f"/tracks/{external_id}")
        if data is None:
            return None
        return parse_track(data)
