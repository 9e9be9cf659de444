"""Tests for the track catalog boundary."""
import random
import re
from datetime import timedelta

import httpx
import pytest
from structlog.testing import CapturingLogger

from wav.core.exceptions import ProviderUnavailableError
from wav.core.utils import utc_now
from wav.services.catalog import (
    AudioFeatures,
    CatalogTrack,
    SpotifyCatalog,
    StaticCatalog,
    TokenCache,
    derive_card_stats,
    to_selection,
)
from wav.services.catalog import spotify as spotify_module
from wav.services.catalog.spotify import best_album_art


def _track(popularity: int = 50, tempo: float | None = None) -> CatalogTrack:
    return CatalogTrack(
        external_id="t1",
        name="Track",
        artists=["One", "Two"],
        popularity=popularity,
        audio_features=AudioFeatures(tempo=tempo) if tempo is not None else None,
    )


class TestCardStats:

    @pytest.mark.parametrize("seed", range(20))
    def test_momentum_within_popularity_band(self, seed):
        momentum, _ = derive_card_stats(_track(popularity=40), random.Random(seed))
        assert 40 <= momentum <= 60

    def test_momentum_clamped_high(self):
        momentum, _ = derive_card_stats(_track(popularity=95), random.Random(3))
        assert momentum <= 100

    def test_momentum_clamped_low(self):
        momentum, _ = derive_card_stats(_track(popularity=0), random.Random(3))
        assert momentum == 1

    def test_bpm_from_tempo(self):
        _, bpm = derive_card_stats(_track(tempo=127.6))
        assert bpm == 128

    @pytest.mark.parametrize("seed", range(10))
    def test_bpm_fallback_range(self, seed):
        _, bpm = derive_card_stats(_track(), random.Random(seed))
        assert 120 <= bpm < 160

    def test_to_selection(self):
        selection = to_selection(_track(), genre="Pop")
        assert selection.external_track_id == "t1"
        assert selection.artist_name == "One, Two"
        assert selection.genre == "pop"


class TestStaticCatalog:

    @pytest.mark.asyncio
    async def test_random_track_prefers_genre(self, static_catalog):
        for _ in range(10):
            track = await static_catalog.random_track("rock")
            assert track.external_id == "trk-rock-1"

    @pytest.mark.asyncio
    async def test_random_tracks_are_distinct(self, static_catalog):
        tracks = await static_catalog.random_tracks(2)
        assert len({t.external_id for t in tracks}) == 2

    @pytest.mark.asyncio
    async def test_get_track(self, static_catalog):
        assert (await static_catalog.get_track("trk-pop-2")).name == "Pop Two"
        assert await static_catalog.get_track("missing") is None

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await StaticCatalog([]).random_track("pop") is None


class TestTokenCache:

    def test_expires_with_margin(self):
        now = utc_now()
        cache = TokenCache()
        cache.set("abc", expires_in=120, now=now)

        assert cache.get(now) == "abc"
        assert cache.get(now + timedelta(seconds=61)) is None

    def test_clear(self):
        cache = TokenCache()
        cache.set("abc", expires_in=3600)
        cache.clear()
        assert cache.get() is None


def test_best_album_art():
    images = [
        {"url": "big", "width": 1000},
        {"url": "medium", "width": 640},
        {"url": "small", "width": 64},
    ]
    assert best_album_art(images) == "medium"
    assert best_album_art([{"url": "tiny", "width": 64}]) == "tiny"
    assert best_album_art([]).endswith(".jpg")


SEARCH_ITEM = {
    "id": "sp1",
    "name": "Found",
    "artists": [{"name": "Somebody"}],
    "album": {"name": "Album", "images": [{"url": "art", "width": 300}]},
    "preview_url": None,
    "popularity": 70,
}


def _spotify(handler) -> SpotifyCatalog:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SpotifyCatalog(
        client_id="id",
        client_secret="secret",
        token_cache=TokenCache(),
        client=client,
        rng=random.Random(0),
    )


class TestSpotifyCatalog:

    @pytest.mark.asyncio
    async def test_random_track_with_audio_features(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            assert request.headers["Authorization"] == "Bearer tok"
            if request.url.path.endswith("/search"):
                return httpx.Response(200, json={"tracks": {"items": [SEARCH_ITEM]}})
            if request.url.path.endswith("/audio-features"):
                return httpx.Response(200, json={"audio_features": [{"id": "sp1", "tempo": 99.4}]})
            return httpx.Response(404)

        catalog = _spotify(handler)
        track = await catalog.random_track("rock")

        assert track.external_id == "sp1"
        assert track.artist_name == "Somebody"
        assert track.album_art_url == "art"
        assert track.audio_features.tempo == pytest.approx(99.4)
        assert track.genre == "rock"

        # Token is reused from the cache
        await catalog.random_track("rock")
        assert sum(1 for path in calls if path.endswith("/token")) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_provider_unavailable(self, monkeypatch):
        captured = CapturingLogger()
        monkeypatch.setattr(spotify_module, "logger", captured)

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            return httpx.Response(503)

        with pytest.raises(ProviderUnavailableError):
            await _spotify(handler).random_track("pop")

        events = [call.args[0] for call in captured.calls]
        assert "catalog_error_status" in events
        assert all(re.fullmatch(r"[a-z]+(_[a-z]+)*", event) for event in events)

    @pytest.mark.asyncio
    async def test_transport_error_is_provider_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(ProviderUnavailableError):
            await _spotify(handler).get_track("sp1")

    @pytest.mark.asyncio
    async def test_missing_track(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            return httpx.Response(404)

        assert await _spotify(handler).get_track("nope") is None

    @pytest.mark.asyncio
    async def test_unconfigured_credentials(self):
        catalog = SpotifyCatalog(client_id="", client_secret="", token_cache=TokenCache())
        with pytest.raises(ProviderUnavailableError):
            await catalog.get_track("sp1")
