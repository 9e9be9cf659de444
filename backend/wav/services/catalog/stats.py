"""
Card stat derivation from raw catalog data.

momentum scales catalog popularity by a random 1.0-1.5 multiplier and is
clamped to the momentum range; bpm comes from the audio tempo when known.
"""
import random

from wav.core.constants import MAX_MOMENTUM, MIN_MOMENTUM
from wav.services.catalog.base import CatalogTrack, TrackSelection

DEFAULT_BPM = 120


def clamp_momentum(value: float) -> int:
    return max(MIN_MOMENTUM, min(MAX_MOMENTUM, round(value)))


def derive_card_stats(track: CatalogTrack, rng: random.Random | None = None) -> tuple[int, int]:
    """Return (momentum, bpm) for a new card minted from track."""
    rng = rng or random.Random()
    multiplier = 1 + rng.random() * 0.5
    momentum = clamp_momentum(track.popularity * multiplier)

    if track.audio_features is not None:
        bpm = round(track.audio_features.tempo)
    else:
        bpm = DEFAULT_BPM + rng.randrange(40)
    return momentum, bpm


def to_selection(
    track: CatalogTrack,
    genre: str | None = None,
    rng: random.Random | None = None,
) -> TrackSelection:
    """Resolve a catalog track into a ready-to-mint selection."""
    momentum, bpm = derive_card_stats(track, rng)
    return TrackSelection(
        external_track_id=track.external_id,
        song_name=track.name,
        artist_name=track.artist_name,
        momentum=momentum,
        bpm=bpm,
        album_name=track.album_name,
        album_art_url=track.album_art_url,
        preview_url=track.preview_url,
        popularity=track.popularity,
        genre=(genre or track.genre or "mixed").lower(),
    )
