"""
Energy accrual math.

A card accrues energy at `momentum` points per hour from its creation
time, truncated to whole points and capped at MAX_ENERGY. Pure functions:
no state, no I/O, no errors for in-range inputs.
"""
import math
from datetime import datetime

from wav.core.constants import MAX_ENERGY
from wav.core.utils import ensure_utc, utc_now

SECONDS_PER_HOUR = 3600


def hours_elapsed(created_at: datetime, at: datetime) -> float:
    """Hours from created_at to at; negative when at precedes creation."""
    delta = ensure_utc(at) - ensure_utc(created_at)
    return delta.total_seconds() / SECONDS_PER_HOUR


def calculate_energy(momentum: int, created_at: datetime, now: datetime | None = None) -> int:
    """
    Energy a card holds at `now` (defaults to the current time).

    Returns 0 until the card exists, then floor(momentum * hours), never
    more than MAX_ENERGY.
    """
    if now is None:
        now = utc_now()
    hours = hours_elapsed(created_at, now)
    if hours <= 0:
        return 0
    energy = math.floor(momentum * hours)
    return max(0, min(energy, MAX_ENERGY))


def calculate_energy_at_time(momentum: int, created_at: datetime, past_time: datetime) -> int:
    """Energy a card held at past_time; 0 if it did not exist yet."""
    return calculate_energy(momentum, created_at, now=past_time)


def is_maxed(momentum: int, created_at: datetime, now: datetime | None = None) -> bool:
    return calculate_energy(momentum, created_at, now) >= MAX_ENERGY
