"""Tests for energy accrual math."""
from datetime import timedelta

import pytest

from wav.core.constants import MAX_ENERGY
from wav.services.stat_clock import (
    calculate_energy,
    calculate_energy_at_time,
    hours_elapsed,
    is_maxed,
)


class TestCalculateEnergy:
    """Energy = floor(momentum * hours), capped."""

    def test_two_hours_at_fifty_momentum(self, t0):
        assert calculate_energy(50, t0, t0 + timedelta(hours=2)) == 100

    def test_caps_at_max_energy(self, t0):
        """50 * 3000h = 150000, capped to 100000."""
        assert calculate_energy(50, t0, t0 + timedelta(hours=3000)) == MAX_ENERGY

    def test_zero_at_creation(self, t0):
        assert calculate_energy(80, t0, t0) == 0

    def test_zero_before_creation(self, t0):
        assert calculate_energy(80, t0, t0 - timedelta(hours=5)) == 0

    def test_truncates_rather_than_rounds(self, t0):
        """10 momentum over 59 minutes is 9.83 energy, reported as 9."""
        assert calculate_energy(10, t0, t0 + timedelta(minutes=59)) == 9

    def test_naive_timestamps_are_treated_as_utc(self, t0):
        naive_created = t0.replace(tzinfo=None)
        assert calculate_energy(50, naive_created, t0 + timedelta(hours=2)) == 100

    @pytest.mark.parametrize("momentum", [1, 37, 100])
    def test_monotonic_in_time(self, t0, momentum):
        samples = [
            calculate_energy(momentum, t0, t0 + timedelta(minutes=17 * i))
            for i in range(0, 400)
        ]
        assert samples == sorted(samples)

    @pytest.mark.parametrize("hours", [1_000, 10_000, 1_000_000])
    def test_never_exceeds_cap(self, t0, hours):
        assert calculate_energy(100, t0, t0 + timedelta(hours=hours)) <= MAX_ENERGY


class TestEnergyAtTime:

    def test_matches_energy_at_that_instant(self, t0):
        past = t0 + timedelta(hours=10)
        assert calculate_energy_at_time(30, t0, past) == 300

    @pytest.mark.parametrize("before", [timedelta(seconds=1), timedelta(days=1), timedelta(days=365)])
    def test_zero_before_card_existed(self, t0, before):
        assert calculate_energy_at_time(100, t0, t0 - before) == 0


def test_hours_elapsed_can_be_negative(t0):
    assert hours_elapsed(t0, t0 - timedelta(minutes=30)) == pytest.approx(-0.5)


def test_is_maxed(t0):
    assert not is_maxed(100, t0, t0 + timedelta(hours=999))
    assert is_maxed(100, t0, t0 + timedelta(hours=1000))
