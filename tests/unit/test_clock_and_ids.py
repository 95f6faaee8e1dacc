"""Tests for injectable clocks and identifier helpers."""

import re
from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from nexus_kernel.clock import DeterministicClock, SystemClock
from nexus_kernel.ids import generate_dated_id, generate_id, random_hex


class TestDeterministicClock:

    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.now() == datetime(2024, 1, 1, 12, tzinfo=UTC)
        assert clock.today() == date(2024, 1, 1)

    def test_stable_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        clock.advance(days=1, hours=2)
        assert clock.now() == datetime(2024, 1, 2, 14, tzinfo=UTC)

    def test_tick(self):
        clock = DeterministicClock()
        assert clock.tick() == datetime(2024, 1, 1, 12, 0, 1, tzinfo=UTC)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(minutes=30)
        clock.set_time(datetime(2025, 6, 1, tzinfo=UTC))
        assert clock.now() == datetime(2025, 6, 1, tzinfo=UTC)

    def test_now_utc_converts(self):
        kl = timezone(timedelta(hours=8))
        clock = DeterministicClock(datetime(2024, 1, 1, 8, tzinfo=kl))
        assert clock.now_utc() == datetime(2024, 1, 1, 0, tzinfo=UTC)
        assert clock.now_utc().tzinfo == UTC

    def test_requires_aware_datetimes(self):
        with pytest.raises(ValueError):
            DeterministicClock(datetime(2024, 1, 1))
        with pytest.raises(ValueError):
            DeterministicClock().set_time(datetime(2024, 1, 1))


class TestSystemClock:

    def test_aware_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert SystemClock().now_utc().utcoffset() == timedelta(0)


class TestIds:

    def test_random_hex_length(self):
        for length in (1, 7, 8, 12):
            value = random_hex(length)
            assert len(value) == length
            assert re.fullmatch(r"[0-9A-F]+", value)

    def test_generate_id(self):
        assert re.fullmatch(r"RPT-[0-9A-F]{12}", generate_id("RPT"))
        assert generate_id("RPT") != generate_id("RPT")

    def test_generate_dated_id(self):
        assert re.fullmatch(r"SAR-20240315-[0-9A-F]{8}", generate_dated_id("SAR", date(2024, 3, 15)))
