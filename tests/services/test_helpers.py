"""Tests for shared service-layer helper functions."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, timezone

from silsilah.services._helpers import from_storage_ts, now_iso, now_utc, to_storage_ts


class TestNow:
    def test_now_utc_is_aware(self) -> None:
        assert now_utc().tzinfo is not None

    def test_now_iso_format(self) -> None:
        result = now_iso()
        assert "T" in result
        assert result.endswith("+00:00")


class TestStorageTimestamp:
    def test_fixed_width(self) -> None:
        early = to_storage_ts(datetime(2024, 1, 1, tzinfo=UTC))
        late = to_storage_ts(datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=UTC))
        assert len(early) == len(late)
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}Z", early)

    def test_lexical_order_is_chronological(self) -> None:
        base = datetime(2024, 1, 1, 23, 59, 59, 999999, tzinfo=UTC)
        stamps = [to_storage_ts(base + timedelta(microseconds=n)) for n in range(3)]
        assert stamps == sorted(stamps)

    def test_converts_to_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        moment = datetime(2024, 6, 1, 12, 0, tzinfo=plus_two)
        assert to_storage_ts(moment).startswith("2024-06-01T10:00:00")

    def test_parse_round_trip(self) -> None:
        moment = datetime(2024, 6, 1, 12, 30, 15, 42, tzinfo=UTC)
        assert from_storage_ts(to_storage_ts(moment)) == moment
