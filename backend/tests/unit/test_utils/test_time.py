from datetime import datetime, timedelta, timezone

from supportdesk.utils.time import ensure_utc, format_iso, is_within, milliseconds_since, parse_iso

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def test_format_and_parse_iso_use_utc_z_suffix():
    assert format_iso(NOW) == "2026-01-15T12:00:00Z"
    assert parse_iso("2026-01-15T14:00:00+02:00") == NOW


def test_naive_datetimes_are_treated_as_utc():
    assert ensure_utc(datetime(2026, 1, 15, 12, 0)) == NOW


def test_milliseconds_since():
    assert milliseconds_since(NOW - timedelta(seconds=90), NOW) == 90_000
    assert milliseconds_since(None, NOW) == 0


def test_is_within_excludes_window_edge():
    window = timedelta(hours=24)
    assert is_within(NOW - timedelta(hours=23), window, NOW)
    assert not is_within(NOW - timedelta(hours=24), window, NOW)
    assert not is_within(None, window, NOW)
