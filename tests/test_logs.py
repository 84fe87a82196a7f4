"""Tests for timezone-aware log formatting."""

import logging

import pytz

from oracledb_exporter.logs import LOG_DATEFMT, TZFormatter, resolve_timezone


def make_record(created):
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)
    record.created = created
    return record


def test_formatter_renders_in_configured_zone():
    formatter = TZFormatter(fmt="%(asctime)s", datefmt=LOG_DATEFMT, tz=pytz.timezone("Asia/Tokyo"))

    # 2024-01-01 00:00:00 UTC
    assert formatter.format(make_record(1704067200)) == "2024-01-01 09:00:00"


def test_formatter_defaults_to_utc_iso():
    formatter = TZFormatter(fmt="%(asctime)s")

    assert formatter.format(make_record(1704067200)) == "2024-01-01T00:00:00+00:00"


def test_unknown_timezone_falls_back_to_utc(caplog):
    assert resolve_timezone("Mars/Olympus") is pytz.utc
    assert "Invalid timezone" in caplog.text


def test_named_timezone():
    assert resolve_timezone("Europe/Berlin") == pytz.timezone("Europe/Berlin")
