from __future__ import annotations

from datetime import timedelta

import pytest

from plaza_events.infra import CacheEntry, CacheError, HTTPCache


def test_cache_set_then_get_returns_fresh_entry(tmp_path, manual_clock) -> None:
    cache = HTTPCache(tmp_path, timedelta(hours=1), clock=manual_clock)
    cache.set(CacheEntry(url="https://example.com/a", body=b"\x00payload", last_modified="Wed"))

    entry = cache.get("https://example.com/a")

    assert entry is not None
    assert entry.body == b"\x00payload"
    assert entry.last_modified == "Wed"
    assert entry.fetched_at == manual_clock.now
    assert not list(tmp_path.glob(".tmp-*"))


def test_cache_file_name_is_url_digest(tmp_path) -> None:
    cache = HTTPCache(tmp_path, timedelta(hours=1))
    path = cache.path_for("https://example.com/a")
    assert path.parent == tmp_path
    assert len(path.stem) == 16
    assert path.suffix == ".json"
    assert cache.path_for("https://example.com/b") != path


def test_ttl_override_turns_stale_entry_into_hit(tmp_path, manual_clock) -> None:
    url = "https://datos.madrid.es/agenda.json"
    cache = HTTPCache(tmp_path, timedelta(hours=1), clock=manual_clock)
    cache.set(CacheEntry(url=url, body=b"{}"))
    manual_clock.advance(timedelta(hours=2))

    assert cache.get(url) is None
    assert cache.peek(url) is not None

    cache.set_ttl_override("datos.madrid.es", timedelta(hours=6))
    assert cache.get(url) is not None


def test_first_registered_override_wins(tmp_path) -> None:
    cache = HTTPCache(tmp_path, timedelta(minutes=30))
    cache.set_ttl_override("madrid", timedelta(hours=1))
    cache.set_ttl_override("datos.madrid", timedelta(hours=12))

    assert cache.ttl_for("https://datos.madrid.es/x") == timedelta(hours=1)
    assert cache.ttl_for("https://example.com/") == timedelta(minutes=30)


def test_delete_is_idempotent(tmp_path) -> None:
    cache = HTTPCache(tmp_path, timedelta(hours=1))
    cache.set(CacheEntry(url="weather://forecast", body=b"sunny"))
    cache.delete("weather://forecast")
    cache.delete("weather://forecast")
    assert cache.peek("weather://forecast") is None


def test_corrupt_entry_raises_cache_error(tmp_path) -> None:
    cache = HTTPCache(tmp_path, timedelta(hours=1))
    cache.path_for("https://example.com/").write_text("not json", encoding="utf-8")
    with pytest.raises(CacheError):
        cache.get("https://example.com/")
