"""Tests for the track cache."""

import math
from typing import List

import pytest
from hypothesis import given
from hypothesis import strategies as st

from midiosc.base import NotFoundError, TransportError, ValidationError
from midiosc.tracks import TrackCache, TrackFetchError, TrackInfo
from tests.midiosc.fakes import FakeClock, FakeOscSink
from tests.midiosc.hypo import configure_hypo

configure_hypo()

names = st.text(alphabet="abcdefgh", min_size=1, max_size=6)


def test_track_info_validation() -> None:
    assert TrackInfo(1, "  Bass ").name == "Bass"
    with pytest.raises(ValidationError):
        TrackInfo(-1, "Bass")
    with pytest.raises(ValidationError):
        TrackInfo(0, "   ")


def test_empty_cache() -> None:
    cache = TrackCache()
    assert not cache.has_cached_tracks()
    assert cache.cache_age() == math.inf
    assert cache.is_cache_expired()


@given(st.lists(st.tuples(st.integers(min_value=0, max_value=20), names), max_size=15))
def test_add_track_keeps_sorted_upsert(entries: List[tuple[int, str]]) -> None:
    cache = TrackCache()
    expected = {}
    for index, name in entries:
        cache.add_track(TrackInfo(index, name))
        expected[index] = name
    tracks = cache.get_tracks()
    assert [t.index for t in tracks] == sorted(expected)
    for index, name in expected.items():
        assert cache.resolve_track_index(index) == name


@given(st.lists(st.tuples(st.integers(min_value=0, max_value=20), names), max_size=15))
def test_set_tracks_later_entries_win(entries: List[tuple[int, str]]) -> None:
    cache = TrackCache()
    cache.set_tracks(TrackInfo(i, n) for i, n in entries)
    expected = dict(entries)
    assert [(t.index, t.name) for t in cache.get_tracks()] == sorted(expected.items())


def test_resolve_first_exact_name() -> None:
    cache = TrackCache()
    cache.set_tracks([TrackInfo(2, "Bass"), TrackInfo(5, "Bass"), TrackInfo(1, "Drums")])
    assert cache.resolve_track_name("Bass") == 2
    with pytest.raises(NotFoundError):
        cache.resolve_track_name("bass")
    with pytest.raises(NotFoundError):
        cache.resolve_track_index(9)


def test_update_and_remove() -> None:
    cache = TrackCache()
    cache.add_track(TrackInfo(0, "Drums"))
    cache.update_track(0, "Kit")
    assert cache.resolve_track_index(0) == "Kit"
    cache.remove_track(0)
    assert not cache.has_cached_tracks()
    with pytest.raises(NotFoundError):
        cache.update_track(0, "Kit")
    with pytest.raises(NotFoundError):
        cache.remove_track(0)


def test_cache_age_and_expiry() -> None:
    clock = FakeClock()
    cache = TrackCache(clock=clock)
    cache.add_track(TrackInfo(0, "Drums"))
    assert cache.cache_age() == 0.0
    clock.advance(60.0)
    assert cache.cache_age() == 60.0
    assert not cache.is_cache_expired()
    assert cache.is_cache_expired(ttl=30.0)
    cache.clear_cache()
    assert cache.cache_age() == math.inf


def test_listeners_get_snapshots() -> None:
    cache = TrackCache()
    seen: List[List[str]] = []

    def broken(tracks: List[TrackInfo]) -> None:
        raise RuntimeError("boom")

    def listener(tracks: List[TrackInfo]) -> None:
        seen.append([t.name for t in tracks])

    cache.on_tracks_changed(broken)
    cache.on_tracks_changed(listener)
    cache.add_track(TrackInfo(1, "Bass"))
    cache.add_track(TrackInfo(0, "Drums"))
    cache.clear_cache()
    cache.off_tracks_changed(listener)
    cache.add_track(TrackInfo(2, "Keys"))
    assert seen == [["Bass"], ["Drums", "Bass"], []]


def test_fetch_without_connection() -> None:
    with pytest.raises(TransportError, match="not connected"):
        TrackCache().fetch_tracks()
    with pytest.raises(TransportError, match="not connected"):
        TrackCache(FakeOscSink(connected=False)).fetch_tracks()


def test_fetch_requires_two_way_osc() -> None:
    sink = FakeOscSink()
    with pytest.raises(TrackFetchError, match="two-way"):
        TrackCache(sink).fetch_tracks()
    assert [str(c) for c in sink.sent] == ["/live/song/get/track_names"]
