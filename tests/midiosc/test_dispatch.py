"""Tests for the dispatch engine."""

from dataclasses import replace

import pytest

from midiosc.base import RepositoryError
from midiosc.command import OscCommand
from midiosc.dispatch import Dispatcher
from midiosc.mapping import (
    CcTrigger,
    Mapping,
    NoteTrigger,
    ParameterMapping,
    ParameterSubstitution,
)
from midiosc.store import MemoryMappingStore
from midiosc.tracks import TrackCache
from midiosc.values import MidiChannel, MidiControlChange, MidiNote
from tests.midiosc.fakes import BrokenMappingStore, FakeOscSink


def _volume_mapping(
    mapping_id: str = "vol", address: str = "/live/track/set/volume"
) -> Mapping:
    return Mapping(
        id=mapping_id,
        name="Volume",
        trigger=CcTrigger(7, MidiChannel.channel(1)),
        command=OscCommand.create(address, [0.0]),
        parameter_mappings=(
            ParameterMapping(0, ParameterSubstitution.VelocityNormalized),
        ),
    )


def test_cc_sends_normalized_volume() -> None:
    store = MemoryMappingStore()
    store.save(_volume_mapping())
    sink = FakeOscSink()
    report = Dispatcher(store, sink, TrackCache()).process(MidiControlChange(7, 127, 1))
    assert report.matched == ["vol"]
    assert report.ok()
    assert sink.sent == [OscCommand.create("/live/track/set/volume", [1.0])]
    assert str(sink.sent[0]) == "/live/track/set/volume 1.0"


def test_no_match_sends_nothing() -> None:
    store = MemoryMappingStore()
    store.save(_volume_mapping())
    sink = FakeOscSink()
    report = Dispatcher(store, sink, TrackCache()).process(MidiControlChange(8, 127, 1))
    assert report.matched == []
    assert sink.sent == []


def test_all_matches_fire_in_store_order() -> None:
    store = MemoryMappingStore()
    store.save(_volume_mapping("a", "/live/track/set/volume"))
    store.save(_volume_mapping("b", "/live/track/set/panning"))
    sink = FakeOscSink()
    report = Dispatcher(store, sink, TrackCache()).process(MidiControlChange(7, 0, 1))
    assert report.matched == ["a", "b"]
    assert [c.address.path for c in sink.sent] == [
        "/live/track/set/volume",
        "/live/track/set/panning",
    ]


def test_send_failure_isolated_per_mapping() -> None:
    store = MemoryMappingStore()
    store.save(_volume_mapping("a", "/live/track/set/volume"))
    store.save(_volume_mapping("b", "/live/track/set/panning"))
    sink = FakeOscSink()
    sink.failing.add("/live/track/set/volume")
    report = Dispatcher(store, sink, TrackCache()).process(MidiControlChange(7, 64, 1))
    assert report.matched == ["a", "b"]
    assert [f.mapping_id for f in report.failures] == ["a"]
    assert [c.address.path for c in sink.sent] == ["/live/track/set/panning"]


def test_out_of_range_substitution_isolated() -> None:
    store = MemoryMappingStore()
    store.save(
        Mapping(
            id="bad",
            name="Bad",
            trigger=NoteTrigger(60, MidiChannel.all()),
            command=OscCommand.create("/live/song/start_playing"),
            parameter_mappings=(ParameterMapping(2, ParameterSubstitution.Velocity),),
        )
    )
    store.save(
        Mapping(
            id="good",
            name="Good",
            trigger=NoteTrigger(60, MidiChannel.all()),
            command=OscCommand.create("/live/song/stop_playing"),
        )
    )
    sink = FakeOscSink()
    report = Dispatcher(store, sink, TrackCache()).process(MidiNote(60, 100, 5))
    assert [f.mapping_id for f in report.failures] == ["bad"]
    assert [str(c) for c in report.sent] == ["/live/song/stop_playing"]


def test_disabled_mapping_skipped() -> None:
    store = MemoryMappingStore()
    store.save(_volume_mapping().with_enabled(False))
    sink = FakeOscSink()
    report = Dispatcher(store, sink, TrackCache()).process(MidiControlChange(7, 127, 1))
    assert report.matched == []
    assert sink.sent == []


def test_device_bound_mapping() -> None:
    store = MemoryMappingStore()
    store.save(replace(_volume_mapping(), midi_device="DeviceA"))
    sink = FakeOscSink()
    dispatcher = Dispatcher(store, sink, TrackCache())
    assert dispatcher.process(MidiControlChange(7, 1, 1), "DeviceB").matched == []
    assert dispatcher.process(MidiControlChange(7, 1, 1), "DeviceA").matched == ["vol"]


def test_repository_failure_propagates() -> None:
    sink = FakeOscSink()
    with pytest.raises(RepositoryError):
        Dispatcher(BrokenMappingStore(), sink, TrackCache()).process(
            MidiControlChange(7, 127, 1)
        )
    assert sink.sent == []
