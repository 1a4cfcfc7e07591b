"""Tests for triggers, parameter mappings and the mapping match predicate."""

from typing import Optional

import pytest

from midiosc.base import ValidationError
from midiosc.command import OscCommand
from midiosc.mapping import (
    CcTrigger,
    Mapping,
    MidiTrigger,
    NoteTrigger,
    ParameterMapping,
    ParameterSubstitution,
    ProgramChangeTrigger,
    trigger_from_message,
)
from midiosc.values import (
    MidiChannel,
    MidiControlChange,
    MidiMessage,
    MidiNote,
    MidiProgramChange,
)


def _mapping(
    trigger: MidiTrigger, enabled: bool = True, midi_device: Optional[str] = None
) -> Mapping:
    return Mapping(
        id="m1",
        name="Test",
        trigger=trigger,
        command=OscCommand.create("/live/song/start_playing"),
        enabled=enabled,
        midi_device=midi_device,
    )


def _note_mapping(enabled: bool = True, midi_device: Optional[str] = None) -> Mapping:
    trigger = NoteTrigger(60, MidiChannel.channel(1), velocity_range=(10, 100))
    return _mapping(trigger, enabled, midi_device)


@pytest.mark.parametrize(
    "message,source,expected",
    [
        (MidiNote(60, 50, 1), None, True),
        (MidiNote(60, 5, 1), None, False),
        (MidiNote(60, 101, 1), None, False),
        (MidiNote(60, 10, 1), None, True),
        (MidiNote(60, 100, 1), None, True),
        (MidiNote(61, 50, 1), None, False),
        (MidiNote(60, 50, 2), None, False),
        (MidiNote(60, 50, 1), "DeviceB", True),
        (MidiControlChange(60, 50, 1), None, False),
    ],
)
def test_note_mapping_matches(
    message: MidiMessage, source: Optional[str], expected: bool
) -> None:
    assert _note_mapping().matches(message, source) == expected


def test_disabled_mapping_never_matches() -> None:
    mapping = _note_mapping(enabled=False)
    assert not mapping.matches(MidiNote(60, 50, 1))
    assert not mapping.matches(MidiNote(60, 50, 1), "DeviceA")


def test_device_filter() -> None:
    mapping = _note_mapping(midi_device="DeviceA")
    assert mapping.matches(MidiNote(60, 50, 1), "DeviceA")
    assert not mapping.matches(MidiNote(60, 50, 1), "DeviceB")


def test_device_filter_skipped_without_source_device() -> None:
    # Callers that do not know the source device get every bound mapping
    mapping = _note_mapping(midi_device="DeviceA")
    assert mapping.matches(MidiNote(60, 50, 1))


def test_all_channel_trigger() -> None:
    mapping = _mapping(CcTrigger(7, MidiChannel.all()))
    for channel in range(1, 17):
        assert mapping.matches(MidiControlChange(7, 64, channel))
    assert not mapping.matches(MidiControlChange(8, 64, 1))


def test_cc_value_range() -> None:
    mapping = _mapping(CcTrigger(7, MidiChannel.channel(1), value_range=(64, 127)))
    assert mapping.matches(MidiControlChange(7, 64, 1))
    assert not mapping.matches(MidiControlChange(7, 63, 1))


def test_program_change_trigger() -> None:
    mapping = _mapping(ProgramChangeTrigger(5, MidiChannel.channel(3)))
    assert mapping.matches(MidiProgramChange(5, 3))
    assert not mapping.matches(MidiProgramChange(6, 3))
    assert not mapping.matches(MidiProgramChange(5, 4))


@pytest.mark.parametrize("bounds", [(100, 10), (0, 128), (-1, 5)])
def test_invalid_trigger_range(bounds: tuple[int, int]) -> None:
    with pytest.raises(ValidationError):
        NoteTrigger(60, MidiChannel.all(), velocity_range=bounds)


def test_invalid_trigger_number() -> None:
    with pytest.raises(ValidationError):
        CcTrigger(128, MidiChannel.all())


@pytest.mark.parametrize(
    "message,trigger",
    [
        (MidiNote(60, 99, 2), NoteTrigger(60, MidiChannel.channel(2))),
        (MidiControlChange(7, 1, 16), CcTrigger(7, MidiChannel.channel(16))),
        (MidiProgramChange(3, 1), ProgramChangeTrigger(3, MidiChannel.channel(1))),
    ],
)
def test_trigger_from_message(message: MidiMessage, trigger: MidiTrigger) -> None:
    assert trigger_from_message(message) == trigger


def test_parameter_mapping_requires_its_field() -> None:
    with pytest.raises(ValidationError):
        ParameterMapping(0, ParameterSubstitution.TrackName)
    with pytest.raises(ValidationError):
        ParameterMapping(0, ParameterSubstitution.StaticValue)
    ParameterMapping(0, ParameterSubstitution.StaticValue, static_value=0)


def test_parameter_mapping_rejects_negative_indices() -> None:
    with pytest.raises(ValidationError):
        ParameterMapping(-1, ParameterSubstitution.Velocity)
    with pytest.raises(ValidationError):
        ParameterMapping(0, ParameterSubstitution.ClipIndex, clip_index=-2)


def test_with_updates_are_copies() -> None:
    mapping = _note_mapping()
    disabled = mapping.with_enabled(False)
    renamed = mapping.with_name("Other")
    assert mapping.enabled and not disabled.enabled
    assert renamed.name == "Other" and mapping.name == "Test"
    assert str(mapping) == "Test: Note 60 Channel 1 -> /live/song/start_playing"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"parameter_index": "0", "substitution": ParameterSubstitution.Velocity},
        {"parameter_index": True, "substitution": ParameterSubstitution.Velocity},
        {
            "parameter_index": 0,
            "substitution": ParameterSubstitution.TrackIndex,
            "track_index": "2",
        },
        {
            "parameter_index": 0,
            "substitution": ParameterSubstitution.SceneIndex,
            "scene_index": 1.5,
        },
        {
            "parameter_index": 0,
            "substitution": ParameterSubstitution.TrackName,
            "track_name": 3,
        },
    ],
)
def test_parameter_mapping_rejects_wrong_types(kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        ParameterMapping(**kwargs)
