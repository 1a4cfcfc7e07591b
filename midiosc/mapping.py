"""Mappings: MIDI triggers bound to OSC commands.

A mapping pairs a trigger (the MIDI condition) with a base OSC command and a
list of parameter substitutions that rewrite command arguments from the
triggering event at dispatch time.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, unique
from typing import Optional

from midiosc.base import MatchException, ValidationError
from midiosc.command import OscCommand, OscValue
from midiosc.values import (
    MessageKind,
    MidiChannel,
    MidiControlChange,
    MidiMessage,
    MidiNote,
    MidiProgramChange,
    assert_midi_range,
    assert_midi_range_pair,
)


@unique
class ParameterSubstitution(Enum):
    """How one OSC argument is computed from the triggering event."""

    NoSubstitution = "none"  # Keep the base argument
    Velocity = "velocity"  # Note velocity or raw CC value
    VelocityNormalized = "velocity_normalized"  # Same, scaled to 0-1
    TrackIndex = "track_index"  # Configured track index
    TrackName = "track_name"  # Track index looked up by name
    ClipIndex = "clip_index"
    SceneIndex = "scene_index"
    DeviceIndex = "device_index"
    StaticValue = "static_value"


# Substitution kinds that read a configured field, keyed to that field
_REQUIRED_FIELDS = {
    ParameterSubstitution.TrackIndex: "track_index",
    ParameterSubstitution.TrackName: "track_name",
    ParameterSubstitution.ClipIndex: "clip_index",
    ParameterSubstitution.SceneIndex: "scene_index",
    ParameterSubstitution.DeviceIndex: "device_index",
    ParameterSubstitution.StaticValue: "static_value",
}


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True)
class ParameterMapping:
    """Rewrites the argument at ``parameter_index`` during dispatch.

    The field named by the substitution kind must be present; the other
    optional fields are ignored.
    """

    parameter_index: int
    substitution: ParameterSubstitution
    track_index: Optional[int] = None
    track_name: Optional[str] = None
    clip_index: Optional[int] = None
    scene_index: Optional[int] = None
    device_index: Optional[int] = None
    static_value: Optional[OscValue] = None

    def __post_init__(self) -> None:
        if not _is_index(self.parameter_index):
            raise ValidationError(
                f"Invalid parameter index: {self.parameter_index}. Must be >= 0."
            )
        field = _REQUIRED_FIELDS.get(self.substitution)
        if field is not None and getattr(self, field) is None:
            raise ValidationError(
                f"Substitution {self.substitution.value} requires {field}"
            )
        for name in ("track_index", "clip_index", "scene_index", "device_index"):
            value = getattr(self, name)
            if value is not None and not _is_index(value):
                raise ValidationError(f"Invalid {name}: {value}. Must be >= 0.")
        if self.track_name is not None and not isinstance(self.track_name, str):
            raise ValidationError(f"Invalid track_name: {self.track_name!r}")


@dataclass(frozen=True)
class NoteTrigger:
    note: int
    channel: MidiChannel
    velocity_range: Optional[tuple[int, int]] = None
    """Inclusive velocity bounds; ``None`` accepts any velocity."""

    def __post_init__(self) -> None:
        assert_midi_range(self.note, "note")
        if self.velocity_range is not None:
            assert_midi_range_pair(self.velocity_range, "velocity range")

    @property
    def kind(self) -> MessageKind:
        return MessageKind.Note


@dataclass(frozen=True)
class CcTrigger:
    controller: int
    channel: MidiChannel
    value_range: Optional[tuple[int, int]] = None
    """Inclusive value bounds; ``None`` accepts any value."""

    def __post_init__(self) -> None:
        assert_midi_range(self.controller, "controller")
        if self.value_range is not None:
            assert_midi_range_pair(self.value_range, "value range")

    @property
    def kind(self) -> MessageKind:
        return MessageKind.Cc


@dataclass(frozen=True)
class ProgramChangeTrigger:
    program: int
    channel: MidiChannel

    def __post_init__(self) -> None:
        assert_midi_range(self.program, "program")

    @property
    def kind(self) -> MessageKind:
        return MessageKind.ProgramChange


type MidiTrigger = NoteTrigger | CcTrigger | ProgramChangeTrigger


def _in_range(value: int, bounds: Optional[tuple[int, int]]) -> bool:
    if bounds is None:
        return True
    low, high = bounds
    return low <= value <= high


def trigger_from_message(message: MidiMessage) -> MidiTrigger:
    """Build a trigger matching exactly this event's number and channel.

    No velocity or value range is set, so any velocity or value matches.

    Args:
        message: The captured event.

    Returns:
        The trigger for the event's variant.
    """
    channel = MidiChannel.channel(message.channel)
    match message:
        case MidiNote(note=note):
            return NoteTrigger(note, channel)
        case MidiControlChange(controller=controller):
            return CcTrigger(controller, channel)
        case MidiProgramChange(program=program):
            return ProgramChangeTrigger(program, channel)
        case _:
            raise MatchException(message)


def describe_trigger(trigger: MidiTrigger) -> str:
    match trigger:
        case NoteTrigger():
            return f"Note {trigger.note} {trigger.channel}"
        case CcTrigger():
            return f"CC {trigger.controller} {trigger.channel}"
        case ProgramChangeTrigger():
            return f"PC {trigger.program} {trigger.channel}"
        case _:
            raise MatchException(trigger)


@dataclass(frozen=True)
class Mapping:
    """A rule binding a MIDI trigger to an OSC command.

    Mappings are immutable. ``with_enabled`` and ``with_name`` return
    updated copies; the store replaces the old instance with the new one.
    """

    id: str
    name: str
    trigger: MidiTrigger
    command: OscCommand
    parameter_mappings: tuple[ParameterMapping, ...] = ()
    enabled: bool = True
    midi_device: Optional[str] = None
    """The source device this mapping listens to; ``None`` means any device."""

    def matches(self, message: MidiMessage, source_device: Optional[str] = None) -> bool:
        """Check whether a received event fires this mapping.

        The device filter only applies when both this mapping names a device
        and the caller supplies the source device.

        Args:
            message: The received event.
            source_device: The name of the device that sent it, if known.

        Returns:
            True if the mapping is enabled and every trigger condition holds.
        """
        if not self.enabled:
            return False
        if (
            self.midi_device is not None
            and source_device is not None
            and self.midi_device != source_device
        ):
            return False
        if message.kind != self.trigger.kind:
            return False
        if not self.trigger.channel.matches(message.channel):
            return False
        match (self.trigger, message):
            case (NoteTrigger() as trig, MidiNote() as msg):
                return msg.note == trig.note and _in_range(
                    msg.velocity, trig.velocity_range
                )
            case (CcTrigger() as trig, MidiControlChange() as msg):
                return msg.controller == trig.controller and _in_range(
                    msg.value, trig.value_range
                )
            case (ProgramChangeTrigger() as trig, MidiProgramChange() as msg):
                return msg.program == trig.program
            case _:
                raise MatchException((self.trigger, message))

    def with_enabled(self, enabled: bool) -> Mapping:
        return replace(self, enabled=enabled)

    def with_name(self, name: str) -> Mapping:
        return replace(self, name=name)

    def __str__(self) -> str:
        return f"{self.name}: {describe_trigger(self.trigger)} -> {self.command}"
