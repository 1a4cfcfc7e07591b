"""Validated value objects for MIDI events and OSC addresses.

Every class here is an immutable dataclass that checks its invariants on
construction and raises ``ValidationError`` when they do not hold. The three
MIDI event records double as the variants of the ``MidiMessage`` union.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Optional, Union

from midiosc import constants
from midiosc.base import MatchException, ValidationError

_OSC_ADDRESS_PATTERN = re.compile(r"^[a-zA-Z0-9/_-]+$")


def assert_midi_range(value: int, name: str) -> None:
    """Assert that a value is a data byte (0-127)."""
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not (constants.MIDI_MIN <= value <= constants.MIDI_MAX)
    ):
        raise ValidationError(
            f"Invalid MIDI {name}: {value}. "
            f"Must be between {constants.MIDI_MIN} and {constants.MIDI_MAX}."
        )


def _assert_channel_range(value: int) -> None:
    """Assert that a value is a user-facing channel number (1-16)."""
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not (constants.CHANNEL_MIN <= value <= constants.CHANNEL_MAX)
    ):
        raise ValidationError(
            f"Invalid MIDI channel: {value}. "
            f"Must be between {constants.CHANNEL_MIN} and {constants.CHANNEL_MAX}."
        )


def _field(data: dict[str, Any], key: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise ValidationError(f"Missing MIDI field: {key}")
    return data[key]


def assert_midi_range_pair(pair: tuple[int, int], name: str) -> None:
    """Assert that an inclusive (min, max) pair lies within 0-127 and is ordered."""
    if len(pair) != 2:
        raise ValidationError(f"Invalid {name}: {pair}. Must be a (min, max) pair.")
    low, high = pair
    assert_midi_range(low, name)
    assert_midi_range(high, name)
    if low > high:
        raise ValidationError(f"Invalid {name}: {pair}. Minimum exceeds maximum.")


@dataclass(frozen=True)
class MidiChannel:
    """A specific MIDI channel (1-16) or the wildcard matching every channel."""

    value: Union[int, str]
    """The channel number, or ``"all"`` for the wildcard."""

    def __post_init__(self) -> None:
        if self.value != constants.ALL_CHANNELS:
            _assert_channel_range(self.value)  # type: ignore[arg-type]

    @staticmethod
    def all() -> MidiChannel:
        """Get the wildcard channel."""
        return _ALL_CHANNELS

    @staticmethod
    def channel(num: int) -> MidiChannel:
        """Get a specific channel.

        Args:
            num: The channel number (1-16).

        Returns:
            The channel value object.
        """
        return MidiChannel(num)

    @staticmethod
    def from_value(value: Union[int, str]) -> MidiChannel:
        """Parse the serialised form: a channel number or ``"all"``."""
        return MidiChannel(value)

    def is_all(self) -> bool:
        return self.value == constants.ALL_CHANNELS

    def matches(self, channel: int) -> bool:
        """Check whether a received channel satisfies this channel.

        Args:
            channel: The channel (1-16) of a received message.

        Returns:
            True for the wildcard or an exact match.
        """
        return self.is_all() or self.value == channel

    def to_json(self) -> Union[int, str]:
        return self.value

    def __str__(self) -> str:
        return "All Channels" if self.is_all() else f"Channel {self.value}"


_ALL_CHANNELS = MidiChannel(constants.ALL_CHANNELS)


@unique
class MessageKind(Enum):
    """The variant tag shared by MIDI messages and triggers."""

    Note = "note"
    Cc = "cc"
    ProgramChange = "program_change"


@dataclass(frozen=True)
class MidiNote:
    """A received note message; velocity 0 is a note off."""

    note: int
    velocity: int
    channel: int

    def __post_init__(self) -> None:
        assert_midi_range(self.note, "note")
        assert_midi_range(self.velocity, "velocity")
        _assert_channel_range(self.channel)

    @property
    def kind(self) -> MessageKind:
        return MessageKind.Note

    def is_note_on(self) -> bool:
        return self.velocity > 0

    def is_note_off(self) -> bool:
        return self.velocity == 0

    def note_name(self) -> str:
        """Get the scientific pitch name, e.g. ``C4`` for note 60."""
        octave = self.note // 12 - 1
        return f"{constants.NOTE_NAMES[self.note % 12]}{octave}"

    def to_json(self) -> dict[str, int]:
        return {"note": self.note, "velocity": self.velocity, "channel": self.channel}

    @staticmethod
    def from_json(data: dict[str, Any]) -> MidiNote:
        return MidiNote(
            _field(data, "note"), _field(data, "velocity"), _field(data, "channel")
        )

    def __str__(self) -> str:
        return f"{self.note_name()} ({self.note}) vel:{self.velocity} ch:{self.channel}"


@dataclass(frozen=True)
class MidiControlChange:
    """A received control change message."""

    controller: int
    value: int
    channel: int

    def __post_init__(self) -> None:
        assert_midi_range(self.controller, "controller")
        assert_midi_range(self.value, "value")
        _assert_channel_range(self.channel)

    @property
    def kind(self) -> MessageKind:
        return MessageKind.Cc

    @property
    def normalized_value(self) -> float:
        """The value scaled to 0.0-1.0."""
        return self.value / constants.MIDI_MAX

    def to_json(self) -> dict[str, int]:
        return {
            "controller": self.controller,
            "value": self.value,
            "channel": self.channel,
        }

    @staticmethod
    def from_json(data: dict[str, Any]) -> MidiControlChange:
        return MidiControlChange(
            _field(data, "controller"), _field(data, "value"), _field(data, "channel")
        )

    def __str__(self) -> str:
        return f"CC{self.controller}:{self.value} ch:{self.channel}"


@dataclass(frozen=True)
class MidiProgramChange:
    """A received program change message."""

    program: int
    channel: int

    def __post_init__(self) -> None:
        assert_midi_range(self.program, "program")
        _assert_channel_range(self.channel)

    @property
    def kind(self) -> MessageKind:
        return MessageKind.ProgramChange

    def to_json(self) -> dict[str, int]:
        return {"program": self.program, "channel": self.channel}

    @staticmethod
    def from_json(data: dict[str, Any]) -> MidiProgramChange:
        return MidiProgramChange(_field(data, "program"), _field(data, "channel"))

    def __str__(self) -> str:
        return f"PC{self.program} ch:{self.channel}"


type MidiMessage = MidiNote | MidiControlChange | MidiProgramChange
"""A decoded MIDI event, tagged by its ``kind``."""


def describe_message(message: MidiMessage) -> str:
    """Render a message with its kind prefix, e.g. ``CC: CC7:127 ch:1``."""
    match message:
        case MidiNote():
            return f"Note: {message}"
        case MidiControlChange():
            return f"CC: {message}"
        case MidiProgramChange():
            return f"PC: {message}"
        case _:
            raise MatchException(message)


@dataclass(frozen=True)
class OscAddress:
    """A validated OSC address path such as ``/live/song/get/tempo``."""

    path: str

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path.startswith("/"):
            raise ValidationError(
                f"Invalid OSC address: {self.path}. Must start with '/'."
            )
        if "//" in self.path:
            raise ValidationError(
                f"Invalid OSC address: {self.path}. Cannot contain '//'."
            )
        if _OSC_ADDRESS_PATTERN.match(self.path) is None:
            raise ValidationError(
                f"Invalid OSC address: {self.path}. Can only contain "
                "alphanumeric, '/', '_', and '-' characters."
            )

    def segments(self) -> list[str]:
        return [part for part in self.path.split("/") if part]

    def matches_pattern(self, pattern: str) -> bool:
        """Check this address against a wildcard pattern.

        ``*`` matches exactly one path segment and ``?`` matches any single
        character. Every other character matches literally.

        Args:
            pattern: The pattern, e.g. ``/live/track/*/volume``.

        Returns:
            True if the whole address matches.
        """
        regex = (
            re.escape(pattern).replace(r"\*", "[^/]+").replace(r"\?", ".")
        )
        return re.fullmatch(regex, self.path) is not None

    def category(self) -> Optional[str]:
        """Get the second segment, e.g. ``song`` for ``/live/song/get/tempo``."""
        parts = self.segments()
        return parts[1] if len(parts) >= 2 else None

    def action(self) -> Optional[str]:
        """Get the third segment, e.g. ``get`` for ``/live/song/get/tempo``."""
        parts = self.segments()
        return parts[2] if len(parts) >= 3 else None

    def to_json(self) -> str:
        return self.path

    @staticmethod
    def from_json(data: str) -> OscAddress:
        return OscAddress(data)

    def __str__(self) -> str:
        return self.path
