"""Parameter substitution: computing OSC arguments from MIDI events."""

from __future__ import annotations

from typing import Optional

from midiosc import constants
from midiosc.base import MatchException, NotFoundError
from midiosc.command import OscCommand, OscValue
from midiosc.mapping import Mapping, ParameterMapping, ParameterSubstitution
from midiosc.tracks import TrackResolver
from midiosc.values import MidiControlChange, MidiMessage, MidiNote


def resolve_parameter_value(
    param: ParameterMapping, message: MidiMessage, tracks: TrackResolver
) -> Optional[OscValue]:
    """Compute the substituted value for one parameter.

    This reads the message and the track table but never changes either.

    Args:
        param: The substitution rule.
        message: The event that fired the mapping.
        tracks: The resolver used for track name lookups.

    Returns:
        The new argument value, or None to leave the base argument as is.
    """
    match param.substitution:
        case ParameterSubstitution.NoSubstitution:
            return None
        case ParameterSubstitution.Velocity:
            if isinstance(message, MidiNote):
                return message.velocity
            elif isinstance(message, MidiControlChange):
                return message.value
            return None
        case ParameterSubstitution.VelocityNormalized:
            if isinstance(message, MidiNote):
                return message.velocity / constants.MIDI_MAX
            elif isinstance(message, MidiControlChange):
                return message.normalized_value
            return None
        case ParameterSubstitution.TrackIndex:
            return param.track_index
        case ParameterSubstitution.TrackName:
            if param.track_name is None:
                return None
            try:
                return tracks.resolve_track_name(param.track_name)
            except NotFoundError:
                return None
        case ParameterSubstitution.ClipIndex:
            return param.clip_index
        case ParameterSubstitution.SceneIndex:
            return param.scene_index
        case ParameterSubstitution.DeviceIndex:
            return param.device_index
        case ParameterSubstitution.StaticValue:
            return param.static_value
        case _:
            raise MatchException(param.substitution)


def substitute(
    mapping: Mapping, message: MidiMessage, tracks: TrackResolver
) -> OscCommand:
    """Apply every parameter mapping of a mapping, in order, to its base command.

    Raises:
        ValidationError: If a substitution targets a slot the command lacks.
    """
    command = mapping.command
    for param in mapping.parameter_mappings:
        value = resolve_parameter_value(param, message, tracks)
        if value is not None:
            command = command.with_parameter(param.parameter_index, value)
    return command
