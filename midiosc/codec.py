"""Plain-dict encoding of mappings for persistence and requests.

The format is JSON-compatible and round-trips every field of a mapping,
including the trigger tag, the channel (a number or ``"all"``), the parameter
mappings and the bound device.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from midiosc.base import MatchException, ValidationError
from midiosc.command import OscCommand
from midiosc.mapping import (
    CcTrigger,
    Mapping,
    MidiTrigger,
    NoteTrigger,
    ParameterMapping,
    ParameterSubstitution,
    ProgramChangeTrigger,
)
from midiosc.values import MessageKind, MidiChannel

_PARAMETER_FIELDS = (
    "track_index",
    "track_name",
    "clip_index",
    "scene_index",
    "device_index",
    "static_value",
)


def _opt_range(value: Any) -> Optional[tuple[int, int]]:
    # Triggers check the pair shape themselves
    return None if value is None else tuple(value)


def _require(data: Dict[str, Any], key: str, what: str) -> Any:
    if data.get(key) is None:
        raise ValidationError(f"{what} requires {key} parameter")
    return data[key]


def trigger_to_json(trigger: MidiTrigger) -> Dict[str, Any]:
    match trigger:
        case NoteTrigger(note, channel, velocity_range):
            data: Dict[str, Any] = {"type": "note", "note": note}
            data["channel"] = channel.to_json()
            if velocity_range is not None:
                data["velocity_range"] = list(velocity_range)
            return data
        case CcTrigger(controller, channel, value_range):
            data = {"type": "cc", "controller": controller}
            data["channel"] = channel.to_json()
            if value_range is not None:
                data["value_range"] = list(value_range)
            return data
        case ProgramChangeTrigger(program, channel):
            return {"type": "program_change", "program": program, "channel": channel.to_json()}
        case _:
            raise MatchException(trigger)


def trigger_from_json(data: Dict[str, Any]) -> MidiTrigger:
    """Decode a trigger.

    Raises:
        ValidationError: On an unknown type, a missing number or a bad value.
    """
    try:
        kind = MessageKind(data.get("type"))
    except ValueError as e:
        raise ValidationError(f"Unknown trigger type: {data.get('type')}") from e
    channel = MidiChannel.from_value(data.get("channel", "all"))
    match kind:
        case MessageKind.Note:
            note = _require(data, "note", "Note trigger")
            return NoteTrigger(note, channel, _opt_range(data.get("velocity_range")))
        case MessageKind.Cc:
            controller = _require(data, "controller", "CC trigger")
            return CcTrigger(controller, channel, _opt_range(data.get("value_range")))
        case MessageKind.ProgramChange:
            program = _require(data, "program", "Program change trigger")
            return ProgramChangeTrigger(program, channel)
        case _:
            raise MatchException(kind)


def parameter_mapping_to_json(param: ParameterMapping) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "parameter_index": param.parameter_index,
        "substitution": param.substitution.value,
    }
    for name in _PARAMETER_FIELDS:
        value = getattr(param, name)
        if value is not None:
            data[name] = value
    return data


def parameter_mapping_from_json(data: Dict[str, Any]) -> ParameterMapping:
    try:
        substitution = ParameterSubstitution(data.get("substitution", "none"))
    except ValueError as e:
        raise ValidationError(f"Unknown substitution: {data.get('substitution')}") from e
    fields = {name: data.get(name) for name in _PARAMETER_FIELDS}
    return ParameterMapping(
        _require(data, "parameter_index", "Parameter mapping"), substitution, **fields
    )


def command_from_json(data: Dict[str, Any]) -> OscCommand:
    return OscCommand.create(
        _require(data, "address", "Command"), data.get("parameters", [])
    )


def mapping_to_json(mapping: Mapping) -> Dict[str, Any]:
    return {
        "id": mapping.id,
        "name": mapping.name,
        "trigger": trigger_to_json(mapping.trigger),
        "command": mapping.command.to_json(),
        "parameter_mappings": [
            parameter_mapping_to_json(p) for p in mapping.parameter_mappings
        ],
        "enabled": mapping.enabled,
        "midi_device": mapping.midi_device,
    }


def mapping_from_json(data: Dict[str, Any]) -> Mapping:
    return Mapping(
        id=_require(data, "id", "Mapping"),
        name=data.get("name", ""),
        trigger=trigger_from_json(_require(data, "trigger", "Mapping")),
        command=command_from_json(_require(data, "command", "Mapping")),
        parameter_mappings=parameter_mappings_from_json(
            data.get("parameter_mappings", [])
        ),
        enabled=bool(data.get("enabled", True)),
        midi_device=data.get("midi_device"),
    )


def parameter_mappings_from_json(
    items: List[Dict[str, Any]],
) -> tuple[ParameterMapping, ...]:
    return tuple(parameter_mapping_from_json(item) for item in items)
