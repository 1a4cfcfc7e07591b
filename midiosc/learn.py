"""Learn mode: turn the next MIDI event into a mapping.

A learn session holds the OSC command the user wants to trigger. The first
MIDI event that arrives while the session is active ends it and becomes the
trigger of a new mapping bound to the device the event came from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from midiosc.base import BridgeError, StateError
from midiosc.command import OscCommand
from midiosc.mapping import Mapping, ParameterMapping, trigger_from_message
from midiosc.midi import MidiInputService
from midiosc.service import MappingService
from midiosc.values import MidiMessage, describe_message

type LearnCallback = Callable[[Mapping], None]


@dataclass(frozen=True)
class LearnSpec:
    """The command (and substitutions) a learn session will map to."""

    command: OscCommand
    parameter_mappings: tuple[ParameterMapping, ...] = ()


class LearnMode:
    def __init__(self, midi_input: MidiInputService, mappings: MappingService) -> None:
        self._midi_input = midi_input
        self._mappings = mappings
        self._pending: Optional[LearnSpec] = None
        self._callbacks: List[LearnCallback] = []

    def on_complete(self, callback: LearnCallback) -> None:
        self._callbacks.append(callback)

    def off_complete(self, callback: LearnCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def is_active(self) -> bool:
        return self._pending is not None

    def pending(self) -> Optional[LearnSpec]:
        return self._pending

    def start(self, spec: LearnSpec) -> None:
        """Begin capturing the next MIDI event.

        Raises:
            StateError: If a session is already active. It is left untouched.
        """
        if self._pending is not None:
            raise StateError("Learn mode is already active")
        self._pending = spec
        self._midi_input.on_message(self._handle)
        logging.info("Learn mode started for %s", spec.command)

    def cancel(self) -> None:
        if self._pending is None:
            return
        self._deactivate()
        logging.info("Learn mode cancelled")

    def _deactivate(self) -> None:
        self._midi_input.off_message(self._handle)
        self._pending = None

    def _handle(self, message: MidiMessage, source_device: Optional[str]) -> None:
        spec = self._pending
        if spec is None:
            return
        # Leave the active state before anything can fail
        self._deactivate()
        name = f"MIDI {describe_message(message)} -> {spec.command.address}"
        try:
            mapping = self._mappings.create_mapping(
                name=name,
                trigger=trigger_from_message(message),
                command=spec.command,
                parameter_mappings=spec.parameter_mappings,
                midi_device=source_device,
            )
        except BridgeError as e:
            logging.error("Failed to create learned mapping: %s", e)
            return
        logging.info("Learned mapping %s", mapping)
        for callback in tuple(self._callbacks):
            try:
                callback(mapping)
            except Exception:
                logging.exception("Learn completion callback failed")
