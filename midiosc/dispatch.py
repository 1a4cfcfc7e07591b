"""The dispatch engine: from a received MIDI event to OSC commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from midiosc.base import TransportError, ValidationError
from midiosc.command import OscCommand
from midiosc.osc import OscSink
from midiosc.store import MappingStore
from midiosc.substitution import substitute
from midiosc.tracks import TrackResolver
from midiosc.values import MidiMessage


@dataclass(frozen=True)
class DispatchFailure:
    mapping_id: str
    reason: str


@dataclass
class DispatchReport:
    """What happened to one event: matched ids, sent commands, failures."""

    matched: List[str] = field(default_factory=list)
    sent: List[OscCommand] = field(default_factory=list)
    failures: List[DispatchFailure] = field(default_factory=list)

    def ok(self) -> bool:
        return not self.failures


class Dispatcher:
    """Fires every mapping that matches an event.

    Mappings are evaluated in store order and each one fires independently:
    a failed substitution or send is logged and recorded against that
    mapping, and the rest still fire.
    """

    def __init__(
        self, store: MappingStore, osc_sink: OscSink, tracks: TrackResolver
    ) -> None:
        self._store = store
        self._osc_sink = osc_sink
        self._tracks = tracks

    def process(
        self, message: MidiMessage, source_device: Optional[str] = None
    ) -> DispatchReport:
        """Dispatch one event.

        Args:
            message: The received event.
            source_device: The name of the device that sent it, if known.

        Returns:
            The report for this event.

        Raises:
            RepositoryError: If the mappings cannot be loaded. Nothing is sent.
        """
        mappings = self._store.get_all()
        report = DispatchReport()
        for mapping in mappings:
            if not mapping.matches(message, source_device):
                continue
            report.matched.append(mapping.id)
            try:
                command = substitute(mapping, message, self._tracks)
                self._osc_sink.send(command)
            except (TransportError, ValidationError) as e:
                logging.error("Mapping %s failed on %s: %s", mapping.id, message, e)
                report.failures.append(DispatchFailure(mapping.id, str(e)))
                continue
            logging.debug("Mapping %s sent %s", mapping.name, command)
            report.sent.append(command)
        if not report.matched:
            logging.debug("No mapping for %s from %s", message, source_device)
        return report

    def handle(self, message: MidiMessage, source_device: Optional[str]) -> None:
        """MIDI handler adapter around ``process``."""
        self.process(message, source_device)
