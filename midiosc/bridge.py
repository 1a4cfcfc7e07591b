"""Composition root wiring the bridge collaborators together.

The dispatch handler is registered on the MIDI input before any learn
session can register its own, so it sees every event first and stands
aside while learn mode is active.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, override

from midiosc import constants
from midiosc.base import Closeable
from midiosc.config import ConfigStore, JsonConfigStore
from midiosc.dispatch import Dispatcher
from midiosc.learn import LearnMode, LearnSpec
from midiosc.midi import MidiInputService, MidoMidiInput
from midiosc.osc import OscSink, UdpOscSink
from midiosc.service import DeviceService, MappingService, TrackService
from midiosc.store import JsonMappingStore, MappingStore
from midiosc.tracks import TrackCache
from midiosc.values import MidiChannel, MidiMessage


class Bridge(Closeable):
    """Owns the MIDI input and OSC sink and routes events between them."""

    @classmethod
    def open(
        cls,
        config_dir: Path,
        osc_host: Optional[str] = None,
        osc_port: Optional[int] = None,
        device: Optional[str] = None,
    ) -> Bridge:
        """Build a bridge on the JSON stores in ``config_dir``.

        The keyword arguments override stored settings for this run only.
        """
        config = JsonConfigStore(config_dir / constants.CONFIG_FILE_NAME)
        config.touch()
        store = JsonMappingStore(config_dir / constants.MAPPINGS_FILE_NAME)
        return cls(
            config=config,
            store=store,
            osc_sink=UdpOscSink(),
            midi_input=MidoMidiInput(),
            osc_host=osc_host,
            osc_port=osc_port,
            device=device,
        )

    def __init__(
        self,
        config: ConfigStore,
        store: MappingStore,
        osc_sink: OscSink,
        midi_input: MidiInputService,
        osc_host: Optional[str] = None,
        osc_port: Optional[int] = None,
        device: Optional[str] = None,
    ) -> None:
        self._config = config
        self._osc_sink = osc_sink
        self._midi_input = midi_input
        self._osc_host = osc_host
        self._osc_port = osc_port
        self._device = device
        self.tracks = TrackCache(osc_sink)
        self.dispatcher = Dispatcher(store, osc_sink, self.tracks)
        self.mappings = MappingService(store)
        self.track_service = TrackService(self.tracks)
        self.devices = DeviceService(midi_input, config)
        self.learn = LearnMode(midi_input, self.mappings)
        self._midi_input.on_message(self._handle_message)

    @property
    def midi_input(self) -> MidiInputService:
        return self._midi_input

    @property
    def osc_sink(self) -> OscSink:
        return self._osc_sink

    @property
    def config(self) -> ConfigStore:
        return self._config

    def _handle_message(self, message: MidiMessage, source_device: Optional[str]) -> None:
        if self.learn.is_active():
            return
        channel = MidiChannel.from_value(self._config.get().selected_midi_channel)
        if not channel.matches(message.channel):
            logging.debug("Ignoring %s outside %s", message, channel)
            return
        self.dispatcher.process(message, source_device)

    def connect_osc(self) -> None:
        """Connect the sink to the configured (or overridden) host and port."""
        config = self._config.get()
        host = self._osc_host if self._osc_host is not None else config.osc_host
        port = self._osc_port if self._osc_port is not None else config.osc_port
        self._osc_sink.connect(host, port)

    def open_midi(self) -> None:
        """Open the configured (or overridden) device, defaulting to all."""
        device = self._device or self._config.get().selected_midi_device
        self._midi_input.open_device(device or constants.ALL_DEVICES)

    def test_osc(self) -> bool:
        return self._osc_sink.test()

    def start_learn(self, spec: LearnSpec) -> None:
        self.learn.start(spec)

    @override
    def close(self) -> None:
        self.learn.cancel()
        self._midi_input.close()
        self._osc_sink.close()


@contextmanager
def bridge_context(bridge: Bridge) -> Generator[Bridge, None, None]:
    """Connect the bridge and close it on the way out, even on error."""
    logging.info("starting bridge")
    try:
        bridge.connect_osc()
        yield bridge
    finally:
        logging.info("closing bridge")
        bridge.close()
