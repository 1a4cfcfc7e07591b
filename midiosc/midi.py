"""MIDI input handling.

``MidiInputService`` owns the open input ports and a list of handlers.
``MidoMidiInput`` implements it on mido: the backend callback only enqueues
incoming messages, and ``pump`` drains the queue on the caller's thread,
notifying handlers in registration order.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from functools import partial
from queue import Empty, SimpleQueue
from typing import Callable, Dict, List, Optional, Tuple, override

import mido
from mido import Message
from mido.frozen import FrozenMessage, freeze_message
from mido.ports import BaseInput

from midiosc import constants
from midiosc.base import Closeable, StateError, TransportError
from midiosc.values import (
    MidiControlChange,
    MidiMessage,
    MidiNote,
    MidiProgramChange,
)

type MidiHandler = Callable[[MidiMessage, Optional[str]], None]


def decode_message(msg: FrozenMessage) -> Optional[MidiMessage]:
    """Convert a mido message to a domain message.

    Args:
        msg: The mido message. Channels are 0-based.

    Returns:
        The domain message with a 1-based channel, or None for message types
        the bridge ignores (clock, sysex, pitchwheel and so on).
    """
    match msg.type:
        case "note_on":
            return MidiNote(msg.note, msg.velocity, msg.channel + 1)
        case "note_off":
            return MidiNote(msg.note, 0, msg.channel + 1)
        case "control_change":
            return MidiControlChange(msg.control, msg.value, msg.channel + 1)
        case "program_change":
            return MidiProgramChange(msg.program, msg.channel + 1)
        case _:
            return None


class MidiInputService(Closeable):
    """Abstract MIDI input with a synchronous handler list."""

    def __init__(self) -> None:
        self._handlers: List[MidiHandler] = []

    @abstractmethod
    def get_devices(self) -> List[str]:
        """List the names of available input devices."""
        raise NotImplementedError()

    @abstractmethod
    def open_device(self, device_name: str) -> None:
        """Open an input device.

        Args:
            device_name: A device name, or ``"all"`` to open every device.

        Raises:
            TransportError: If the device cannot be opened.
        """
        raise NotImplementedError()

    @abstractmethod
    def close_device(self, device_name: Optional[str] = None) -> None:
        """Close one device, or every open device when no name is given."""
        raise NotImplementedError()

    @abstractmethod
    def current_devices(self) -> List[str]:
        raise NotImplementedError()

    @abstractmethod
    def pump(self, timeout: Optional[float] = None) -> int:
        """Deliver pending messages to handlers on the calling thread.

        Returns:
            The number of messages delivered.
        """
        raise NotImplementedError()

    def is_device_open(self) -> bool:
        return len(self.current_devices()) > 0

    def on_message(self, handler: MidiHandler) -> None:
        self._handlers.append(handler)

    def off_message(self, handler: MidiHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def remove_all_handlers(self) -> None:
        self._handlers.clear()

    def _notify(self, message: MidiMessage, source_device: Optional[str]) -> None:
        # Snapshot so handlers may deregister themselves
        for handler in tuple(self._handlers):
            try:
                handler(message, source_device)
            except Exception:
                logging.exception("MIDI handler failed on %s", message)

    @override
    def close(self) -> None:
        self.close_device()
        self.remove_all_handlers()


class MidoMidiInput(MidiInputService):
    """MIDI input on mido ports, queued and pumped from the main loop."""

    def __init__(self) -> None:
        super().__init__()
        self._ports: Dict[str, BaseInput] = {}
        self._queue: SimpleQueue[Tuple[str, Message]] = SimpleQueue()

    @override
    def get_devices(self) -> List[str]:
        try:
            return list(mido.get_input_names())
        except Exception as e:
            raise TransportError(f"Failed to list MIDI devices: {e}") from e

    @override
    def open_device(self, device_name: str) -> None:
        if device_name == constants.ALL_DEVICES:
            names = self.get_devices()
        else:
            names = [device_name]
        for name in names:
            if name in self._ports:
                continue
            try:
                port = mido.open_input(name, callback=partial(self._enqueue, name))
            except OSError as e:
                raise TransportError(f"Failed to open MIDI device {name}: {e}") from e
            self._ports[name] = port
            logging.info("Opened MIDI input %s", name)

    @override
    def close_device(self, device_name: Optional[str] = None) -> None:
        if device_name is None:
            names = list(self._ports)
        elif device_name in self._ports:
            names = [device_name]
        else:
            raise StateError(f"MIDI device not open: {device_name}")
        for name in names:
            self._ports.pop(name).close()
            logging.info("Closed MIDI input %s", name)

    @override
    def current_devices(self) -> List[str]:
        return list(self._ports)

    def _enqueue(self, device_name: str, msg: Message) -> None:
        # Runs on the backend thread
        self._queue.put_nowait((device_name, msg))

    @override
    def pump(self, timeout: Optional[float] = None) -> int:
        """Deliver queued messages to handlers on the calling thread.

        Args:
            timeout: Seconds to wait for the first message. None blocks until
                one arrives; 0 only drains what is already queued.

        Returns:
            The number of messages delivered.
        """
        count = 0
        block = timeout is None or timeout > 0
        while True:
            try:
                device_name, mut_msg = self._queue.get(block=block, timeout=timeout)
            except Empty:
                return count
            block = False
            msg = freeze_message(mut_msg)
            logging.debug("Received message from %s: %s", device_name, msg)
            message = decode_message(msg)
            if message is not None:
                self._notify(message, device_name)
                count += 1
