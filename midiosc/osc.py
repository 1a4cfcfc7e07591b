"""One-way OSC output to the controlled application.

Commands are encoded with python-osc and sent as UDP datagrams. Nothing is
ever read back: a successful send only means the datagram left the socket.
"""

from __future__ import annotations

import logging
import socket
from abc import ABCMeta, abstractmethod
from enum import Enum, unique
from typing import Optional, Tuple, override

from pythonosc.osc_message_builder import BuildError, OscMessageBuilder

from midiosc import constants
from midiosc.base import Closeable, TransportError
from midiosc.command import OscCommand


@unique
class OscStatus(Enum):
    Disconnected = "disconnected"
    Connected = "connected"
    Error = "error"


class OscSink(Closeable, metaclass=ABCMeta):
    """Abstract base class for OSC command outputs."""

    @abstractmethod
    def connect(self, host: str, port: int) -> None:
        """Start sending to the given host and UDP port.

        Raises:
            TransportError: If the socket cannot be set up.
        """
        raise NotImplementedError()

    @abstractmethod
    def disconnect(self) -> None:
        raise NotImplementedError()

    @abstractmethod
    def send(self, command: OscCommand) -> None:
        """Send one command.

        Raises:
            TransportError: If not connected or the send fails.
        """
        raise NotImplementedError()

    @abstractmethod
    def is_connected(self) -> bool:
        raise NotImplementedError()

    @abstractmethod
    def status(self) -> OscStatus:
        raise NotImplementedError()

    def test(self) -> bool:
        """Send the test message; one-way, so success means it was sent."""
        if not self.is_connected():
            raise TransportError("Not connected to OSC server")
        self.send(OscCommand.create(constants.OSC_TEST_ADDRESS))
        return True

    @override
    def close(self) -> None:
        self.disconnect()


def build_datagram(command: OscCommand) -> bytes:
    """Encode a command as an OSC message datagram.

    Booleans are sent as integers 1 and 0, which is what AbletonOSC expects;
    every other argument type is inferred by python-osc.

    Args:
        command: The command to encode.

    Returns:
        The encoded datagram.
    """
    builder = OscMessageBuilder(command.address.path)
    for param in command.parameters:
        if isinstance(param, bool):
            builder.add_arg(int(param), OscMessageBuilder.ARG_TYPE_INT)
        else:
            builder.add_arg(param)
    return builder.build().dgram


class UdpOscSink(OscSink):
    """OSC sink writing datagrams to a single UDP socket."""

    def __init__(self) -> None:
        self._sock: Optional[socket.socket] = None
        self._remote: Optional[Tuple[str, int]] = None
        self._status = OscStatus.Disconnected

    @override
    def connect(self, host: str, port: int) -> None:
        self.disconnect()
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.bind(("0.0.0.0", 0))
        except OSError as e:
            self._status = OscStatus.Error
            raise TransportError(f"Failed to connect to OSC: {e}") from e
        self._sock = sock
        self._remote = (host, port)
        self._status = OscStatus.Connected
        logging.info("OSC connected to %s:%d", host, port)

    @override
    def disconnect(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logging.info("OSC disconnected")
        self._remote = None
        self._status = OscStatus.Disconnected

    @override
    def send(self, command: OscCommand) -> None:
        if self._sock is None or self._remote is None:
            raise TransportError("OSC client not connected")
        try:
            dgram = build_datagram(command)
            self._sock.sendto(dgram, self._remote)
        except (BuildError, OSError) as e:
            raise TransportError(f"Failed to send OSC message {command}: {e}") from e
        logging.debug("Sent OSC command to %s:%d: %s", *self._remote, command)

    @override
    def is_connected(self) -> bool:
        return self._status == OscStatus.Connected and self._sock is not None

    @override
    def status(self) -> OscStatus:
        return self._status
