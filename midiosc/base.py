"""Base classes and error types for the midiosc bridge.

This module provides the abstract resource base class, the pattern matching
failure used by exhaustive ``match`` statements, and the error taxonomy
shared by every layer of the bridge.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from typing import Any


class Closeable(metaclass=ABCMeta):
    """Abstract base class for objects that need explicit resource cleanup."""

    @abstractmethod
    def close(self) -> None:
        """Close this to free resources and deny further use."""
        raise NotImplementedError()


class MatchException(Exception):
    """Exception raised when pattern matching over a closed union fails."""

    def __init__(self, value: Any) -> None:
        """Initialize a MatchException with the unmatched value.

        Args:
            value: The value that failed to match any pattern.
        """
        super().__init__(f"Failed to match value: {value}")


class BridgeError(Exception):
    """Root of every failure reported by the bridge."""


class ValidationError(BridgeError, ValueError):
    """A value object or request was malformed."""


class NotFoundError(BridgeError, LookupError):
    """A mapping, track or identifier does not exist."""


class StateError(BridgeError):
    """An operation is not allowed in the current state."""


class RepositoryError(BridgeError):
    """A store could not be read or written."""


class TransportError(BridgeError):
    """An OSC or MIDI transport operation failed."""
