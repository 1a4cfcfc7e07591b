"""Track name resolution for parameter substitution.

Ableton Live addresses tracks by index, but mappings are easier to maintain
by name. The resolver keeps a small table of known tracks, sorted by index,
together with the time it was last changed so callers can tell when the
table has gone stale.
"""

from __future__ import annotations

import logging
import math
import time
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from midiosc import constants
from midiosc.base import NotFoundError, TransportError, ValidationError
from midiosc.command import OscCommand
from midiosc.osc import OscSink

type TracksListener = Callable[[List[TrackInfo]], None]


class TrackFetchError(TransportError):
    """Raised when live track names cannot be queried."""


@dataclass(frozen=True)
class TrackInfo:
    """A track index paired with its (trimmed, non-empty) name."""

    index: int
    name: str

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or self.index < 0:
            raise ValidationError(f"Invalid track index: {self.index}. Must be >= 0.")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Track name cannot be empty")
        object.__setattr__(self, "name", self.name.strip())

    def __str__(self) -> str:
        return f"Track {self.index}: {self.name}"


class TrackResolver(metaclass=ABCMeta):
    """Abstract interface for looking up tracks by name or index."""

    @abstractmethod
    def fetch_tracks(self) -> List[TrackInfo]:
        """Query the live set for authoritative track names."""
        raise NotImplementedError()

    @abstractmethod
    def get_tracks(self) -> List[TrackInfo]:
        raise NotImplementedError()

    @abstractmethod
    def resolve_track_name(self, name: str) -> int:
        """Get the index of the first track with exactly this name.

        Raises:
            NotFoundError: If no track has the name.
        """
        raise NotImplementedError()

    @abstractmethod
    def resolve_track_index(self, index: int) -> str:
        """Get the name of the track at this index.

        Raises:
            NotFoundError: If no track has the index.
        """
        raise NotImplementedError()

    @abstractmethod
    def has_cached_tracks(self) -> bool:
        raise NotImplementedError()

    @abstractmethod
    def clear_cache(self) -> None:
        raise NotImplementedError()

    @abstractmethod
    def cache_age(self) -> float:
        """Seconds since the cache last changed, or ``math.inf`` if never set."""
        raise NotImplementedError()

    def is_cache_expired(self, ttl: float = constants.DEFAULT_TRACK_CACHE_TTL) -> bool:
        return self.cache_age() > ttl


class TrackCache(TrackResolver):
    """Track resolver backed by a manually maintained table.

    The bridge only sends OSC, so track names cannot be read back from Live.
    The table is filled from the front end or from configuration instead, and
    ``fetch_tracks`` always reports that limitation.
    """

    def __init__(
        self,
        osc_sink: Optional[OscSink] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            osc_sink: The OSC output used to request track names.
            clock: Monotonic time source in seconds.
        """
        self._osc_sink = osc_sink
        self._clock = clock
        self._tracks: List[TrackInfo] = []
        self._timestamp: Optional[float] = None
        self._listeners: List[TracksListener] = []

    def fetch_tracks(self) -> List[TrackInfo]:
        if self._osc_sink is None or not self._osc_sink.is_connected():
            raise TransportError("OSC service not connected")
        self._osc_sink.send(OscCommand.create(constants.OSC_TRACK_NAMES_ADDRESS))
        # The reply goes to Live's configured client, never back to us
        raise TrackFetchError(
            "Track name fetching requires two-way OSC communication. "
            "Please configure tracks manually."
        )

    def get_tracks(self) -> List[TrackInfo]:
        return list(self._tracks)

    def resolve_track_name(self, name: str) -> int:
        for track in self._tracks:
            if track.name == name:
                return track.index
        raise NotFoundError(f"Track not found: {name}")

    def resolve_track_index(self, index: int) -> str:
        position = self._position(index)
        if position is None:
            raise NotFoundError(f"Track index not found: {index}")
        return self._tracks[position].name

    def has_cached_tracks(self) -> bool:
        return len(self._tracks) > 0

    def clear_cache(self) -> None:
        self._tracks = []
        self._timestamp = None
        self._notify()

    def cache_age(self) -> float:
        if self._timestamp is None:
            return math.inf
        return self._clock() - self._timestamp

    def set_tracks(self, tracks: Iterable[TrackInfo]) -> None:
        """Replace the whole table; later entries win on duplicate indices."""
        by_index = {track.index: track for track in tracks}
        self._tracks = [by_index[index] for index in sorted(by_index)]
        self._touch()

    def add_track(self, track: TrackInfo) -> None:
        """Insert a track, replacing any track already at its index."""
        position = self._position(track.index)
        if position is not None:
            self._tracks[position] = track
        else:
            self._tracks.append(track)
            self._tracks.sort(key=lambda t: t.index)
        self._touch()

    def update_track(self, index: int, name: str) -> None:
        position = self._position(index)
        if position is None:
            raise NotFoundError(f"Track with index {index} not found")
        self._tracks[position] = TrackInfo(index, name)
        self._touch()

    def remove_track(self, index: int) -> None:
        position = self._position(index)
        if position is None:
            raise NotFoundError(f"Track with index {index} not found")
        del self._tracks[position]
        self._touch()

    def on_tracks_changed(self, listener: TracksListener) -> None:
        self._listeners.append(listener)

    def off_tracks_changed(self, listener: TracksListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _position(self, index: int) -> Optional[int]:
        for position, track in enumerate(self._tracks):
            if track.index == index:
                return position
        return None

    def _touch(self) -> None:
        self._timestamp = self._clock()
        self._notify()

    def _notify(self) -> None:
        snapshot = list(self._tracks)
        for listener in list(self._listeners):
            try:
                listener(list(snapshot))
            except Exception:
                logging.exception("Error in tracks changed listener")
