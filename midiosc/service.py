"""Application services built on the core collaborators.

These wrap the stores, the track cache and the MIDI input with the
operations the front end calls: mapping CRUD, manual track management and
device selection.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from midiosc import constants
from midiosc.base import BridgeError, NotFoundError, RepositoryError, ValidationError
from midiosc.codec import (
    command_from_json,
    parameter_mappings_from_json,
    trigger_from_json,
)
from midiosc.command import OscCommand
from midiosc.config import ConfigStore
from midiosc.mapping import Mapping, MidiTrigger, ParameterMapping
from midiosc.midi import MidiInputService
from midiosc.store import MappingStore
from midiosc.tracks import TrackCache, TrackInfo


class MappingService:
    """Create, read, update and delete mappings."""

    def __init__(self, store: MappingStore) -> None:
        self._store = store

    def create_mapping(
        self,
        name: str,
        trigger: MidiTrigger,
        command: OscCommand,
        parameter_mappings: Iterable[ParameterMapping] = (),
        enabled: bool = True,
        midi_device: Optional[str] = None,
    ) -> Mapping:
        """Create and persist a new mapping under a fresh id.

        Args:
            name: Display name.
            trigger: The MIDI condition.
            command: The base OSC command.
            parameter_mappings: Substitutions applied at dispatch, in order.
            enabled: Whether the mapping fires.
            midi_device: Source device to listen to, or None for any device.

        Returns:
            The stored mapping.

        Raises:
            RepositoryError: If the store rejects the write.
        """
        mapping = Mapping(
            id=uuid.uuid4().hex,
            name=name,
            trigger=trigger,
            command=command,
            parameter_mappings=tuple(parameter_mappings),
            enabled=enabled,
            midi_device=midi_device or None,
        )
        try:
            self._store.save(mapping)
        except RepositoryError as e:
            raise RepositoryError(f"Failed to save mapping: {e}") from e
        logging.info("Created mapping %s", mapping)
        return mapping

    def create_from_dict(self, data: Dict[str, Any]) -> Mapping:
        """Create a mapping from a plain request, as sent by a front end.

        The request carries ``name``, ``trigger``, ``command`` and optionally
        ``parameter_mappings``, ``enabled`` and ``midi_device``, in the same
        shape the JSON store uses.

        Raises:
            ValidationError: If any part of the request is malformed.
        """
        try:
            trigger = trigger_from_json(data["trigger"])
            command = command_from_json(data["command"])
            params = parameter_mappings_from_json(data.get("parameter_mappings") or [])
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Failed to create mapping: malformed request {e}") from e
        return self.create_mapping(
            name=data.get("name", ""),
            trigger=trigger,
            command=command,
            parameter_mappings=params,
            enabled=data.get("enabled", True),
            midi_device=data.get("midi_device"),
        )

    def get_all(self) -> List[Mapping]:
        try:
            return self._store.get_all()
        except RepositoryError as e:
            raise RepositoryError(f"Failed to get mappings: {e}") from e

    def get(self, mapping_id: str) -> Mapping:
        mapping = self._store.get_by_id(mapping_id)
        if mapping is None:
            raise NotFoundError(f"Mapping with ID {mapping_id} not found")
        return mapping

    def update_mapping(
        self,
        mapping_id: str,
        name: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> Mapping:
        mapping = self.get(mapping_id)
        if name is not None:
            mapping = mapping.with_name(name)
        if enabled is not None:
            mapping = mapping.with_enabled(enabled)
        try:
            self._store.update(mapping)
        except RepositoryError as e:
            raise RepositoryError(f"Failed to update mapping: {e}") from e
        return mapping

    def delete_mapping(self, mapping_id: str) -> None:
        if not self._store.exists(mapping_id):
            raise NotFoundError(f"Mapping with ID {mapping_id} not found")
        try:
            self._store.delete(mapping_id)
        except RepositoryError as e:
            raise RepositoryError(f"Failed to delete mapping: {e}") from e
        logging.info("Deleted mapping %s", mapping_id)

    def clear(self) -> None:
        try:
            self._store.clear()
        except RepositoryError as e:
            raise RepositoryError(f"Failed to clear mappings: {e}") from e


@dataclass(frozen=True)
class TrackListing:
    tracks: List[TrackInfo]
    cache_age: float
    """Seconds since the listing was last changed."""


class TrackService:
    """Manual track configuration and cached track listing."""

    def __init__(self, tracks: TrackCache) -> None:
        self._tracks = tracks

    def add_track(self, index: int, name: str) -> TrackInfo:
        track = TrackInfo(index, name)
        self._tracks.add_track(track)
        return track

    def update_track(self, index: int, name: str) -> None:
        self._tracks.update_track(index, name)

    def remove_track(self, index: int) -> None:
        self._tracks.remove_track(index)

    def clear_tracks(self) -> None:
        self._tracks.clear_cache()

    def fetch_track_names(self, force_refresh: bool = False) -> TrackListing:
        """List tracks, answering from the cache while it is fresh.

        Raises:
            TransportError: If the cache is empty or stale (or a refresh is
                forced) and the live query fails, which it always does over
                one-way OSC.
        """
        if (
            not force_refresh
            and self._tracks.has_cached_tracks()
            and not self._tracks.is_cache_expired()
        ):
            return TrackListing(self._tracks.get_tracks(), self._tracks.cache_age())
        return TrackListing(self._tracks.fetch_tracks(), 0.0)


@dataclass(frozen=True)
class DeviceEntry:
    name: str
    id: str


@dataclass(frozen=True)
class DeviceListing:
    devices: List[DeviceEntry]
    """The all-devices option first, then every input device."""
    current_devices: List[str]


class DeviceService:
    """MIDI input device enumeration and selection."""

    def __init__(self, midi_input: MidiInputService, config: ConfigStore) -> None:
        self._midi_input = midi_input
        self._config = config

    def list_devices(self) -> DeviceListing:
        names = self._midi_input.get_devices()
        devices = [DeviceEntry(constants.ALL_DEVICES_LABEL, constants.ALL_DEVICES)]
        devices.extend(DeviceEntry(name, str(i)) for i, name in enumerate(names))
        return DeviceListing(devices, self._midi_input.current_devices())

    def select_device(self, device_name: str) -> None:
        """Close open inputs, open the named one and remember the choice.

        Args:
            device_name: A device name, or ``"all"`` for every device.
        """
        if self._midi_input.is_device_open():
            self._midi_input.close_device()
        self._midi_input.open_device(device_name)
        try:
            self._config.set_value("selected_midi_device", device_name)
        except BridgeError as e:
            raise RepositoryError(f"Failed to save selected device: {e}") from e
