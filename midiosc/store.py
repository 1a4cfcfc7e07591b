"""Mapping storage.

The store owns every mapping. ``MemoryMappingStore`` keeps them in insertion
order; ``JsonMappingStore`` additionally writes the whole collection to a
JSON file after each change and reads it back on start.
"""

from __future__ import annotations

import json
import logging
from abc import ABCMeta, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, override

from midiosc.base import BridgeError, NotFoundError, RepositoryError
from midiosc.codec import mapping_from_json, mapping_to_json
from midiosc.mapping import Mapping


class MappingStore(metaclass=ABCMeta):
    """Abstract base class for mapping persistence."""

    @abstractmethod
    def get_all(self) -> List[Mapping]:
        """Get every mapping in store order.

        Raises:
            RepositoryError: If the store cannot be read.
        """
        raise NotImplementedError()

    @abstractmethod
    def get_by_id(self, mapping_id: str) -> Optional[Mapping]:
        raise NotImplementedError()

    @abstractmethod
    def save(self, mapping: Mapping) -> None:
        """Insert a mapping, or overwrite one with the same id."""
        raise NotImplementedError()

    @abstractmethod
    def update(self, mapping: Mapping) -> None:
        """Replace an existing mapping.

        Raises:
            NotFoundError: If no mapping has the id.
        """
        raise NotImplementedError()

    @abstractmethod
    def delete(self, mapping_id: str) -> None:
        """Remove a mapping.

        Raises:
            NotFoundError: If no mapping has the id.
        """
        raise NotImplementedError()

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError()

    @abstractmethod
    def exists(self, mapping_id: str) -> bool:
        raise NotImplementedError()


class MemoryMappingStore(MappingStore):
    """Mapping store held in a dict, preserving insertion order."""

    def __init__(self) -> None:
        self._mappings: Dict[str, Mapping] = {}

    @override
    def get_all(self) -> List[Mapping]:
        return list(self._mappings.values())

    @override
    def get_by_id(self, mapping_id: str) -> Optional[Mapping]:
        return self._mappings.get(mapping_id)

    @override
    def save(self, mapping: Mapping) -> None:
        candidate = dict(self._mappings)
        candidate[mapping.id] = mapping
        self._commit(candidate)

    @override
    def update(self, mapping: Mapping) -> None:
        if mapping.id not in self._mappings:
            raise NotFoundError(f"Mapping with ID {mapping.id} not found")
        candidate = dict(self._mappings)
        candidate[mapping.id] = mapping
        self._commit(candidate)

    @override
    def delete(self, mapping_id: str) -> None:
        if mapping_id not in self._mappings:
            raise NotFoundError(f"Mapping with ID {mapping_id} not found")
        candidate = dict(self._mappings)
        del candidate[mapping_id]
        self._commit(candidate)

    @override
    def clear(self) -> None:
        self._commit({})

    @override
    def exists(self, mapping_id: str) -> bool:
        return mapping_id in self._mappings

    def _commit(self, candidate: Dict[str, Mapping]) -> None:
        # Memory only changes once the candidate has been persisted
        self._persist(candidate)
        self._mappings = candidate

    def _persist(self, mappings: Dict[str, Mapping]) -> None:
        """Hook called with the new contents before every change is applied."""


class JsonMappingStore(MemoryMappingStore):
    """Mapping store persisted to a JSON file.

    The file holds ``{"mappings": [...]}``. Entries that fail to decode are
    logged and skipped on load so one bad entry does not lose the rest.
    """

    def __init__(self, path: Path) -> None:
        """Open the store, loading any mappings already on disk.

        Args:
            path: The JSON file; created on first write if missing.

        Raises:
            RepositoryError: If the file exists but cannot be read.
        """
        super().__init__()
        self._path = path
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            logging.info("No mappings file at %s, starting empty", self._path)
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise RepositoryError(f"Failed to load mappings from {self._path}: {e}") from e
        if not isinstance(raw, dict):
            raise RepositoryError(f"Malformed mappings file {self._path}")
        items = raw.get("mappings", [])
        if not isinstance(items, list):
            raise RepositoryError(f"Malformed mappings file {self._path}")
        for item in items:
            try:
                mapping = mapping_from_json(item)
            except (BridgeError, KeyError, TypeError, AttributeError) as e:
                entry_id = item.get("id") if isinstance(item, dict) else item
                logging.error("Failed to load mapping %s: %s", entry_id, e)
                continue
            self._mappings[mapping.id] = mapping
        logging.info("Loaded %d mappings from %s", len(self._mappings), self._path)

    @override
    def _persist(self, mappings: Dict[str, Mapping]) -> None:
        data = {"mappings": [mapping_to_json(m) for m in mappings.values()]}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(self._path)
        except OSError as e:
            raise RepositoryError(f"Failed to persist mappings to {self._path}: {e}") from e
