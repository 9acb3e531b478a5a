"""Flat-file record store and query helpers for the Zookeepr API."""

from __future__ import annotations

import json
import logging
from numbers import Number
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
QueryValue = Union[str, Sequence[str]]


class PersistenceError(RuntimeError):
    """Raised when a collection file cannot be read or written."""


class InvalidRecordError(ValueError):
    """Raised when a candidate record fails the required-field checks."""


class JsonCollectionStore:
    """Ordered, append-only collection backed by a single JSON document.

    The document holds one top-level ``key`` whose value is the list of
    records. Every append rewrites the whole file before returning.
    """

    def __init__(self, path: Union[str, Path], key: str, records: Optional[List[Record]] = None) -> None:
        self.path = Path(path)
        self.key = key
        self._records: List[Record] = list(records or [])

    @classmethod
    def load(cls, path: Union[str, Path], key: str) -> "JsonCollectionStore":
        """Build a store from the document at ``path``.

        A missing file yields an empty collection; it is created on the
        first append.
        """

        path = Path(path)
        if not path.exists():
            logger.warning("Collection file %s not found, starting with no %s", path, key)
            return cls(path, key)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Unable to load {key} from {path}: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get(key), list):
            raise PersistenceError(f"{path} has no '{key}' list")
        logger.info("Loaded %d %s from %s", len(data[key]), key, path)
        return cls(path, key, data[key])

    @property
    def records(self) -> List[Record]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def find(self, record_id: str) -> Optional[Record]:
        """Return the record with ``record_id`` or ``None``."""

        for record in self._records:
            if record.get("id") == record_id:
                return record
        return None

    def append(self, record: Record) -> Record:
        """Assign the next id, append ``record`` and rewrite the file."""

        record["id"] = str(len(self._records))
        # No rollback if the write fails.
        self._records.append(record)
        self.persist()
        logger.info("Stored %s record %s", self.key, record["id"])
        return record

    def persist(self) -> None:
        """Overwrite the backing file with the current collection."""

        payload = json.dumps({self.key: self._records}, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to write %s to %s: %s", self.key, self.path, exc)
            raise PersistenceError(f"Unable to write {self.key} to {self.path}") from exc


def _as_list(value: QueryValue) -> List[str]:
    if isinstance(value, str):
        return [value]
    return list(value)


def _parse_number(value: str) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _matching(records: List[Record], field: str, values: List[Any]) -> List[Record]:
    return [record for record in records if all(record.get(field) == value for value in values)]


def filter_animals(query: Mapping[str, QueryValue], animals: Sequence[Record]) -> List[Record]:
    """Return the animals matching every recognised key in ``query``.

    ``personalityTraits`` requires each requested trait to be present;
    ``diet``, ``species`` and ``name`` compare for exact equality against
    every supplied value. Other keys are ignored.
    """

    results = list(animals)
    if "personalityTraits" in query:
        traits = _as_list(query["personalityTraits"])
        for trait in traits:
            results = [animal for animal in results if trait in (animal.get("personalityTraits") or [])]
    for field in ("diet", "species", "name"):
        if field in query:
            results = _matching(results, field, _as_list(query[field]))
    return results


def filter_zookeepers(query: Mapping[str, QueryValue], zookeepers: Sequence[Record]) -> List[Record]:
    """Return the zookeepers matching ``age``, ``favoriteAnimal`` and ``name``."""

    results = list(zookeepers)
    if "age" in query:
        ages = [_parse_number(value) for value in _as_list(query["age"])]
        if None in ages:
            return []
        results = [keeper for keeper in _matching(results, "age", ages) if _is_number(keeper.get("age"))]
    for field in ("favoriteAnimal", "name"):
        if field in query:
            results = _matching(results, field, _as_list(query[field]))
    return results


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def validate_animal(candidate: Any) -> bool:
    """Check field presence and types only; string content is not inspected."""

    if not isinstance(candidate, dict):
        return False
    if not all(isinstance(candidate.get(field), str) for field in ("name", "species", "diet")):
        return False
    return isinstance(candidate.get("personalityTraits"), list)


def validate_zookeeper(candidate: Any) -> bool:
    if not isinstance(candidate, dict):
        return False
    if not isinstance(candidate.get("name"), str) or not isinstance(candidate.get("favoriteAnimal"), str):
        return False
    return _is_number(candidate.get("age"))


def _create(
    store: JsonCollectionStore,
    candidate: Any,
    validator: Callable[[Any], bool],
    message: str,
) -> Record:
    if not validator(candidate):
        logger.info("Rejected %s candidate: %s", store.key, message)
        raise InvalidRecordError(message)
    return store.append(dict(candidate))


def list_animals(store: JsonCollectionStore, query: Mapping[str, QueryValue]) -> List[Record]:
    return filter_animals(query, store.records)


def get_animal_by_id(store: JsonCollectionStore, animal_id: str) -> Optional[Record]:
    return store.find(animal_id)


def create_animal(store: JsonCollectionStore, candidate: Any) -> Record:
    """Validate ``candidate`` and persist it, returning the stored record."""

    return _create(store, candidate, validate_animal, "The animal is not properly formatted.")


def list_zookeepers(store: JsonCollectionStore, query: Mapping[str, QueryValue]) -> List[Record]:
    return filter_zookeepers(query, store.records)


def get_zookeeper_by_id(store: JsonCollectionStore, zookeeper_id: str) -> Optional[Record]:
    return store.find(zookeeper_id)


def create_zookeeper(store: JsonCollectionStore, candidate: Any) -> Record:
    """Validate ``candidate`` and persist it, returning the stored record."""

    return _create(store, candidate, validate_zookeeper, "The zookeeper is not properly formatted.")
