"""
Document paths, write sentinels and the pure merge logic shared by store backends.

Paths are slash separated with an even number of segments:
    bookings/HR-BT-LZ3K1A-Q7P2XM
    users/u-1/trips/HR-BT-LZ3K1A-Q7P2XM
"""

from collections.abc import Iterator, Mapping
import copy
from datetime import datetime
from enum import StrEnum
from typing import Any

import attrs


class _ServerTimestamp:
    _instance: '_ServerTimestamp | None' = None

    def __new__(cls) -> '_ServerTimestamp':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'SERVER_TIMESTAMP'


SERVER_TIMESTAMP = _ServerTimestamp()


@attrs.frozen
class Increment:
    """Atomic numeric add applied by the store at commit time. A missing field counts as 0."""

    amount: int | float


class WriteKind(StrEnum):
    SET = 'set'
    MERGE = 'merge'
    UPDATE = 'update'


@attrs.frozen
class WriteOp:
    kind: WriteKind
    path: str
    data: Mapping[str, Any]


@attrs.frozen
class DocumentSnapshot:
    path: str
    data: dict[str, Any]
    version: int

    @property
    def id(self) -> str:
        return document_id_of(self.path)


@attrs.frozen
class DocumentChange:
    """One committed write. `data` is the document after the write."""

    path: str
    collection: str
    data: dict[str, Any]


FieldPath = tuple[str, ...]


def validate_document_path(path: str) -> str:
    segments = path.split('/')
    if len(segments) < 2 or len(segments) % 2 or not all(segments):
        raise ValueError(f'Invalid document path: {path!r}')
    return path


def collection_of(path: str) -> str:
    return validate_document_path(path).rsplit('/', 1)[0]


def document_id_of(path: str) -> str:
    return validate_document_path(path).rsplit('/', 1)[1]


def is_transform(value: Any) -> bool:
    return isinstance(value, Increment) or value is SERVER_TIMESTAMP


def iter_leaves(data: Mapping[str, Any], prefix: FieldPath = ()) -> Iterator[tuple[FieldPath, Any]]:
    """Yield (field path, value); non-empty dicts are descended into, everything else is a leaf."""
    for key, value in data.items():
        path = (*prefix, key)
        if isinstance(value, Mapping) and value:
            yield from iter_leaves(value, path)
        else:
            yield path, value


def strip_transforms(data: Mapping[str, Any]) -> tuple[dict[str, Any], list[tuple[FieldPath, Any]]]:
    """Split a payload into plain data and the sentinel leaves removed from it."""
    plain: dict[str, Any] = {}
    transforms: list[tuple[FieldPath, Any]] = []

    def _walk(source: Mapping[str, Any], target: dict[str, Any], prefix: FieldPath) -> None:
        for key, value in source.items():
            path = (*prefix, key)
            if is_transform(value):
                transforms.append((path, value))
            elif isinstance(value, Mapping):
                target[key] = {}
                _walk(value, target[key], path)
            else:
                target[key] = copy.deepcopy(value)

    _walk(data, plain, ())
    return plain, transforms


def _get_at(doc: Mapping[str, Any], path: FieldPath) -> Any:
    current: Any = doc
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


def _set_at(doc: dict[str, Any], path: FieldPath, value: Any) -> None:
    current = doc
    for key in path[:-1]:
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child
    current[path[-1]] = value


def _resolve(existing: Any, value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, Increment):
        base = existing if isinstance(existing, int | float) and not isinstance(existing, bool) else 0
        return base + value.amount
    return copy.deepcopy(value)


def apply_write(existing: dict[str, Any] | None, op: WriteOp, now: datetime) -> dict[str, Any]:
    """Return the document produced by applying `op` on top of `existing`.

    SET replaces the document, MERGE and UPDATE merge leaf by leaf. The caller
    checks that UPDATE targets an existing document.
    """
    if op.kind is WriteKind.SET:
        result, transforms = strip_transforms(op.data)
        for path, value in transforms:
            _set_at(result, path, _resolve(None, value, now))
        return result

    result = copy.deepcopy(existing) if existing else {}
    for path, value in iter_leaves(op.data):
        _set_at(result, path, _resolve(_get_at(result, path), value, now))
    return result


def matches(data: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    if not where:
        return True
    return all(data.get(key) == value for key, value in where.items())
