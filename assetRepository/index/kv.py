"""Embedded key/value-and-set index backend.

Each named structure (a set, a map of sets, or a plain map) is guarded by its
own lock, so every read-modify-write on one structure is atomic and visible
to the next reader. A single ``register_asset`` call touches several
structures and is not a cross-structure transaction.

The index lives in memory; when ``storage_path`` is given it is loaded from
and flushed to a JSON snapshot.
"""
from __future__ import annotations

from contextlib import contextmanager
import json
import logging
from pathlib import Path
import threading
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple
from uuid import UUID

from ..errors import NotFound
from ..model import Annotation, AssetPointer, DescriptiveMetadata
from .base import Index, annotation_keys

logger = logging.getLogger(__name__)

ASSETS_SET = "assets"
BY_TYPE_MAP = "byType"
BY_ROLE_MAP = "byRole"
BY_ANNOTATION_MAP = "byAnnotation"
BY_ANNOTATION_TYPE_MAP = "byAnnotationType"
ASSET_TO_ARTIFACT_MAP = "assetToArtifact"
ASSET_TO_SURROGATE_MAP = "assetToSurrogate"
ID_TO_LOCATION_MAP = "idToLocation"
DESCRIPTIVE_METADATA_MAP = "metadata"
LATEST_ASSET_MAP = "latestAsset"
SERIES_MAP = "series"
OUTGOING_MAP = "outgoing"
INCOMING_MAP = "incoming"


def _ptr(value: AssetPointer) -> List[Optional[str]]:
    return [value.tag or None, value.version]


def _unptr(value: Sequence[Optional[str]]) -> AssetPointer:
    return AssetPointer(value[0], value[1])


def _edges(value: Set[Tuple[str, AssetPointer]]) -> List[List[Any]]:
    return sorted(([rel, _ptr(p)] for rel, p in value), key=lambda e: (e[0], str(e[1])))


# (encode, decode) pairs per structure for the JSON snapshot; INCOMING_MAP is
# derived from OUTGOING_MAP on load.
_CODECS: Dict[str, Tuple[Callable[[Any], Any], Callable[[Any], Any]]] = {
    ASSETS_SET: (
        lambda s: [_ptr(p) for p in s],
        lambda raw: {_unptr(p) for p in raw},
    ),
    BY_TYPE_MAP: (
        lambda m: {k: [_ptr(p) for p in v] for k, v in m.items()},
        lambda raw: {k: {_unptr(p) for p in v} for k, v in raw.items()},
    ),
    BY_ROLE_MAP: (
        lambda m: {k: [_ptr(p) for p in v] for k, v in m.items()},
        lambda raw: {k: {_unptr(p) for p in v} for k, v in raw.items()},
    ),
    BY_ANNOTATION_MAP: (
        lambda m: {k: [_ptr(p) for p in v] for k, v in m.items()},
        lambda raw: {k: {_unptr(p) for p in v} for k, v in raw.items()},
    ),
    BY_ANNOTATION_TYPE_MAP: (
        lambda m: {k: sorted(v) for k, v in m.items()},
        lambda raw: {k: set(v) for k, v in raw.items()},
    ),
    ASSET_TO_ARTIFACT_MAP: (
        lambda m: [[_ptr(k), [_ptr(p) for p in v]] for k, v in m.items()],
        lambda raw: {_unptr(k): {_unptr(p) for p in v} for k, v in raw},
    ),
    ASSET_TO_SURROGATE_MAP: (
        lambda m: [[_ptr(k), _ptr(v)] for k, v in m.items()],
        lambda raw: {_unptr(k): _unptr(v) for k, v in raw},
    ),
    ID_TO_LOCATION_MAP: (
        lambda m: [[_ptr(k), v] for k, v in m.items()],
        lambda raw: {_unptr(k): v for k, v in raw},
    ),
    DESCRIPTIVE_METADATA_MAP: (
        lambda m: [[_ptr(k), v.to_dict()] for k, v in m.items()],
        lambda raw: {_unptr(k): DescriptiveMetadata.from_dict(v) for k, v in raw},
    ),
    LATEST_ASSET_MAP: (
        lambda m: {k: _ptr(v) for k, v in m.items()},
        lambda raw: {k: _unptr(v) for k, v in raw.items()},
    ),
    SERIES_MAP: (
        lambda m: {k: [_ptr(p) for p in v] for k, v in m.items()},
        lambda raw: {k: [_unptr(p) for p in v] for k, v in raw.items()},
    ),
    OUTGOING_MAP: (
        lambda m: [[_ptr(k), _edges(v)] for k, v in m.items()],
        lambda raw: {_unptr(k): {(rel, _unptr(p)) for rel, p in v} for k, v in raw},
    ),
}


class KeyValueIndex(Index):
    """Index backed by in-process maps of sets."""

    def __init__(self, storage_path: Path | None = None) -> None:
        self.storage_path = Path(storage_path) if storage_path else None
        self._data: Dict[str, Any] = {}
        self._locks: Dict[str, threading.RLock] = {}
        for name in (ASSETS_SET,):
            self._declare(name, set())
        for name in (
            BY_TYPE_MAP,
            BY_ROLE_MAP,
            BY_ANNOTATION_MAP,
            BY_ANNOTATION_TYPE_MAP,
            ASSET_TO_ARTIFACT_MAP,
            ASSET_TO_SURROGATE_MAP,
            ID_TO_LOCATION_MAP,
            DESCRIPTIVE_METADATA_MAP,
            LATEST_ASSET_MAP,
            SERIES_MAP,
            OUTGOING_MAP,
            INCOMING_MAP,
        ):
            self._declare(name, {})
        if self.storage_path is not None and self.storage_path.exists():
            self._load()

    def _declare(self, name: str, empty: Any) -> None:
        self._data[name] = empty
        self._locks[name] = threading.RLock()

    @contextmanager
    def _structure(self, name: str) -> Iterator[Any]:
        with self._locks[name]:
            yield self._data[name]

    def _add_to_set(self, name: str, key: Any, value: Any) -> None:
        with self._structure(name) as mapping:
            mapping.setdefault(key, set()).add(value)

    def _members(self, name: str, key: Optional[str]) -> Set[AssetPointer]:
        if not key or not str(key).strip():
            with self._structure(ASSETS_SET) as assets:
                return set(assets)
        with self._structure(name) as mapping:
            return set(mapping.get(key, ()))

    # ------------------------------------------------------------------
    # Registration

    def _register_classification(
        self, asset: AssetPointer, types: Sequence[str], roles: Sequence[str]
    ) -> None:
        for asset_type in types:
            self._add_to_set(BY_TYPE_MAP, asset_type, asset)
        for role in roles:
            self._add_to_set(BY_ROLE_MAP, role, asset)
        with self._structure(ASSETS_SET) as assets:
            assets.add(asset)

    def _register_latest(self, asset: AssetPointer) -> None:
        series = asset.tag
        with self._structure(SERIES_MAP) as versions:
            known = versions.setdefault(series, [])
            if asset in known:
                return
            known.append(asset)
            # Held under the series lock so latest always matches the version order.
            with self._structure(LATEST_ASSET_MAP) as latest:
                latest[series] = asset

    def register_artifact_to_asset(self, asset: AssetPointer, artifact: AssetPointer) -> None:
        self._add_to_set(ASSET_TO_ARTIFACT_MAP, asset, artifact)

    def register_surrogate_to_asset(self, asset: AssetPointer, surrogate: AssetPointer) -> None:
        with self._structure(ASSET_TO_SURROGATE_MAP) as mapping:
            mapping[asset] = surrogate

    def register_location(self, pointer: AssetPointer, href: str) -> None:
        with self._structure(ID_TO_LOCATION_MAP) as mapping:
            mapping[pointer] = href

    def register_annotations(self, pointer: AssetPointer, annotations: Iterable[Annotation]) -> None:
        for annotation in annotations:
            for key in annotation_keys(annotation):
                self._add_to_set(BY_ANNOTATION_MAP, key, pointer)
            if annotation.predicate:
                self._add_to_set(BY_ANNOTATION_TYPE_MAP, annotation.predicate, annotation.concept)

    def register_descriptive_metadata(
        self,
        pointer: AssetPointer,
        name: Optional[str],
        description: Optional[str],
        types: Sequence[str] = (),
    ) -> None:
        primary = next(iter(types), None)
        with self._structure(DESCRIPTIVE_METADATA_MAP) as mapping:
            mapping[pointer] = DescriptiveMetadata(name, description, primary)

    def register_link(self, subject: AssetPointer, predicate: str, target: AssetPointer) -> None:
        self._add_to_set(OUTGOING_MAP, subject, (predicate, target))
        self._add_to_set(INCOMING_MAP, target, (predicate, subject))

    # ------------------------------------------------------------------
    # Lookups

    def get_surrogate_for_asset(self, asset: AssetPointer) -> Optional[AssetPointer]:
        with self._structure(ASSET_TO_SURROGATE_MAP) as mapping:
            return mapping.get(asset)

    def get_artifacts_for_asset(self, asset: AssetPointer) -> Set[AssetPointer]:
        with self._structure(ASSET_TO_ARTIFACT_MAP) as mapping:
            return set(mapping.get(asset, ()))

    def get_location(self, pointer: AssetPointer) -> str:
        with self._structure(ID_TO_LOCATION_MAP) as mapping:
            if pointer in mapping:
                return mapping[pointer]
        raise NotFound(f"Location of {pointer} not found")

    def get_descriptive_metadata(self, pointer: AssetPointer) -> Optional[DescriptiveMetadata]:
        with self._structure(DESCRIPTIVE_METADATA_MAP) as mapping:
            return mapping.get(pointer)

    def get_asset_ids_by_type(self, asset_type: Optional[str] = None) -> Set[AssetPointer]:
        return self._members(BY_TYPE_MAP, asset_type)

    def get_asset_ids_by_role(self, role: Optional[str] = None) -> Set[AssetPointer]:
        return self._members(BY_ROLE_MAP, role)

    def get_asset_ids_by_annotation(self, annotation: Optional[str] = None) -> Set[AssetPointer]:
        return self._members(BY_ANNOTATION_MAP, annotation)

    def get_annotations_of_type(self, predicate: str) -> Set[str]:
        with self._structure(BY_ANNOTATION_TYPE_MAP) as mapping:
            return set(mapping.get(predicate, ()))

    def get_latest_asset_for_id(self, asset_id: UUID | str) -> Optional[AssetPointer]:
        with self._structure(LATEST_ASSET_MAP) as latest:
            return latest.get(str(asset_id))

    def get_asset_versions(self, asset_id: UUID | str) -> List[AssetPointer]:
        with self._structure(SERIES_MAP) as versions:
            return list(reversed(versions.get(str(asset_id), [])))

    def _outgoing(self, pointer: AssetPointer) -> Set[Tuple[str, AssetPointer]]:
        with self._structure(OUTGOING_MAP) as mapping:
            return set(mapping.get(pointer, ()))

    def _incoming(self, pointer: AssetPointer) -> Set[Tuple[str, AssetPointer]]:
        with self._structure(INCOMING_MAP) as mapping:
            return set(mapping.get(pointer, ()))

    # ------------------------------------------------------------------
    # Administration and persistence

    def reset(self) -> None:
        for name in self._data:
            with self._structure(name) as structure:
                structure.clear()
        logger.info("Index reset: all structures cleared")

    def flush(self) -> None:
        if self.storage_path is None:
            return
        snapshot: Dict[str, Any] = {}
        for name, (encode, _) in _CODECS.items():
            with self._structure(name) as structure:
                snapshot[name] = encode(structure)
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(
            json.dumps(snapshot, indent=2, sort_keys=True),
            encoding="utf-8",
        )

    def close(self) -> None:
        self.flush()

    def _load(self) -> None:
        assert self.storage_path is not None
        raw = json.loads(self.storage_path.read_text(encoding="utf-8"))
        for name, (_, decode) in _CODECS.items():
            if name in raw:
                with self._locks[name]:
                    self._data[name] = decode(raw[name])
        with self._structure(OUTGOING_MAP) as outgoing, self._structure(INCOMING_MAP) as incoming:
            for subject, edges in outgoing.items():
                for rel, target in edges:
                    incoming.setdefault(target, set()).add((rel, subject))
        logger.info("Loaded index snapshot from %s", self.storage_path)


__all__ = ["KeyValueIndex"]
