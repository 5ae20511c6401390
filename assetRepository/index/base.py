from __future__ import annotations

"""Backend-neutral contract of the asset index."""

from abc import ABC, abstractmethod
from collections import deque
from typing import Iterable, List, Optional, Sequence, Set, Tuple
from uuid import UUID

from ..model import Annotation, AssetPointer, DescriptiveMetadata, Link


def annotation_keys(annotation: Annotation) -> List[str]:
    """Return the index keys under which ``annotation`` is recorded.

    The bare concept is always a key; a qualified annotation is also keyed by
    ``predicate + ":" + concept``. Identifiers that themselves contain ``:``
    can collide with the compound form.
    """

    keys = [annotation.concept]
    if annotation.predicate:
        keys.append(f"{annotation.predicate}:{annotation.concept}")
    return keys


class Index(ABC):
    """Registry of asset pointers, their classification and relationships.

    Listing queries never fail: a key that was never used yields an empty
    set, and an empty key yields every registered asset. Lookups for one
    specific pointer either return ``None`` or raise
    :class:`~assetRepository.errors.NotFound` as documented per method.
    """

    # ------------------------------------------------------------------
    # Registration

    def register_asset(
        self,
        asset: AssetPointer,
        surrogate: AssetPointer,
        types: Sequence[str] = (),
        roles: Sequence[str] = (),
        annotations: Iterable[Annotation] = (),
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        """Upsert classification and descriptive metadata for ``asset``.

        Memberships recorded by an earlier registration of the same pointer
        are kept: re-registration is additive per index, and identical calls
        are idempotent.
        """

        if not asset.is_complete:
            raise ValueError(f"asset pointer must carry an id and a version: {asset}")
        self._register_classification(asset, types, roles)
        self._register_latest(asset)
        self.register_surrogate_to_asset(asset, surrogate)
        self.register_annotations(asset, annotations)
        self.register_descriptive_metadata(asset, name, description, types)

    @abstractmethod
    def _register_classification(
        self, asset: AssetPointer, types: Sequence[str], roles: Sequence[str]
    ) -> None:
        ...

    @abstractmethod
    def _register_latest(self, asset: AssetPointer) -> None:
        ...

    @abstractmethod
    def register_artifact_to_asset(self, asset: AssetPointer, artifact: AssetPointer) -> None:
        ...

    @abstractmethod
    def register_surrogate_to_asset(self, asset: AssetPointer, surrogate: AssetPointer) -> None:
        ...

    @abstractmethod
    def register_location(self, pointer: AssetPointer, href: str) -> None:
        ...

    @abstractmethod
    def register_annotations(self, pointer: AssetPointer, annotations: Iterable[Annotation]) -> None:
        ...

    @abstractmethod
    def register_descriptive_metadata(
        self,
        pointer: AssetPointer,
        name: Optional[str],
        description: Optional[str],
        types: Sequence[str] = (),
    ) -> None:
        ...

    @abstractmethod
    def register_link(self, subject: AssetPointer, predicate: str, target: AssetPointer) -> None:
        """Record the edge ``subject --predicate--> target``.

        Either end may reference a pointer that is not registered yet.
        """

    # ------------------------------------------------------------------
    # Lookups

    @abstractmethod
    def get_surrogate_for_asset(self, asset: AssetPointer) -> Optional[AssetPointer]:
        ...

    @abstractmethod
    def get_artifacts_for_asset(self, asset: AssetPointer) -> Set[AssetPointer]:
        ...

    @abstractmethod
    def get_location(self, pointer: AssetPointer) -> str:
        """Return the location of ``pointer`` or raise ``NotFound``."""

    @abstractmethod
    def get_descriptive_metadata(self, pointer: AssetPointer) -> Optional[DescriptiveMetadata]:
        ...

    @abstractmethod
    def get_asset_ids_by_type(self, asset_type: Optional[str] = None) -> Set[AssetPointer]:
        ...

    @abstractmethod
    def get_asset_ids_by_role(self, role: Optional[str] = None) -> Set[AssetPointer]:
        ...

    @abstractmethod
    def get_asset_ids_by_annotation(self, annotation: Optional[str] = None) -> Set[AssetPointer]:
        ...

    @abstractmethod
    def get_annotations_of_type(self, predicate: str) -> Set[str]:
        ...

    @abstractmethod
    def get_latest_asset_for_id(self, asset_id: UUID | str) -> Optional[AssetPointer]:
        ...

    @abstractmethod
    def get_asset_versions(self, asset_id: UUID | str) -> List[AssetPointer]:
        """Return the registered versions of a series, latest registration first."""

    # ------------------------------------------------------------------
    # Relationship graph

    @abstractmethod
    def _outgoing(self, pointer: AssetPointer) -> Set[Tuple[str, AssetPointer]]:
        ...

    @abstractmethod
    def _incoming(self, pointer: AssetPointer) -> Set[Tuple[str, AssetPointer]]:
        ...

    def get_related_assets(
        self,
        pointer: AssetPointer,
        predicate: Optional[str] = None,
        depth: Optional[int] = None,
    ) -> Set[AssetPointer]:
        """Transitive closure of ``pointer`` over outgoing edges.

        The closure includes ``pointer`` itself. ``predicate`` restricts the
        traversal to one relationship kind. ``depth`` bounds the number of
        hops; ``None`` or a negative value means unbounded.
        """

        limit = None if depth is None or depth < 0 else depth
        visited: Set[AssetPointer] = {pointer}
        frontier = deque([(pointer, 0)])
        while frontier:
            node, hops = frontier.popleft()
            if limit is not None and hops >= limit:
                continue
            for rel, target in self._outgoing(node):
                if predicate and rel != predicate:
                    continue
                if target in visited:
                    continue
                visited.add(target)
                frontier.append((target, hops + 1))
        return visited

    def get_neighbour_links(self, pointer: AssetPointer) -> Set[Link]:
        """Every relationship touching ``pointer``, in both directions."""

        links = {Link(rel=rel, href=target) for rel, target in self._outgoing(pointer)}
        links.update(
            Link(rel=rel, href=source, inverse=True) for rel, source in self._incoming(pointer)
        )
        return links

    # ------------------------------------------------------------------
    # Administration

    @abstractmethod
    def reset(self) -> None:
        """Clear every index structure."""

    def close(self) -> None:  # pragma: no cover - default no-op
        """Release resources and persist file-backed state."""


__all__ = ["Index", "annotation_keys"]
