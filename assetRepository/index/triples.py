from __future__ import annotations

"""Triple-store index backend built on an rdflib graph.

Every index structure is a set of ``(subject, predicate, object)`` triples:

* ``<asset> rdf:type kmd:Asset`` for registered assets,
* ``kmd:formalType`` / ``kmd:role`` / ``kmd:annotatedWith`` literals,
* ``<series> kmd:hasVersion <asset>`` and ``<series> kmd:latestVersion``,
* ``api4kp:hasAssetSurrogate``, ``api4kp:isCarriedBy`` and ``api4kp:accessURL``,
* relationship edges as ``<asset> rel:<Kind> <target>``.

The graph is guarded by one re-entrant lock. When ``storage_path`` is set the
graph is parsed from and serialized to Turtle.
"""

from itertools import count
import logging
from pathlib import Path
import threading
from typing import Iterable, List, Optional, Sequence, Set, Tuple
from urllib.parse import quote, unquote
from uuid import UUID

from rdflib import RDF, Graph, Literal, URIRef
from rdflib.namespace import DCTERMS, RDFS

from ..errors import NotFound
from ..model import Annotation, AssetPointer, DescriptiveMetadata
from ..vocab import ANN, API4KP, KMD, REL, REL_NS
from .base import Index, annotation_keys
from .iri import pointer_from_iri, pointer_iri, predicate_iri, series_iri

logger = logging.getLogger(__name__)

_CLOSURE_QUERY = """
SELECT DISTINCT ?related WHERE {
    ?root ?edge* ?related .
}
"""


def graph_with_prefixes() -> Graph:
    g = Graph()
    g.bind("kmd", KMD)
    g.bind("rel", REL)
    g.bind("ann", ANN)
    g.bind("api4kp", API4KP)
    g.bind("dct", DCTERMS)
    return g


def relationship_iri(kind: str) -> URIRef:
    return URIRef(f"{REL_NS}{quote(str(kind), safe='-._~')}")


class TripleStoreIndex(Index):
    """Index whose state is literally a set of RDF triples."""

    def __init__(self, storage_path: Path | None = None) -> None:
        self.storage_path = Path(storage_path) if storage_path else None
        self._lock = threading.RLock()
        self.graph = graph_with_prefixes()
        if self.storage_path is not None and self.storage_path.exists():
            self.graph.parse(str(self.storage_path), format="turtle")
            logger.info("Loaded %d triples from %s", len(self.graph), self.storage_path)
        self._sequence = count(self._max_sequence() + 1)

    def _max_sequence(self) -> int:
        values = [
            int(value.toPython())
            for value in self.graph.objects(None, KMD.registrationOrder)
        ]
        return max(values, default=0)

    # ------------------------------------------------------------------
    # Registration

    def _register_classification(
        self, asset: AssetPointer, types: Sequence[str], roles: Sequence[str]
    ) -> None:
        subject = pointer_iri(asset)
        with self._lock:
            self.graph.add((subject, RDF.type, KMD.Asset))
            for asset_type in types:
                self.graph.add((subject, KMD.formalType, Literal(asset_type)))
            for role in roles:
                self.graph.add((subject, KMD.role, Literal(role)))

    def _register_latest(self, asset: AssetPointer) -> None:
        subject = pointer_iri(asset)
        series = series_iri(asset.id)
        with self._lock:
            if (series, KMD.hasVersion, subject) in self.graph:
                return
            self.graph.add((series, KMD.hasVersion, subject))
            self.graph.set((subject, KMD.registrationOrder, Literal(next(self._sequence))))
            self.graph.set((series, KMD.latestVersion, subject))

    def register_artifact_to_asset(self, asset: AssetPointer, artifact: AssetPointer) -> None:
        with self._lock:
            self.graph.add((pointer_iri(asset), API4KP.isCarriedBy, pointer_iri(artifact)))

    def register_surrogate_to_asset(self, asset: AssetPointer, surrogate: AssetPointer) -> None:
        with self._lock:
            self.graph.set((pointer_iri(asset), API4KP.hasAssetSurrogate, pointer_iri(surrogate)))

    def register_location(self, pointer: AssetPointer, href: str) -> None:
        with self._lock:
            self.graph.set((pointer_iri(pointer), API4KP.accessURL, Literal(href)))

    def register_annotations(self, pointer: AssetPointer, annotations: Iterable[Annotation]) -> None:
        subject = pointer_iri(pointer)
        with self._lock:
            for annotation in annotations:
                for key in annotation_keys(annotation):
                    self.graph.add((subject, KMD.annotatedWith, Literal(key)))
                if annotation.predicate:
                    self.graph.add(
                        (
                            predicate_iri(annotation.predicate),
                            KMD.hasConcept,
                            Literal(annotation.concept),
                        )
                    )

    def register_descriptive_metadata(
        self,
        pointer: AssetPointer,
        name: Optional[str],
        description: Optional[str],
        types: Sequence[str] = (),
    ) -> None:
        subject = pointer_iri(pointer)
        primary = next(iter(types), None)
        with self._lock:
            self.graph.add((subject, RDF.type, KMD.DescribedResource))
            for predicate, value in (
                (RDFS.label, name),
                (DCTERMS.description, description),
                (KMD.primaryType, primary),
            ):
                self.graph.remove((subject, predicate, None))
                if value is not None:
                    self.graph.add((subject, predicate, Literal(value)))

    def register_link(self, subject: AssetPointer, predicate: str, target: AssetPointer) -> None:
        with self._lock:
            self.graph.add((pointer_iri(subject), relationship_iri(predicate), pointer_iri(target)))

    # ------------------------------------------------------------------
    # Lookups

    def get_surrogate_for_asset(self, asset: AssetPointer) -> Optional[AssetPointer]:
        with self._lock:
            value = self.graph.value(pointer_iri(asset), API4KP.hasAssetSurrogate)
        return pointer_from_iri(value) if value is not None else None

    def get_artifacts_for_asset(self, asset: AssetPointer) -> Set[AssetPointer]:
        with self._lock:
            objects = list(self.graph.objects(pointer_iri(asset), API4KP.isCarriedBy))
        return {pointer_from_iri(o) for o in objects}

    def get_location(self, pointer: AssetPointer) -> str:
        with self._lock:
            value = self.graph.value(pointer_iri(pointer), API4KP.accessURL)
        if value is None:
            raise NotFound(f"Location of {pointer} not found")
        return str(value)

    def get_descriptive_metadata(self, pointer: AssetPointer) -> Optional[DescriptiveMetadata]:
        subject = pointer_iri(pointer)
        with self._lock:
            if (subject, RDF.type, KMD.DescribedResource) not in self.graph:
                return None
            values = [
                self.graph.value(subject, predicate)
                for predicate in (RDFS.label, DCTERMS.description, KMD.primaryType)
            ]
        name, description, primary = (str(v) if v is not None else None for v in values)
        return DescriptiveMetadata(name, description, primary)

    def _subjects(self, predicate: URIRef, key: Optional[str]) -> Set[AssetPointer]:
        with self._lock:
            if not key or not str(key).strip():
                subjects = list(self.graph.subjects(RDF.type, KMD.Asset))
            else:
                subjects = list(self.graph.subjects(predicate, Literal(key)))
        return {pointer_from_iri(s) for s in subjects}

    def get_asset_ids_by_type(self, asset_type: Optional[str] = None) -> Set[AssetPointer]:
        return self._subjects(KMD.formalType, asset_type)

    def get_asset_ids_by_role(self, role: Optional[str] = None) -> Set[AssetPointer]:
        return self._subjects(KMD.role, role)

    def get_asset_ids_by_annotation(self, annotation: Optional[str] = None) -> Set[AssetPointer]:
        return self._subjects(KMD.annotatedWith, annotation)

    def get_annotations_of_type(self, predicate: str) -> Set[str]:
        with self._lock:
            return {str(o) for o in self.graph.objects(predicate_iri(predicate), KMD.hasConcept)}

    def get_latest_asset_for_id(self, asset_id: UUID | str) -> Optional[AssetPointer]:
        with self._lock:
            value = self.graph.value(series_iri(asset_id), KMD.latestVersion)
        return pointer_from_iri(value) if value is not None else None

    def get_asset_versions(self, asset_id: UUID | str) -> List[AssetPointer]:
        with self._lock:
            ordered = [
                (int(self.graph.value(version, KMD.registrationOrder).toPython()), version)
                for version in self.graph.objects(series_iri(asset_id), KMD.hasVersion)
            ]
        ordered.sort(key=lambda item: item[0], reverse=True)
        return [pointer_from_iri(version) for _, version in ordered]

    # ------------------------------------------------------------------
    # Relationship graph

    def _outgoing(self, pointer: AssetPointer) -> Set[Tuple[str, AssetPointer]]:
        with self._lock:
            pairs = list(self.graph.predicate_objects(pointer_iri(pointer)))
        return {
            (unquote(str(p)[len(REL_NS):]), pointer_from_iri(o))
            for p, o in pairs
            if str(p).startswith(REL_NS)
        }

    def _incoming(self, pointer: AssetPointer) -> Set[Tuple[str, AssetPointer]]:
        with self._lock:
            pairs = list(self.graph.subject_predicates(pointer_iri(pointer)))
        return {
            (unquote(str(p)[len(REL_NS):]), pointer_from_iri(s))
            for s, p in pairs
            if str(p).startswith(REL_NS)
        }

    def get_related_assets(
        self,
        pointer: AssetPointer,
        predicate: Optional[str] = None,
        depth: Optional[int] = None,
    ) -> Set[AssetPointer]:
        # A single-predicate unbounded closure maps onto a SPARQL
        # zero-or-more property path; everything else walks the graph.
        if predicate is None or (depth is not None and depth >= 0):
            return super().get_related_assets(pointer, predicate, depth)
        with self._lock:
            rows = list(
                self.graph.query(
                    _CLOSURE_QUERY.replace("?edge", f"<{relationship_iri(predicate)}>"),
                    initBindings={"root": pointer_iri(pointer)},
                )
            )
        related = {pointer_from_iri(row[0]) for row in rows}
        related.add(pointer)
        return related

    # ------------------------------------------------------------------
    # Administration and persistence

    def reset(self) -> None:
        with self._lock:
            self.graph.remove((None, None, None))
        logger.info("Index reset: graph cleared")

    def flush(self) -> None:
        if self.storage_path is None:
            return
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self.graph.serialize(destination=str(self.storage_path), format="turtle")

    def close(self) -> None:
        self.flush()


__all__ = ["TripleStoreIndex", "graph_with_prefixes", "relationship_iri"]
