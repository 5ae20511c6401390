from __future__ import annotations

"""IRI builders for pointers stored in the triple-store index.

Builders are deterministic; :func:`pointer_from_iri` inverts
:func:`pointer_iri` for every pointer with an id.
"""

from urllib.parse import quote, unquote

from rdflib import URIRef

from ..model import AssetPointer
from ..vocab import ANNOTATION_NS, ASSET_NS

_VERSIONS = "/versions/"


def _quote_segment(value: str) -> str:
    # Encode everything outside RFC3986 unreserved characters so versions
    # such as "1.0/rc" stay one path segment.
    return quote(value, safe="-._~")


def series_iri(asset_id: object) -> URIRef:
    raw = str(asset_id).strip()
    if not raw:
        raise ValueError("asset_id must be non-empty")
    return URIRef(f"{ASSET_NS}{_quote_segment(raw)}")


def pointer_iri(pointer: AssetPointer) -> URIRef:
    if pointer.id is None:
        raise ValueError("pointer id must be set to build an IRI")
    base = series_iri(pointer.id)
    if pointer.version is None:
        return base
    return URIRef(f"{base}{_VERSIONS}{_quote_segment(pointer.version)}")


def pointer_from_iri(iri: object) -> AssetPointer:
    raw = str(iri)
    if not raw.startswith(ASSET_NS):
        raise ValueError(f"not an asset IRI: {raw}")
    tail = raw[len(ASSET_NS):]
    if _VERSIONS in tail:
        asset_id, version = tail.split(_VERSIONS, 1)
        return AssetPointer(unquote(asset_id), unquote(version))
    return AssetPointer(unquote(tail), None)


def predicate_iri(predicate: str) -> URIRef:
    raw = str(predicate).strip()
    if not raw:
        raise ValueError("predicate must be non-empty")
    return URIRef(f"{ANNOTATION_NS}{_quote_segment(raw)}")


__all__ = ["series_iri", "pointer_iri", "pointer_from_iri", "predicate_iri"]
