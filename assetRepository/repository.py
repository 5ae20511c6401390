from __future__ import annotations

"""Service facade over the index, the artifact store and the negotiator.

Surrogates are persisted as JSON in the artifact store under a pointer
derived from the asset pointer; the index records classification,
relationships and where each carrier lives.
"""

import threading
from typing import Dict, List, Optional, Tuple
from uuid import NAMESPACE_URL, UUID, uuid5

import requests

from .bundler import Bundler, read_locator
from .config import RepositorySettings
from .errors import Forbidden, NotAcceptable, NotFound
from .hrefs import HrefBuilder, HrefType
from .index.base import Index
from .model import (
    AssetPointer,
    AssetSummary,
    KnowledgeArtifact,
    KnowledgeAsset,
    KnowledgeCarrier,
    Representation,
    default_surrogate_id,
)
from .negotiation.enricher import enrich_surrogate
from .negotiation.negotiator import any_carrier, decode_preferences, negotiate, negotiate_surrogate
from .stores import ArtifactStore
from .transcoder import Transcoder
from .utils.log_json import JsonLogger
from .vocab import EMBEDDED_VERSION, JSON, SURROGATE

SURROGATE_REPRESENTATION = Representation(SURROGATE, JSON, "UTF-8")

_logger = JsonLogger("repository")


def embedded_artifact_pointer(locator: str) -> AssetPointer:
    """Pointer under which a locator-only carrier is recorded in the index."""

    return AssetPointer(uuid5(NAMESPACE_URL, locator), EMBEDDED_VERSION)


class KnowledgeAssetRepository:
    """Catalog and retrieval operations over knowledge assets."""

    def __init__(
        self,
        index: Index,
        store: ArtifactStore,
        *,
        settings: RepositorySettings | None = None,
        hrefs: HrefBuilder | None = None,
        transcoder: Transcoder | None = None,
    ) -> None:
        self.index = index
        self.store = store
        self.settings = settings or RepositorySettings()
        self.hrefs = hrefs
        self.transcoder = transcoder
        self.bundler = Bundler(self)
        # Serialises read-modify-write of one surrogate blob.
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Catalog

    def list_assets(
        self,
        asset_type: Optional[str] = None,
        annotation: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[AssetSummary]:
        """List one entry per asset series, the most recent matching version.

        ``asset_type`` matches formal types and roles alike.
        """

        if offset < 0 or (limit is not None and limit < 0):
            raise ValueError("offset and limit must be non-negative")
        if asset_type:
            pointers = self.index.get_asset_ids_by_type(asset_type) | self.index.get_asset_ids_by_role(
                asset_type
            )
        else:
            pointers = self.index.get_asset_ids_by_type(None)
        if annotation:
            pointers &= self.index.get_asset_ids_by_annotation(annotation)

        by_series: Dict[str, List[AssetPointer]] = {}
        for pointer in pointers:
            by_series.setdefault(pointer.tag, []).append(pointer)

        summaries: List[AssetSummary] = []
        for series, candidates in by_series.items():
            ordered = [p for p in self.index.get_asset_versions(series) if p in candidates]
            chosen = ordered[0] if ordered else sorted(candidates, key=str)[-1]
            meta = self.index.get_descriptive_metadata(chosen)
            summaries.append(
                AssetSummary(
                    pointer=chosen,
                    name=meta.name if meta else None,
                    description=meta.description if meta else None,
                    type=meta.type if meta else None,
                    href=self.hrefs.asset_version_href(chosen) if self.hrefs else None,
                )
            )
        summaries.sort(key=lambda s: ((s.name or "").lower(), s.pointer.tag))
        end = None if limit is None else offset + limit
        return summaries[offset:end]

    def get_asset_versions(self, asset_id: UUID | str) -> List[AssetPointer]:
        return self.index.get_asset_versions(asset_id)

    # ------------------------------------------------------------------
    # Surrogates

    def get_raw_surrogate(self, pointer: AssetPointer) -> KnowledgeAsset:
        """The surrogate exactly as registered, without enrichment."""

        surrogate_id = self.index.get_surrogate_for_asset(pointer)
        if surrogate_id is None:
            raise NotFound(f"Asset {pointer} not found")
        payload = self.store.get_canonical_content(surrogate_id.tag, surrogate_id.version)
        return KnowledgeAsset.from_json(payload)

    def get_asset(self, asset_id: UUID | str, *, with_inverses: bool = False) -> KnowledgeAsset:
        latest = self.index.get_latest_asset_for_id(asset_id)
        if latest is None:
            raise NotFound(f"Asset {asset_id} not found")
        return self.get_asset_version(latest.id, latest.version, with_inverses=with_inverses)

    def get_asset_version(
        self,
        asset_id: UUID | str,
        version: str,
        *,
        with_inverses: bool = False,
    ) -> KnowledgeAsset:
        raw = self.get_raw_surrogate(AssetPointer(asset_id, version))
        return enrich_surrogate(
            raw,
            hrefs=self.hrefs,
            transcoder=self.transcoder,
            index=self.index,
            with_inverses=with_inverses,
        )

    def negotiate_surrogate_form(
        self,
        asset_id: UUID | str,
        version: str,
        accept: Optional[str],
    ) -> Tuple[Optional[KnowledgeAsset], Optional[str]]:
        """Return ``(surrogate, None)`` or ``(None, redirect_locator)``."""

        asset = self.get_asset_version(asset_id, version)
        chosen = negotiate_surrogate(asset, accept, SURROGATE_REPRESENTATION)
        if chosen is None:
            return asset, None
        return None, chosen.locator

    def get_surrogate_form(
        self,
        asset_id: UUID | str,
        version: str,
        surrogate_id: UUID | str,
        surrogate_version: str,
    ) -> KnowledgeCarrier:
        """Content of one surrogate form of an asset version.

        The canonical form is the registered surrogate itself; alternate
        forms come from their inlined text, the artifact store or their
        registered location, in that order.
        """

        pointer = AssetPointer(asset_id, version)
        form = AssetPointer(surrogate_id, surrogate_version)
        canonical = self.index.get_surrogate_for_asset(pointer)
        if canonical is None:
            raise NotFound(f"Asset {pointer} not found")
        if form == canonical:
            content = self.store.get_canonical_content(form.tag, form.version)
            return KnowledgeCarrier(
                asset_id=pointer,
                content=content,
                artifact_id=form,
                representation=SURROGATE_REPRESENTATION,
            )
        surrogate = self.get_raw_surrogate(pointer)
        descriptor = next((s for s in surrogate.surrogates if s.artifact_id == form), None)
        if descriptor is None:
            raise NotFound(f"Surrogate form {form} of {pointer} not found")
        if descriptor.inlined is not None:
            content = descriptor.inlined.encode("utf-8")
        else:
            content = self.read_artifact(form)
        return KnowledgeCarrier(
            asset_id=pointer,
            content=content,
            artifact_id=form,
            representation=descriptor.representation,
        )

    def add_surrogate_form(
        self,
        asset_id: UUID | str,
        version: str,
        surrogate_id: UUID | str,
        surrogate_version: str,
        content: bytes,
        representation: Representation | None = None,
    ) -> AssetPointer:
        """Store ``content`` as an alternate surrogate form of an asset version."""

        pointer = AssetPointer(asset_id, version)
        form = AssetPointer(surrogate_id, surrogate_version)
        if not form.is_complete:
            raise ValueError("surrogate id and version are required")
        with self._write_lock:
            surrogate = self.get_raw_surrogate(pointer)
            canonical = self.index.get_surrogate_for_asset(pointer)
            assert canonical is not None
            if form == canonical:
                raise ValueError("the canonical surrogate is replaced by registering the asset version")
            self.store.put_content(form.tag, form.version, content)
            existing = next((s for s in surrogate.surrogates if s.artifact_id == form), None)
            if existing is None:
                surrogate.surrogates.append(
                    KnowledgeArtifact(artifact_id=form, representation=representation or Representation())
                )
            elif representation is not None:
                existing.representation = representation
            self.store.put_content(canonical.tag, canonical.version, surrogate.to_json())
        _logger.info("surrogate_form.added", asset=str(pointer), form=str(form), size=len(content))
        return form

    def set_asset_version(
        self,
        asset_id: UUID | str,
        version: str,
        surrogate: KnowledgeAsset,
    ) -> AssetPointer:
        """Register or replace the surrogate of ``asset_id:version``."""

        pointer = AssetPointer(asset_id, version)
        if not pointer.is_complete:
            raise ValueError("asset id and version are required")
        if surrogate.asset_id != pointer:
            raise ValueError(
                f"surrogate describes {surrogate.asset_id}, not {pointer}"
            )
        surrogate_id = default_surrogate_id(pointer, SURROGATE)
        with self._write_lock:
            self.store.put_content(surrogate_id.tag, surrogate_id.version, surrogate.to_json())
        self.index.register_asset(
            pointer,
            surrogate_id,
            types=surrogate.formal_types,
            roles=surrogate.roles,
            annotations=surrogate.annotations,
            name=surrogate.name,
            description=surrogate.description,
        )
        if self.hrefs is not None:
            self.index.register_location(
                surrogate_id,
                self.hrefs.content_href(
                    pointer, surrogate_id, SURROGATE_REPRESENTATION, HrefType.ASSET_SURROGATE_VERSION_CONTENT
                ),
            )
        for carrier in surrogate.carriers:
            self._register_carrier(pointer, carrier)
        for form in surrogate.surrogates:
            if form.artifact_id is not None and form.locator:
                self.index.register_location(form.artifact_id, form.locator)
        for link in surrogate.links:
            if not link.inverse:
                self.index.register_link(pointer, link.rel, link.href)
        _logger.info(
            "asset.registered",
            asset=str(pointer),
            types=surrogate.formal_types,
            carriers=len(surrogate.carriers),
            links=len(surrogate.links),
        )
        return pointer

    def _register_carrier(self, pointer: AssetPointer, carrier: KnowledgeArtifact) -> None:
        if carrier.artifact_id is not None:
            self.index.register_artifact_to_asset(pointer, carrier.artifact_id)
            if carrier.locator:
                self.index.register_location(carrier.artifact_id, carrier.locator)
        elif carrier.locator:
            embedded = embedded_artifact_pointer(carrier.locator)
            self.index.register_artifact_to_asset(pointer, embedded)
            self.index.register_location(embedded, carrier.locator)

    # ------------------------------------------------------------------
    # Carriers

    def add_carrier(
        self,
        asset_id: UUID | str,
        version: str,
        artifact_id: UUID | str,
        artifact_version: str,
        content: bytes,
        representation: Representation | None = None,
    ) -> AssetPointer:
        """Store ``content`` as a carrier of an existing asset version."""

        pointer = AssetPointer(asset_id, version)
        artifact = AssetPointer(artifact_id, artifact_version)
        if not artifact.is_complete:
            raise ValueError("artifact id and version are required")
        with self._write_lock:
            surrogate = self.get_raw_surrogate(pointer)
            self.store.put_content(artifact.tag, artifact.version, content)
            existing = next((c for c in surrogate.carriers if c.artifact_id == artifact), None)
            if existing is None:
                surrogate.carriers.append(
                    KnowledgeArtifact(
                        artifact_id=artifact,
                        representation=representation or Representation(),
                    )
                )
            elif representation is not None:
                existing.representation = representation
            surrogate_id = self.index.get_surrogate_for_asset(pointer)
            assert surrogate_id is not None
            self.store.put_content(surrogate_id.tag, surrogate_id.version, surrogate.to_json())
        self.index.register_artifact_to_asset(pointer, artifact)
        if self.hrefs is not None:
            self.index.register_location(
                artifact,
                self.hrefs.content_href(
                    pointer, artifact, representation or Representation(),
                    HrefType.ASSET_CARRIER_VERSION_CONTENT,
                ),
            )
        _logger.info("carrier.added", asset=str(pointer), artifact=str(artifact), size=len(content))
        return artifact

    def read_artifact(self, artifact: AssetPointer) -> bytes:
        """Bytes of ``artifact`` from the store, else from its registered location.

        Locations under this repository's own ``/cat`` tree are not followed.
        """

        try:
            return self.store.get_canonical_content(artifact.tag, artifact.version)
        except NotFound:
            locator = self.index.get_location(artifact)
            if self.hrefs is not None and locator.startswith(f"{self.hrefs.base_url}/cat/"):
                raise
        try:
            return read_locator(locator, timeout=self.settings.http_timeout)
        except (OSError, requests.RequestException) as exc:
            _logger.warning("artifact.locator.unreadable", artifact=str(artifact), locator=locator, error=str(exc))
            raise NotFound(f"Artifact {artifact} is not readable at {locator}") from exc

    def get_carriers(self, asset_id: UUID | str, version: str) -> List[KnowledgeArtifact]:
        return self.get_asset_version(asset_id, version).carriers

    def get_carrier_version(
        self,
        asset_id: UUID | str,
        version: str,
        artifact_id: UUID | str,
        artifact_version: str,
    ) -> KnowledgeCarrier:
        pointer = AssetPointer(asset_id, version)
        artifact = AssetPointer(artifact_id, artifact_version)
        if artifact not in self.index.get_artifacts_for_asset(pointer):
            raise NotFound(f"Carrier {artifact} of {pointer} not found")
        surrogate = self.get_raw_surrogate(pointer)
        descriptor = next((c for c in surrogate.carriers if c.artifact_id == artifact), None)
        content = self.read_artifact(artifact)
        return KnowledgeCarrier(
            asset_id=pointer,
            content=content,
            artifact_id=artifact,
            representation=descriptor.representation if descriptor else Representation(),
        )

    def get_canonical_carrier(
        self,
        asset_id: UUID | str,
        version: str,
        accept: Optional[str] = None,
    ) -> KnowledgeCarrier:
        """Content of the carrier that best satisfies ``accept``.

        Without preferences any stored carrier qualifies. Raises
        ``NotAcceptable`` when preferences are given and none matches, and
        ``NotFound`` when the asset has no stored carrier.
        """

        pointer = AssetPointer(asset_id, version)
        surrogate = self.get_raw_surrogate(pointer)
        candidates = [c for c in surrogate.carriers if c.artifact_id is not None]
        if (accept or "").strip():
            chosen = negotiate(candidates, decode_preferences(accept))
            if chosen is None:
                raise NotAcceptable(f"No carrier of {pointer} matches {accept!r}", preferences=accept)
        else:
            chosen = any_carrier(candidates)
            if chosen is None:
                raise NotFound(f"Asset {pointer} has no stored carrier")
        assert chosen.artifact_id is not None
        content = self.read_artifact(chosen.artifact_id)
        return KnowledgeCarrier(
            asset_id=pointer,
            content=content,
            artifact_id=chosen.artifact_id,
            representation=chosen.representation,
        )

    def get_bundle(
        self,
        asset_id: UUID | str,
        version: str,
        relationship: Optional[str] = None,
        depth: Optional[int] = None,
    ) -> List[KnowledgeCarrier]:
        return self.bundler.bundle(asset_id, version, relationship, depth)

    # ------------------------------------------------------------------
    # Administration

    def clear_all(self) -> None:
        if not self.settings.allow_clear_all:
            raise Forbidden("clear-all is disabled; set allow_clear_all to enable it")
        with self._write_lock:
            self.index.reset()
            self.store.clear()
        _logger.warning("repository.cleared")

    def close(self) -> None:
        self.index.close()


__all__ = ["KnowledgeAssetRepository", "SURROGATE_REPRESENTATION", "embedded_artifact_pointer"]
