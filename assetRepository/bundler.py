from __future__ import annotations

"""Dependency bundling: an asset's carrier plus those of its closure."""

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional
from urllib.parse import unquote, urlparse
from uuid import UUID

import requests

from .errors import AssetRepositoryError, NotFound
from .model import AssetPointer, KnowledgeAsset, KnowledgeCarrier
from .utils.log_json import JsonLogger

if TYPE_CHECKING:  # pragma: no cover
    from .repository import KnowledgeAssetRepository

_logger = JsonLogger("bundler")

# Failures of one dependency that leave the rest of the bundle intact.
DEPENDENCY_ERRORS = (AssetRepositoryError, requests.RequestException, OSError, ValueError)


def read_locator(locator: str, *, timeout: float = 10.0) -> bytes:
    """Read the bytes behind a ``file:`` URL, a plain path or an ``http(s)`` URL."""

    parsed = urlparse(locator)
    if parsed.scheme in {"http", "https"}:
        resp = requests.get(locator, timeout=timeout)
        resp.raise_for_status()
        return resp.content
    if parsed.scheme == "file":
        return Path(unquote(parsed.path)).read_bytes()
    return Path(locator).read_bytes()


def _skip(log: JsonLogger, pointer: AssetPointer, reason: str, **fields: object) -> None:
    log.warning("bundle.dependency.skipped", dependency=str(pointer), reason=reason, **fields)


class Bundler:
    """Collects the canonical carriers of an asset and everything it depends on."""

    def __init__(self, repository: "KnowledgeAssetRepository") -> None:
        self.repository = repository

    def bundle(
        self,
        asset_id: UUID | str,
        version: str,
        relationship: Optional[str] = None,
        depth: Optional[int] = None,
    ) -> List[KnowledgeCarrier]:
        """Return one carrier per resolvable pointer of the closure.

        The root must exist. Dependencies that are incomplete, unregistered,
        without readable content or failing in the artifact store are skipped
        and logged, so the result may be partial.
        """

        root = AssetPointer(asset_id, version)
        self.repository.get_raw_surrogate(root)
        closure = self.repository.index.get_related_assets(root, relationship, depth)

        log = _logger.bind(asset=str(root))
        carriers: List[KnowledgeCarrier] = []
        for pointer in sorted(closure, key=str):
            if not pointer.is_complete:
                _skip(log, pointer, "incomplete_pointer")
                continue
            try:
                carriers.extend(self._carriers_of(pointer, log))
            except DEPENDENCY_ERRORS as exc:
                _skip(log, pointer, "store_error", error=str(exc))
        log.info(
            "bundle.built",
            relationship=relationship,
            depth=depth,
            closure=len(closure),
            carriers=len(carriers),
        )
        return carriers

    def _carriers_of(self, pointer: AssetPointer, log: JsonLogger) -> List[KnowledgeCarrier]:
        try:
            return [self.repository.get_canonical_carrier(pointer.id, pointer.version)]
        except NotFound:
            pass
        try:
            surrogate = self.repository.get_raw_surrogate(pointer)
        except NotFound:
            _skip(log, pointer, "not_registered")
            return []
        anonymous = self._anonymous_carriers(surrogate)
        if not anonymous:
            _skip(log, pointer, "no_carrier")
        return anonymous

    def _anonymous_carriers(self, surrogate: KnowledgeAsset) -> List[KnowledgeCarrier]:
        carriers: List[KnowledgeCarrier] = []
        timeout = self.repository.settings.http_timeout
        for artifact in surrogate.carriers:
            if artifact.artifact_id is not None or not artifact.locator:
                continue
            try:
                content = read_locator(artifact.locator, timeout=timeout)
            except (OSError, requests.RequestException) as exc:
                _logger.warning(
                    "bundle.locator.unreadable",
                    asset=str(surrogate.asset_id),
                    locator=artifact.locator,
                    error=str(exc),
                )
                continue
            carriers.append(
                KnowledgeCarrier(
                    asset_id=surrogate.asset_id,
                    content=content,
                    representation=artifact.representation,
                )
            )
        return carriers

__all__ = ["Bundler", "read_locator"]
