from __future__ import annotations

"""Repository settings loaded from YAML and ``ASSETREPO_*`` environment variables."""

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Optional

import yaml

if TYPE_CHECKING:  # pragma: no cover
    from .repository import KnowledgeAssetRepository

INDEX_BACKENDS = ("kv", "triples")
ARTIFACT_STORES = ("memory", "fs", "http")

_ENV_PREFIX = "ASSETREPO_"


@dataclass(slots=True)
class RepositorySettings:
    """Runtime configuration of one repository instance."""

    base_url: str = "http://localhost:8080"
    index_backend: str = "kv"
    data_dir: Optional[Path] = None
    artifact_store: str = "memory"
    artifact_url: Optional[str] = None
    artifact_repository_id: str = "default"
    allow_clear_all: bool = False
    http_timeout: float = 10.0

    def __post_init__(self) -> None:
        self.index_backend = self.index_backend.strip().lower()
        self.artifact_store = self.artifact_store.strip().lower()
        if self.index_backend not in INDEX_BACKENDS:
            raise ValueError(f"index_backend must be one of {INDEX_BACKENDS}: {self.index_backend!r}")
        if self.artifact_store not in ARTIFACT_STORES:
            raise ValueError(f"artifact_store must be one of {ARTIFACT_STORES}: {self.artifact_store!r}")
        if self.artifact_store == "fs" and self.data_dir is None:
            raise ValueError("artifact_store 'fs' requires data_dir")
        if self.artifact_store == "http" and not self.artifact_url:
            raise ValueError("artifact_store 'http' requires artifact_url")
        if self.data_dir is not None:
            self.data_dir = Path(self.data_dir)

    @classmethod
    def from_env(cls, base: "RepositorySettings | None" = None) -> "RepositorySettings":
        """Overlay ``ASSETREPO_*`` variables on ``base`` (defaults when omitted)."""

        current = base or cls()
        overrides = _coerce_fields(
            {
                f.name: os.environ[_ENV_PREFIX + f.name.upper()]
                for f in fields(cls)
                if _ENV_PREFIX + f.name.upper() in os.environ
            },
            current,
        )
        return replace(current, **overrides)


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _coerce_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _coerce_fields(raw: Mapping[str, Any], defaults: RepositorySettings) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "allow_clear_all":
            values[key] = _coerce_bool(value, defaults.allow_clear_all)
        elif key == "http_timeout":
            values[key] = _coerce_float(value, defaults.http_timeout)
        elif key == "data_dir":
            values[key] = Path(value) if value else None
        elif key in {"base_url", "index_backend", "artifact_store", "artifact_url", "artifact_repository_id"}:
            values[key] = str(value) if value is not None else None
    return values


def load_settings(path: Path | None = None) -> RepositorySettings:
    """Load settings from an optional YAML file, then apply the environment."""

    settings = RepositorySettings()
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"{path} must contain a mapping")
        section = raw.get("repository", raw)
        settings = replace(settings, **_coerce_fields(section, settings))
    return RepositorySettings.from_env(settings)


def build_repository(settings: RepositorySettings | None = None) -> "KnowledgeAssetRepository":
    """Wire the index, artifact store and locator builder described by ``settings``."""

    from .hrefs import HrefBuilder
    from .index import KeyValueIndex, TripleStoreIndex
    from .repository import KnowledgeAssetRepository
    from .stores import FileSystemArtifactStore, HttpArtifactStore, InMemoryArtifactStore

    settings = settings or load_settings()
    data_dir = settings.data_dir
    if data_dir is not None:
        data_dir.mkdir(parents=True, exist_ok=True)

    if settings.index_backend == "triples":
        index = TripleStoreIndex(data_dir / "index.ttl" if data_dir else None)
    else:
        index = KeyValueIndex(data_dir / "index.json" if data_dir else None)

    if settings.artifact_store == "fs":
        assert data_dir is not None
        store = FileSystemArtifactStore(data_dir / "artifacts")
    elif settings.artifact_store == "http":
        assert settings.artifact_url is not None
        store = HttpArtifactStore(
            settings.artifact_url,
            settings.artifact_repository_id,
            timeout=settings.http_timeout,
        )
    else:
        store = InMemoryArtifactStore()

    return KnowledgeAssetRepository(
        index,
        store,
        settings=settings,
        hrefs=HrefBuilder(settings.base_url),
    )


__all__ = ["RepositorySettings", "load_settings", "build_repository", "INDEX_BACKENDS", "ARTIFACT_STORES"]
