from __future__ import annotations

"""Domain records for knowledge assets, their carriers and surrogates.

Pointers and representations are immutable value objects so they can serve
as index keys and graph nodes. Surrogates and artifact descriptors are
mutable records that round-trip through plain JSON dictionaries, which is
how surrogates are persisted in the artifact store.
"""

from dataclasses import dataclass, field
import json
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import NAMESPACE_URL, UUID, uuid5


def _coerce_uuid(value: Any) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    return UUID(raw)


@dataclass(frozen=True, slots=True)
class AssetPointer:
    """Identity of one version of an asset, artifact or surrogate."""

    id: Optional[UUID]
    version: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _coerce_uuid(self.id))
        if self.version is not None:
            object.__setattr__(self, "version", str(self.version))

    @property
    def is_complete(self) -> bool:
        return self.id is not None and bool(self.version)

    @property
    def tag(self) -> str:
        return str(self.id) if self.id is not None else ""

    def with_version(self, version: str) -> "AssetPointer":
        return AssetPointer(self.id, version)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.tag or None, "version": self.version}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetPointer":
        return cls(data.get("id"), data.get("version"))

    def __str__(self) -> str:
        return f"{self.tag}:{self.version or ''}"


def default_artifact_id(asset: AssetPointer, language: Optional[str]) -> AssetPointer:
    """Deterministic pointer of an asset version's carrier in ``language``."""

    seed = f"artifact:{asset.tag}:{(language or '').upper()}"
    return AssetPointer(uuid5(NAMESPACE_URL, seed), asset.version)


def default_surrogate_id(asset: AssetPointer, language: Optional[str]) -> AssetPointer:
    seed = f"surrogate:{asset.tag}:{(language or '').upper()}"
    return AssetPointer(uuid5(NAMESPACE_URL, seed), asset.version)


@dataclass(frozen=True, slots=True)
class Representation:
    """A serialization descriptor; ``None`` fields act as wildcards."""

    language: Optional[str] = None
    format: Optional[str] = None
    charset: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def is_wildcard(self) -> bool:
        return not any((self.language, self.format, self.charset, self.encoding))

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("language", self.language),
                ("format", self.format),
                ("charset", self.charset),
                ("encoding", self.encoding),
            )
            if value is not None
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Representation":
        data = data or {}
        return cls(
            language=data.get("language"),
            format=data.get("format"),
            charset=data.get("charset"),
            encoding=data.get("encoding"),
        )


@dataclass(frozen=True, slots=True)
class Annotation:
    """A semantic annotation: a concept, optionally qualified by a relation."""

    concept: str
    predicate: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"concept": self.concept}
        if self.predicate is not None:
            data["predicate"] = self.predicate
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Annotation":
        return cls(concept=str(data["concept"]), predicate=data.get("predicate"))


@dataclass(frozen=True, slots=True)
class Link:
    """A typed edge as seen from the asset that owns it.

    ``inverse`` marks an incoming edge: the owning asset is the object and
    ``href`` is the subject of the relationship.
    """

    rel: str
    href: AssetPointer
    inverse: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"rel": self.rel, "href": self.href.to_dict()}
        if self.inverse:
            data["inverse"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Link":
        return cls(
            rel=str(data["rel"]),
            href=AssetPointer.from_dict(data["href"]),
            inverse=bool(data.get("inverse", False)),
        )


@dataclass(slots=True)
class KnowledgeArtifact:
    """Descriptor of a carrier or of an alternate surrogate encoding."""

    artifact_id: Optional[AssetPointer] = None
    representation: Representation = field(default_factory=Representation)
    locator: Optional[str] = None
    inlined: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    links: List[Link] = field(default_factory=list)
    ephemeral: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"representation": self.representation.to_dict()}
        if self.artifact_id is not None:
            data["artifact_id"] = self.artifact_id.to_dict()
        for key in ("locator", "inlined", "name", "description"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.links:
            data["links"] = [link.to_dict() for link in self.links]
        if self.ephemeral:
            data["ephemeral"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KnowledgeArtifact":
        artifact_id = data.get("artifact_id")
        return cls(
            artifact_id=AssetPointer.from_dict(artifact_id) if artifact_id else None,
            representation=Representation.from_dict(data.get("representation")),
            locator=data.get("locator"),
            inlined=data.get("inlined"),
            name=data.get("name"),
            description=data.get("description"),
            links=[Link.from_dict(item) for item in data.get("links", [])],
            ephemeral=bool(data.get("ephemeral", False)),
        )


@dataclass(slots=True)
class KnowledgeAsset:
    """Metadata surrogate for one asset version."""

    asset_id: AssetPointer
    name: Optional[str] = None
    description: Optional[str] = None
    formal_types: List[str] = field(default_factory=list)
    roles: List[str] = field(default_factory=list)
    annotations: List[Annotation] = field(default_factory=list)
    carriers: List[KnowledgeArtifact] = field(default_factory=list)
    surrogates: List[KnowledgeArtifact] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id.to_dict(),
            "name": self.name,
            "description": self.description,
            "formal_types": list(self.formal_types),
            "roles": list(self.roles),
            "annotations": [a.to_dict() for a in self.annotations],
            "carriers": [c.to_dict() for c in self.carriers],
            "surrogates": [s.to_dict() for s in self.surrogates],
            "links": [link.to_dict() for link in self.links],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KnowledgeAsset":
        return cls(
            asset_id=AssetPointer.from_dict(data["asset_id"]),
            name=data.get("name"),
            description=data.get("description"),
            formal_types=[str(t) for t in data.get("formal_types", [])],
            roles=[str(r) for r in data.get("roles", [])],
            annotations=[Annotation.from_dict(a) for a in data.get("annotations", [])],
            carriers=[KnowledgeArtifact.from_dict(c) for c in data.get("carriers", [])],
            surrogates=[KnowledgeArtifact.from_dict(s) for s in data.get("surrogates", [])],
            links=[Link.from_dict(item) for item in data.get("links", [])],
        )

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_json(cls, payload: bytes | str) -> "KnowledgeAsset":
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return cls.from_dict(json.loads(payload))


@dataclass(slots=True)
class KnowledgeCarrier:
    """Concrete content of one asset, as returned to callers."""

    asset_id: AssetPointer
    content: bytes
    artifact_id: Optional[AssetPointer] = None
    representation: Representation = field(default_factory=Representation)

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding)


@dataclass(frozen=True, slots=True)
class DescriptiveMetadata:
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "type": self.type}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DescriptiveMetadata":
        return cls(data.get("name"), data.get("description"), data.get("type"))


@dataclass(frozen=True, slots=True)
class AssetSummary:
    """Listing entry for one asset."""

    pointer: AssetPointer
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    href: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TranscodingOperator:
    """A translation capability offered by a transcoder."""

    operator_id: str
    from_: Tuple[Representation, ...] = ()
    into: Tuple[Representation, ...] = ()


__all__ = [
    "AssetPointer",
    "Representation",
    "Annotation",
    "Link",
    "KnowledgeArtifact",
    "KnowledgeAsset",
    "KnowledgeCarrier",
    "DescriptiveMetadata",
    "AssetSummary",
    "TranscodingOperator",
    "default_artifact_id",
    "default_surrogate_id",
]
