from __future__ import annotations

import base64
from typing import List, Optional

from pydantic import BaseModel, Field

from assetRepository.model import AssetPointer, AssetSummary, KnowledgeCarrier, Representation


class PointerView(BaseModel):
    id: str = Field(..., description="Asset, artifact or surrogate UUID")
    version: Optional[str] = Field(default=None)

    @classmethod
    def of(cls, pointer: AssetPointer) -> "PointerView":
        return cls(id=pointer.tag, version=pointer.version)


class RepresentationView(BaseModel):
    language: Optional[str] = None
    format: Optional[str] = None
    charset: Optional[str] = None
    encoding: Optional[str] = None

    @classmethod
    def of(cls, rep: Representation) -> "RepresentationView":
        return cls(
            language=rep.language,
            format=rep.format,
            charset=rep.charset,
            encoding=rep.encoding,
        )


class AssetSummaryView(BaseModel):
    pointer: PointerView
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = Field(default=None, description="Primary formal type")
    href: Optional[str] = None

    @classmethod
    def of(cls, summary: AssetSummary) -> "AssetSummaryView":
        return cls(
            pointer=PointerView.of(summary.pointer),
            name=summary.name,
            description=summary.description,
            type=summary.type,
            href=summary.href,
        )


class CarrierView(BaseModel):
    asset_id: PointerView
    artifact_id: Optional[PointerView] = None
    representation: RepresentationView
    content: str = Field(..., description="Base64 encoded content")

    @classmethod
    def of(cls, carrier: KnowledgeCarrier) -> "CarrierView":
        return cls(
            asset_id=PointerView.of(carrier.asset_id),
            artifact_id=PointerView.of(carrier.artifact_id) if carrier.artifact_id else None,
            representation=RepresentationView.of(carrier.representation),
            content=base64.b64encode(carrier.content).decode("ascii"),
        )


class BundleResponse(BaseModel):
    root: PointerView
    carriers: List[CarrierView] = Field(default_factory=list)
