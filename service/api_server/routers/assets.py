from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Header, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from assetRepository.model import KnowledgeAsset, KnowledgeCarrier, Representation
from assetRepository.repository import KnowledgeAssetRepository
from assetRepository.vocab import HTML, JSON, TTL, TXT, XML

from ..schemas import AssetSummaryView, BundleResponse, CarrierView, PointerView, ProblemDetails
from .dependencies import get_repository

router = APIRouter(prefix="/cat", tags=["assets"])

_NOT_FOUND = {404: {"model": ProblemDetails}}
_NEGOTIATED = {404: {"model": ProblemDetails}, 406: {"model": ProblemDetails}}

_MEDIA_TYPES = {
    XML: "application/xml",
    JSON: "application/json",
    TXT: "text/plain",
    TTL: "text/turtle",
}


def _preferences(x_accept_query: Optional[str], x_accept_header: Optional[str]) -> Optional[str]:
    return x_accept_query if x_accept_query else x_accept_header


def _content_response(carrier: KnowledgeCarrier) -> Response:
    if (carrier.representation.language or "").upper() == HTML:
        return Response(content=carrier.content, media_type="text/html")
    fmt = (carrier.representation.format or "").upper()
    return Response(
        content=carrier.content,
        media_type=_MEDIA_TYPES.get(fmt, "application/octet-stream"),
    )


@router.get("/assets", response_model=List[AssetSummaryView])
def list_assets(
    asset_type: Optional[str] = Query(default=None, alias="assetType"),
    annotation: Optional[str] = Query(default=None, alias="assetAnnotation"),
    offset: int = Query(default=0, ge=0),
    limit: Optional[int] = Query(default=None, ge=0),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> List[AssetSummaryView]:
    summaries = repository.list_assets(asset_type, annotation, offset, limit)
    return [AssetSummaryView.of(s) for s in summaries]


@router.get("/assets/{asset_id}", responses=_NOT_FOUND)
def get_latest_asset(
    asset_id: UUID,
    inverses: bool = Query(default=False),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> Dict[str, Any]:
    return repository.get_asset(asset_id, with_inverses=inverses).to_dict()


@router.get("/assets/{asset_id}/versions", response_model=List[PointerView], responses=_NOT_FOUND)
def list_asset_versions(
    asset_id: UUID,
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> List[PointerView]:
    versions = repository.get_asset_versions(asset_id)
    if not versions:
        # Listing an unknown series is an identity lookup, not a query.
        repository.get_asset(asset_id)
    return [PointerView.of(p) for p in versions]


@router.get("/assets/{asset_id}/versions/{version}", responses=_NEGOTIATED)
def get_asset_version(
    asset_id: UUID,
    version: str,
    inverses: bool = Query(default=False),
    x_accept: Optional[str] = Query(default=None, alias="xAccept"),
    x_accept_header: Optional[str] = Header(default=None, alias="X-Accept"),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> Response:
    code = _preferences(x_accept, x_accept_header)
    if not code:
        asset = repository.get_asset_version(asset_id, version, with_inverses=inverses)
        return JSONResponse(asset.to_dict())
    asset, redirect = repository.negotiate_surrogate_form(asset_id, version, code)
    if redirect is not None:
        return RedirectResponse(redirect, status_code=303)
    assert asset is not None
    return JSONResponse(asset.to_dict())


@router.put("/assets/{asset_id}/versions/{version}", response_model=PointerView, responses={400: {"model": ProblemDetails}})
def set_asset_version(
    asset_id: UUID,
    version: str,
    payload: Dict[str, Any] = Body(...),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> PointerView:
    data = dict(payload)
    data.setdefault("asset_id", {"id": str(asset_id), "version": version})
    try:
        surrogate = KnowledgeAsset.from_dict(data)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed surrogate: {exc}") from exc
    pointer = repository.set_asset_version(asset_id, version, surrogate)
    return PointerView.of(pointer)


@router.get("/assets/{asset_id}/versions/{version}/surrogate", responses=_NEGOTIATED)
def get_canonical_surrogate(
    asset_id: UUID,
    version: str,
    x_accept: Optional[str] = Query(default=None, alias="xAccept"),
    x_accept_header: Optional[str] = Header(default=None, alias="X-Accept"),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> Response:
    asset, redirect = repository.negotiate_surrogate_form(
        asset_id, version, _preferences(x_accept, x_accept_header)
    )
    if redirect is not None:
        return RedirectResponse(redirect, status_code=303)
    assert asset is not None
    return JSONResponse(asset.to_dict())


@router.put(
    "/assets/{asset_id}/versions/{version}/surrogate/{surrogate_id}/versions/{surrogate_version}",
    status_code=201,
    response_model=PointerView,
    responses={**_NOT_FOUND, 400: {"model": ProblemDetails}},
)
async def add_surrogate_form(
    asset_id: UUID,
    version: str,
    surrogate_id: UUID,
    surrogate_version: str,
    request: Request,
    lang: Optional[str] = Query(default=None),
    fmt: Optional[str] = Query(default=None),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> PointerView:
    content = await request.body()
    rep = Representation(lang.upper() if lang else None, fmt.upper() if fmt else None)
    form = repository.add_surrogate_form(asset_id, version, surrogate_id, surrogate_version, content, rep)
    return PointerView.of(form)


@router.get(
    "/assets/{asset_id}/versions/{version}/surrogate/{surrogate_id}/versions/{surrogate_version}/content",
    responses=_NOT_FOUND,
)
def get_surrogate_form_content(
    asset_id: UUID,
    version: str,
    surrogate_id: UUID,
    surrogate_version: str,
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> Response:
    return _content_response(repository.get_surrogate_form(asset_id, version, surrogate_id, surrogate_version))


@router.get("/assets/{asset_id}/versions/{version}/carriers", responses=_NOT_FOUND)
def list_carriers(
    asset_id: UUID,
    version: str,
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in repository.get_carriers(asset_id, version)]


@router.put(
    "/assets/{asset_id}/versions/{version}/carriers/{artifact_id}/versions/{artifact_version}",
    status_code=201,
    response_model=PointerView,
    responses=_NOT_FOUND,
)
async def add_carrier(
    asset_id: UUID,
    version: str,
    artifact_id: UUID,
    artifact_version: str,
    request: Request,
    lang: Optional[str] = Query(default=None),
    fmt: Optional[str] = Query(default=None),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> PointerView:
    content = await request.body()
    rep = Representation(lang.upper() if lang else None, fmt.upper() if fmt else None)
    artifact = repository.add_carrier(asset_id, version, artifact_id, artifact_version, content, rep)
    return PointerView.of(artifact)


@router.get(
    "/assets/{asset_id}/versions/{version}/carriers/{artifact_id}/versions/{artifact_version}",
    response_model=CarrierView,
    responses=_NOT_FOUND,
)
def get_carrier_version(
    asset_id: UUID,
    version: str,
    artifact_id: UUID,
    artifact_version: str,
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> CarrierView:
    return CarrierView.of(repository.get_carrier_version(asset_id, version, artifact_id, artifact_version))


@router.get(
    "/assets/{asset_id}/versions/{version}/carriers/{artifact_id}/versions/{artifact_version}/content",
    responses=_NOT_FOUND,
)
def get_carrier_version_content(
    asset_id: UUID,
    version: str,
    artifact_id: UUID,
    artifact_version: str,
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> Response:
    return _content_response(repository.get_carrier_version(asset_id, version, artifact_id, artifact_version))


@router.get("/assets/{asset_id}/versions/{version}/carrier", response_model=CarrierView, responses=_NEGOTIATED)
def get_canonical_carrier(
    asset_id: UUID,
    version: str,
    x_accept: Optional[str] = Query(default=None, alias="xAccept"),
    x_accept_header: Optional[str] = Header(default=None, alias="X-Accept"),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> CarrierView:
    code = _preferences(x_accept, x_accept_header)
    return CarrierView.of(repository.get_canonical_carrier(asset_id, version, code))


@router.get("/assets/{asset_id}/versions/{version}/carrier/content", responses=_NEGOTIATED)
def get_canonical_carrier_content(
    asset_id: UUID,
    version: str,
    x_accept: Optional[str] = Query(default=None, alias="xAccept"),
    x_accept_header: Optional[str] = Header(default=None, alias="X-Accept"),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> Response:
    code = _preferences(x_accept, x_accept_header)
    return _content_response(repository.get_canonical_carrier(asset_id, version, code))


@router.get("/assets/{asset_id}/versions/{version}/bundle", response_model=BundleResponse, responses=_NOT_FOUND)
def get_bundle(
    asset_id: UUID,
    version: str,
    relationship: Optional[str] = Query(default=None, alias="assetRelationship"),
    depth: Optional[int] = Query(default=None),
    repository: KnowledgeAssetRepository = Depends(get_repository),
) -> BundleResponse:
    carriers = repository.get_bundle(asset_id, version, relationship, depth)
    return BundleResponse(
        root=PointerView(id=str(asset_id), version=version),
        carriers=[CarrierView.of(c) for c in carriers],
    )
