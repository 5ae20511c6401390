from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from assetRepository.repository import KnowledgeAssetRepository

from ..schemas import ProblemDetails
from .dependencies import get_repository

router = APIRouter(prefix="/cat", tags=["admin"])


@router.delete(
    "/assets",
    status_code=204,
    summary="Remove every asset (disabled unless allow_clear_all is set)",
    responses={403: {"model": ProblemDetails}},
)
def clear_all(repository: KnowledgeAssetRepository = Depends(get_repository)) -> Response:
    repository.clear_all()
    return Response(status_code=204)
