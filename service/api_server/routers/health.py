from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from assetRepository.repository import KnowledgeAssetRepository

from .dependencies import get_repository

router = APIRouter(tags=["health"])


@router.get("/health", summary="Service health check")
def health(repository: KnowledgeAssetRepository = Depends(get_repository)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "index": type(repository.index).__name__,
        "store": type(repository.store).__name__,
    }
