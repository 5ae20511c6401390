from __future__ import annotations

from fastapi import Request

from assetRepository.repository import KnowledgeAssetRepository


def get_repository(request: Request) -> KnowledgeAssetRepository:
    return request.app.state.repository
