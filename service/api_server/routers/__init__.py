from __future__ import annotations

from fastapi import APIRouter

from . import admin, assets, health


def build_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router)
    router.include_router(assets.router)
    router.include_router(admin.router)
    return router


__all__ = ["build_router"]
