from __future__ import annotations

"""Uvicorn entrypoint serving a repository built from ``ASSETREPO_CONFIG``."""

import os
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from assetRepository.config import build_repository, load_settings
from assetRepository.utils.log_json import JsonLogger

from . import create_app
from .config import ApiSettings

CONFIG_ENV = "ASSETREPO_CONFIG"

_logger = JsonLogger("server")


def build_app() -> FastAPI:
    """Application factory used by ``uvicorn --factory``."""

    config_path = os.getenv(CONFIG_ENV)
    settings = load_settings(Path(config_path) if config_path else None)
    _logger.info(
        "server.starting",
        config=config_path,
        index_backend=settings.index_backend,
        artifact_store=settings.artifact_store,
    )
    return create_app(ApiSettings.from_env(), repository=build_repository(settings))


def main() -> None:  # pragma: no cover - starts a server
    api_settings = ApiSettings.from_env()
    uvicorn.run(
        "service.api_server.server:build_app",
        host=api_settings.host,
        port=api_settings.port,
        factory=True,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
