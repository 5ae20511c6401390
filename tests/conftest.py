from __future__ import annotations

import os
from uuid import uuid4

import pytest
from pytest_socket import disable_socket, enable_socket

from assetRepository.hrefs import HrefBuilder
from assetRepository.index import KeyValueIndex, TripleStoreIndex
from assetRepository.model import AssetPointer
from assetRepository.repository import KnowledgeAssetRepository
from assetRepository.config import RepositorySettings
from assetRepository.stores import InMemoryArtifactStore

BASE_URL = "http://repo.test"


@pytest.fixture(autouse=True)
def _disable_network(request: pytest.FixtureRequest):
    """Restrict network access while allowing opt-in socket usage."""

    if os.getenv("PYTEST_ALLOW_NETWORK", "0") == "1":
        yield
        return

    allow_marker = request.node.get_closest_marker("enable_socket")

    if allow_marker:
        enable_socket()
        try:
            yield
        finally:
            disable_socket(allow_unix_socket=True)
    else:
        disable_socket(allow_unix_socket=True)
        try:
            yield
        finally:
            enable_socket()


@pytest.fixture(params=["kv", "triples"])
def index(request: pytest.FixtureRequest):
    if request.param == "kv":
        return KeyValueIndex()
    return TripleStoreIndex()


@pytest.fixture
def repository(index) -> KnowledgeAssetRepository:
    return KnowledgeAssetRepository(
        index,
        InMemoryArtifactStore(),
        settings=RepositorySettings(base_url=BASE_URL),
        hrefs=HrefBuilder(BASE_URL),
    )


@pytest.fixture
def new_pointer():
    def _make(version: str = "1") -> AssetPointer:
        return AssetPointer(uuid4(), version)

    return _make
