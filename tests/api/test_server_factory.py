from __future__ import annotations

from fastapi.testclient import TestClient

from service.api_server.server import CONFIG_ENV, build_app


def test_build_app_reads_yaml_config(tmp_path, monkeypatch):
    for name in ("ASSETREPO_INDEX_BACKEND", "ASSETREPO_ARTIFACT_STORE", "ASSETREPO_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    config = tmp_path / "repo.yml"
    config.write_text(
        f"repository:\n  index_backend: triples\n  artifact_store: fs\n  data_dir: {tmp_path / 'data'}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv(CONFIG_ENV, str(config))

    with TestClient(build_app()) as client:
        health = client.get("/health").json()

    assert health["index"] == "TripleStoreIndex"
    assert health["store"] == "FileSystemArtifactStore"
    assert (tmp_path / "data").is_dir()
