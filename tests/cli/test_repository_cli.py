from __future__ import annotations

import json
from pathlib import Path
from uuid import uuid4

import pytest
from click.testing import CliRunner

from assetRepository.cli.__main__ import cli


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("ASSETREPO_INDEX_BACKEND", "ASSETREPO_ARTIFACT_STORE", "ASSETREPO_DATA_DIR", "ASSETREPO_ALLOW_CLEAR_ALL"):
        monkeypatch.delenv(name, raising=False)


def _write_surrogate(path: Path, asset_id, version="1", **fields) -> Path:
    body = {"asset_id": {"id": str(asset_id), "version": version}, **fields}
    path.write_text(json.dumps(body), encoding="utf-8")
    return path


@pytest.mark.parametrize("backend", ["kv", "triples"])
def test_register_list_show_round_trip(tmp_path, backend):
    runner = CliRunner()
    data_dir = tmp_path / "data"
    asset_id = uuid4()
    surrogate = _write_surrogate(tmp_path / "a.json", asset_id, name="Alpha", formal_types=["Rule"])
    base = ["--data-dir", str(data_dir), "--backend", backend]

    result = runner.invoke(cli, base + ["register", str(surrogate)])
    assert result.exit_code == 0, result.output
    assert f"Registered {asset_id}:1" in result.output

    result = runner.invoke(cli, base + ["list"])
    assert result.exit_code == 0, result.output
    assert "Alpha" in result.output
    assert "Rule" in result.output

    result = runner.invoke(cli, base + ["show", str(asset_id)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["name"] == "Alpha"


def test_list_empty_repository(tmp_path):
    result = CliRunner().invoke(cli, ["--data-dir", str(tmp_path), "list"])
    assert result.exit_code == 0
    assert "No assets found" in result.output


def test_show_unknown_asset_fails(tmp_path):
    result = CliRunner().invoke(cli, ["--data-dir", str(tmp_path), "show", str(uuid4())])
    assert result.exit_code != 0
    assert "not found" in result.output


def test_register_rejects_invalid_json(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    result = CliRunner().invoke(cli, ["--data-dir", str(tmp_path / "data"), "register", str(bad)])
    assert result.exit_code != 0
    assert "Invalid surrogate" in result.output


def test_add_carrier_and_bundle(tmp_path):
    runner = CliRunner()
    base = ["--data-dir", str(tmp_path / "data")]
    a, b = uuid4(), uuid4()
    runner.invoke(
        cli,
        base
        + [
            "register",
            str(
                _write_surrogate(
                    tmp_path / "a.json",
                    a,
                    links=[{"rel": "Imports", "href": {"id": str(b), "version": "1"}}],
                )
            ),
        ],
    )
    runner.invoke(cli, base + ["register", str(_write_surrogate(tmp_path / "b.json", b))])
    for asset_id, text in ((a, "Hi!"), (b, "There!")):
        content = tmp_path / f"{asset_id}.xml"
        content.write_text(text, encoding="utf-8")
        result = runner.invoke(
            cli,
            base
            + [
                "add-carrier",
                str(asset_id),
                "1",
                str(content),
                "--artifact-id",
                str(uuid4()),
                "--artifact-version",
                "1",
                "--lang",
                "knart",
                "--fmt",
                "xml",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Stored carrier" in result.output

    out = tmp_path / "bundle"
    result = runner.invoke(cli, base + ["bundle", str(a), "1", "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert "KNART" in result.output
    assert "Wrote 2 carriers" in result.output
    assert sorted(p.read_text(encoding="utf-8") for p in out.iterdir()) == ["Hi!", "There!"]


def test_reset_requires_flag(tmp_path):
    result = CliRunner().invoke(cli, ["--data-dir", str(tmp_path), "reset", "--yes"])
    assert result.exit_code != 0
    assert "forbidden" in result.output


def test_reset_when_enabled(tmp_path, monkeypatch):
    monkeypatch.setenv("ASSETREPO_ALLOW_CLEAR_ALL", "1")
    runner = CliRunner()
    base = ["--data-dir", str(tmp_path / "data")]
    runner.invoke(cli, base + ["register", str(_write_surrogate(tmp_path / "a.json", uuid4(), name="Alpha"))])

    result = runner.invoke(cli, base + ["reset", "--yes"])
    assert result.exit_code == 0, result.output
    assert "Repository cleared" in result.output
    assert "No assets found" in runner.invoke(cli, base + ["list"]).output


def test_config_file_is_honoured(tmp_path):
    config = tmp_path / "repo.yml"
    config.write_text("repository:\n  index_backend: bogus\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["--config", str(config), "list"])
    assert result.exit_code != 0
    assert "index_backend" in result.output
