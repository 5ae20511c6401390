from __future__ import annotations

"""Top-level CLI for browsing and maintaining an asset repository."""

from dataclasses import replace
import json
from pathlib import Path
from typing import Optional

import click
from tabulate import tabulate

from assetRepository import __version__
from assetRepository.config import INDEX_BACKENDS, build_repository, load_settings
from assetRepository.errors import AssetRepositoryError, Forbidden, NotAcceptable, NotFound
from assetRepository.model import KnowledgeAsset, Representation
from assetRepository.repository import KnowledgeAssetRepository


def _repository(ctx: click.Context) -> KnowledgeAssetRepository:
    obj = ctx.ensure_object(dict)
    if "repository" not in obj:
        settings = obj["settings"]
        repository = build_repository(settings)
        obj["repository"] = repository
        ctx.call_on_close(repository.close)
    return obj["repository"]


def _fail(exc: AssetRepositoryError) -> click.ClickException:
    kind = {NotFound: "not found", NotAcceptable: "not acceptable", Forbidden: "forbidden"}
    label = next((v for k, v in kind.items() if isinstance(exc, k)), "error")
    return click.ClickException(f"{label}: {exc}")


@click.group()
@click.version_option(__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML settings file.",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the index and artifacts (enables file storage).",
)
@click.option("--backend", type=click.Choice(INDEX_BACKENDS), default=None, help="Index backend.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], data_dir: Optional[Path], backend: Optional[str]) -> None:
    """Knowledge asset repository command line."""
    try:
        settings = load_settings(config_path)
        if data_dir is not None:
            store = "fs" if settings.artifact_store == "memory" else settings.artifact_store
            settings = replace(settings, data_dir=data_dir, artifact_store=store)
        if backend is not None:
            settings = replace(settings, index_backend=backend)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.ensure_object(dict)["settings"] = settings


@cli.command(name="list")
@click.option("--type", "asset_type", default=None, help="Formal type or role to filter by.")
@click.option("--annotation", default=None, help="Concept or predicate:concept key.")
@click.option("--offset", type=int, default=0, show_default=True)
@click.option("--limit", type=int, default=None)
@click.pass_context
def list_cmd(ctx: click.Context, asset_type: Optional[str], annotation: Optional[str], offset: int, limit: Optional[int]) -> None:
    """List the latest version of every matching asset."""
    summaries = _repository(ctx).list_assets(asset_type, annotation, offset, limit)
    if not summaries:
        click.echo("No assets found")
        return
    rows = [[s.pointer.tag, s.pointer.version, s.name or "", s.type or ""] for s in summaries]
    click.echo(tabulate(rows, headers=["Asset", "Version", "Name", "Type"]))


@cli.command()
@click.argument("asset_id")
@click.option("--version", "version", default=None, help="Asset version (latest when omitted).")
@click.option("--inverses", is_flag=True, default=False, help="Include incoming relationships.")
@click.pass_context
def show(ctx: click.Context, asset_id: str, version: Optional[str], inverses: bool) -> None:
    """Print an asset surrogate as JSON."""
    repository = _repository(ctx)
    try:
        if version:
            asset = repository.get_asset_version(asset_id, version, with_inverses=inverses)
        else:
            asset = repository.get_asset(asset_id, with_inverses=inverses)
    except AssetRepositoryError as exc:
        raise _fail(exc) from exc
    click.echo(json.dumps(asset.to_dict(), indent=2, sort_keys=True))


@cli.command()
@click.argument("surrogate_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def register(ctx: click.Context, surrogate_file: Path) -> None:
    """Register the surrogate stored in SURROGATE_FILE (JSON)."""
    try:
        asset = KnowledgeAsset.from_json(surrogate_file.read_bytes())
    except (ValueError, KeyError) as exc:
        raise click.ClickException(f"Invalid surrogate: {exc}") from exc
    repository = _repository(ctx)
    try:
        pointer = repository.set_asset_version(asset.asset_id.id, asset.asset_id.version, asset)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Registered {pointer}")


@cli.command(name="add-carrier")
@click.argument("asset_id")
@click.argument("version")
@click.argument("content_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--artifact-id", required=True)
@click.option("--artifact-version", required=True)
@click.option("--lang", default=None, help="Representation language, e.g. KNART.")
@click.option("--fmt", default=None, help="Serialization format, e.g. XML.")
@click.pass_context
def add_carrier(
    ctx: click.Context,
    asset_id: str,
    version: str,
    content_file: Path,
    artifact_id: str,
    artifact_version: str,
    lang: Optional[str],
    fmt: Optional[str],
) -> None:
    """Store CONTENT_FILE as a carrier of ASSET_ID:VERSION."""
    rep = Representation(lang.upper() if lang else None, fmt.upper() if fmt else None)
    try:
        artifact = _repository(ctx).add_carrier(
            asset_id, version, artifact_id, artifact_version, content_file.read_bytes(), rep
        )
    except AssetRepositoryError as exc:
        raise _fail(exc) from exc
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Stored carrier {artifact}")


@cli.command()
@click.argument("asset_id")
@click.argument("version")
@click.option("--relationship", default=None, help="Only follow this relationship kind.")
@click.option("--depth", type=int, default=None, help="Maximum number of hops.")
@click.option(
    "--out",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write each carrier's content into this directory.",
)
@click.pass_context
def bundle(
    ctx: click.Context,
    asset_id: str,
    version: str,
    relationship: Optional[str],
    depth: Optional[int],
    out: Optional[Path],
) -> None:
    """Collect the carriers of an asset and its dependencies."""
    try:
        carriers = _repository(ctx).get_bundle(asset_id, version, relationship, depth)
    except AssetRepositoryError as exc:
        raise _fail(exc) from exc
    rows = [
        [
            str(c.asset_id),
            str(c.artifact_id) if c.artifact_id else "(anonymous)",
            c.representation.language or "",
            len(c.content),
        ]
        for c in carriers
    ]
    click.echo(tabulate(rows, headers=["Asset", "Artifact", "Language", "Bytes"]))
    if out is not None:
        out.mkdir(parents=True, exist_ok=True)
        for position, carrier in enumerate(carriers):
            name = f"{carrier.asset_id.tag}_{carrier.asset_id.version}_{position}"
            (out / name).write_bytes(carrier.content)
        click.echo(f"Wrote {len(carriers)} carriers to {out}")


@cli.command()
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Remove every asset, carrier and index entry."""
    if not yes:
        click.confirm("Remove all assets from the repository?", abort=True)
    try:
        _repository(ctx).clear_all()
    except AssetRepositoryError as exc:
        raise _fail(exc) from exc
    click.echo("Repository cleared")


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to ASSETREPO_API_HOST).")
@click.option("--port", type=int, default=None, help="Port (defaults to ASSETREPO_API_PORT).")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:  # pragma: no cover - starts a server
    """Serve the repository over HTTP."""
    import uvicorn

    from service.api_server import create_app
    from service.api_server.config import ApiSettings

    api_settings = ApiSettings.from_env()
    app = create_app(api_settings, repository=_repository(ctx))
    uvicorn.run(
        app,
        host=host or api_settings.host,
        port=port or api_settings.port,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    cli()
