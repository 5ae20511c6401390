from __future__ import annotations

from uuid import uuid4

import pytest

from assetRepository.config import RepositorySettings
from assetRepository.errors import Forbidden, NotAcceptable, NotFound
from assetRepository.hrefs import HrefBuilder
from assetRepository.index import KeyValueIndex
from assetRepository.model import (
    Annotation,
    AssetPointer,
    KnowledgeArtifact,
    KnowledgeAsset,
    Link,
    Representation,
    TranscodingOperator,
)
from assetRepository.repository import KnowledgeAssetRepository, embedded_artifact_pointer
from assetRepository.stores import InMemoryArtifactStore
from assetRepository.transcoder import StaticTranscoder
from assetRepository.vocab import ELM, HTML, IMPORTS, JSON, KNART, SURROGATE, TXT, XML


def _surrogate(pointer, name="Asset", **kwargs) -> KnowledgeAsset:
    return KnowledgeAsset(asset_id=pointer, name=name, **kwargs)


def test_register_and_fetch_latest(repository):
    series = uuid4()
    v1 = AssetPointer(series, "1")
    v2 = AssetPointer(series, "2")
    repository.set_asset_version(series, "1", _surrogate(v1, "first"))
    repository.set_asset_version(series, "2", _surrogate(v2, "second"))

    assert repository.get_asset(series).name == "second"
    assert repository.get_asset_version(series, "1").name == "first"
    assert repository.get_asset_versions(series) == [v2, v1]


def test_missing_assets_raise_not_found(repository, new_pointer):
    missing = new_pointer()
    with pytest.raises(NotFound):
        repository.get_asset(missing.id)
    with pytest.raises(NotFound):
        repository.get_asset_version(missing.id, "1")


def test_register_rejects_mismatched_pointer(repository, new_pointer):
    pointer = new_pointer()
    with pytest.raises(ValueError):
        repository.set_asset_version(pointer.id, "2", _surrogate(pointer))
    with pytest.raises(ValueError):
        repository.set_asset_version(pointer.id, "", _surrogate(AssetPointer(pointer.id, "")))


def test_list_assets_filters_and_pages(repository):
    rule = AssetPointer(uuid4(), "1")
    model = AssetPointer(uuid4(), "1")
    annotated = AssetPointer(uuid4(), "1")
    repository.set_asset_version(rule.id, "1", _surrogate(rule, "Beta", formal_types=["Rule"]))
    repository.set_asset_version(
        model.id, "1", _surrogate(model, "alpha", formal_types=["Model"], roles=["Operational"])
    )
    repository.set_asset_version(
        annotated.id,
        "1",
        _surrogate(annotated, "Gamma", formal_types=["Rule"], annotations=[Annotation("c1", "r1")]),
    )

    assert [s.name for s in repository.list_assets()] == ["alpha", "Beta", "Gamma"]
    assert [s.name for s in repository.list_assets("Rule")] == ["Beta", "Gamma"]
    assert [s.name for s in repository.list_assets("Operational")] == ["alpha"]
    assert [s.name for s in repository.list_assets(annotation="r1:c1")] == ["Gamma"]
    assert [s.name for s in repository.list_assets("Rule", "c1")] == ["Gamma"]
    assert [s.name for s in repository.list_assets(offset=1, limit=1)] == ["Beta"]
    assert repository.list_assets("Unknown") == []
    with pytest.raises(ValueError):
        repository.list_assets(offset=-1)


def test_list_assets_reports_latest_version_per_series(repository):
    series = uuid4()
    for version in ("1", "2"):
        pointer = AssetPointer(series, version)
        repository.set_asset_version(series, version, _surrogate(pointer, f"v{version}"))

    summaries = repository.list_assets()
    assert len(summaries) == 1
    assert summaries[0].pointer == AssetPointer(series, "2")
    assert summaries[0].href == f"http://repo.test/cat/assets/{series}/versions/2"


def test_add_and_fetch_carriers(repository, new_pointer):
    pointer = new_pointer()
    repository.set_asset_version(pointer.id, pointer.version, _surrogate(pointer))
    artifact_id = uuid4()
    repository.add_carrier(pointer.id, "1", artifact_id, "1.0", b"<knart/>", Representation(KNART, XML))

    carriers = repository.get_carriers(pointer.id, "1")
    assert [c.artifact_id for c in carriers] == [AssetPointer(artifact_id, "1.0")]
    assert carriers[0].locator.endswith(f"/carriers/{artifact_id}/versions/1.0/content")

    carrier = repository.get_carrier_version(pointer.id, "1", artifact_id, "1.0")
    assert carrier.content == b"<knart/>"
    assert carrier.representation == Representation(KNART, XML)
    assert repository.index.get_location(AssetPointer(artifact_id, "1.0")) == carriers[0].locator

    with pytest.raises(NotFound):
        repository.get_carrier_version(pointer.id, "1", uuid4(), "1.0")


def test_add_carrier_to_unknown_asset_fails(repository, new_pointer):
    missing = new_pointer()
    with pytest.raises(NotFound):
        repository.add_carrier(missing.id, "1", uuid4(), "1", b"x")


def test_add_carrier_again_replaces_content(repository, new_pointer):
    pointer = new_pointer()
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer))
    artifact_id = uuid4()
    repository.add_carrier(pointer.id, "1", artifact_id, "1", b"old", Representation(KNART, XML))
    repository.add_carrier(pointer.id, "1", artifact_id, "1", b"new")

    assert len(repository.get_carriers(pointer.id, "1")) == 1
    carrier = repository.get_canonical_carrier(pointer.id, "1")
    assert carrier.content == b"new"
    assert carrier.representation == Representation(KNART, XML)


def test_canonical_carrier_negotiation(repository, new_pointer):
    pointer = new_pointer()
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer))
    repository.add_carrier(pointer.id, "1", uuid4(), "1", b"<knart/>", Representation(KNART, XML))
    repository.add_carrier(pointer.id, "1", uuid4(), "1", b"<p>hi</p>", Representation(HTML, TXT))

    assert repository.get_canonical_carrier(pointer.id, "1", "text/html").content == b"<p>hi</p>"
    assert repository.get_canonical_carrier(pointer.id, "1", "model/knart+xml").content == b"<knart/>"
    assert repository.get_canonical_carrier(pointer.id, "1").content == b"<knart/>"
    with pytest.raises(NotAcceptable):
        repository.get_canonical_carrier(pointer.id, "1", "model/dmn+xml")


def test_canonical_carrier_without_content_is_not_found(repository, new_pointer):
    pointer = new_pointer()
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer))
    with pytest.raises(NotFound):
        repository.get_canonical_carrier(pointer.id, "1")


def test_locator_only_carriers_are_indexed_by_embedded_pointer(repository, new_pointer):
    pointer = new_pointer()
    locator = "http://content.test/rule.xml"
    repository.set_asset_version(
        pointer.id,
        "1",
        _surrogate(pointer, carriers=[KnowledgeArtifact(locator=locator)]),
    )

    embedded = embedded_artifact_pointer(locator)
    assert repository.index.get_artifacts_for_asset(pointer) == {embedded}
    assert repository.index.get_location(embedded) == locator
    assert repository.get_carriers(pointer.id, "1")[0].locator == locator


def test_links_and_inverses(repository, new_pointer):
    a, b = new_pointer(), new_pointer()
    repository.set_asset_version(a.id, "1", _surrogate(a, links=[Link(IMPORTS, b)]))
    repository.set_asset_version(b.id, "1", _surrogate(b))

    assert repository.get_asset_version(b.id, "1").links == []
    assert repository.get_asset_version(b.id, "1", with_inverses=True).links == [
        Link(IMPORTS, a, inverse=True)
    ]
    assert repository.get_asset_version(a.id, "1", with_inverses=True).links == [Link(IMPORTS, b)]


def test_surrogate_form_negotiation(repository, new_pointer):
    pointer = new_pointer()
    html = KnowledgeArtifact(
        representation=Representation(HTML, TXT),
        locator="http://docs.test/asset.html",
    )
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer, surrogates=[html]))

    asset, redirect = repository.negotiate_surrogate_form(pointer.id, "1", None)
    assert asset is not None and redirect is None
    asset, redirect = repository.negotiate_surrogate_form(pointer.id, "1", "text/html")
    assert asset is None and redirect == "http://docs.test/asset.html"
    asset, redirect = repository.negotiate_surrogate_form(pointer.id, "1", f"lang={SURROGATE}")
    assert asset is not None and redirect is None
    with pytest.raises(NotAcceptable):
        repository.negotiate_surrogate_form(pointer.id, "1", "model/knart+xml")


def test_clear_all_is_forbidden_by_default(repository, new_pointer):
    pointer = new_pointer()
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer))
    with pytest.raises(Forbidden):
        repository.clear_all()
    assert repository.get_asset(pointer.id).name == "Asset"


def test_clear_all_when_enabled(new_pointer):
    repository = KnowledgeAssetRepository(
        KeyValueIndex(),
        InMemoryArtifactStore(),
        settings=RepositorySettings(allow_clear_all=True),
    )
    pointer = new_pointer()
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer, formal_types=["Rule"]))
    repository.clear_all()

    assert repository.list_assets() == []
    assert repository.index.get_asset_ids_by_type(None) == set()
    with pytest.raises(NotFound):
        repository.get_asset(pointer.id)


def test_transcoder_adds_ephemeral_carriers(new_pointer):
    transcoder = StaticTranscoder(
        [TranscodingOperator("knart-to-elm", (Representation(KNART),), (Representation(ELM, JSON),))]
    )
    repository = KnowledgeAssetRepository(
        KeyValueIndex(),
        InMemoryArtifactStore(),
        hrefs=HrefBuilder("http://repo.test"),
        transcoder=transcoder,
    )
    pointer = new_pointer()
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer))
    repository.add_carrier(pointer.id, "1", uuid4(), "1", b"<knart/>", Representation(KNART, XML))

    carriers = repository.get_carriers(pointer.id, "1")
    assert [c.ephemeral for c in carriers] == [False, True]
    assert carriers[1].representation == Representation(ELM, JSON)
    raw = repository.get_raw_surrogate(pointer)
    assert len(raw.carriers) == 1


def test_identified_carrier_content_falls_back_to_its_locator(repository, new_pointer, tmp_path):
    pointer = new_pointer()
    artifact = AssetPointer(uuid4(), "1")
    source = tmp_path / "rule.xml"
    source.write_bytes(b"<rule/>")
    carrier = KnowledgeArtifact(
        artifact_id=artifact,
        representation=Representation(KNART, XML),
        locator=source.as_uri(),
    )
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer, carriers=[carrier]))

    assert repository.get_canonical_carrier(pointer.id, "1").content == b"<rule/>"
    assert repository.get_carrier_version(pointer.id, "1", artifact.id, "1").content == b"<rule/>"


def test_unreadable_or_self_referencing_locators_are_not_found(repository, new_pointer, tmp_path):
    pointer = new_pointer()
    missing = AssetPointer(uuid4(), "1")
    looping = AssetPointer(uuid4(), "1")
    carriers = [
        KnowledgeArtifact(artifact_id=missing, locator=(tmp_path / "gone.xml").as_uri()),
        KnowledgeArtifact(
            artifact_id=looping,
            locator=f"http://repo.test/cat/assets/{pointer.tag}/versions/1/carrier/content",
        ),
    ]
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer, carriers=carriers))

    with pytest.raises(NotFound):
        repository.get_carrier_version(pointer.id, "1", missing.id, "1")
    with pytest.raises(NotFound):
        repository.get_carrier_version(pointer.id, "1", looping.id, "1")


def test_surrogate_forms_are_served_by_id(repository, new_pointer):
    pointer = new_pointer()
    inline = AssetPointer(uuid4(), "1")
    uploaded = AssetPointer(uuid4(), "1")
    html = KnowledgeArtifact(
        artifact_id=inline,
        representation=Representation(HTML, TXT),
        inlined="<p>About</p>",
    )
    repository.set_asset_version(pointer.id, "1", _surrogate(pointer, surrogates=[html]))
    repository.add_surrogate_form(pointer.id, "1", uploaded.id, "1", b"<p>Uploaded</p>", Representation(HTML, TXT))

    assert repository.get_surrogate_form(pointer.id, "1", inline.id, "1").content == b"<p>About</p>"
    uploaded_form = repository.get_surrogate_form(pointer.id, "1", uploaded.id, "1")
    assert uploaded_form.content == b"<p>Uploaded</p>"
    assert uploaded_form.representation == Representation(HTML, TXT)

    canonical = repository.index.get_surrogate_for_asset(pointer)
    served = repository.get_surrogate_form(pointer.id, "1", canonical.id, canonical.version)
    assert KnowledgeAsset.from_json(served.content).asset_id == pointer
    with pytest.raises(NotFound):
        repository.get_surrogate_form(pointer.id, "1", uuid4(), "1")
    with pytest.raises(ValueError):
        repository.add_surrogate_form(pointer.id, "1", canonical.id, canonical.version, b"{}")
