from __future__ import annotations

import base64
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from assetRepository.config import RepositorySettings
from assetRepository.hrefs import HrefBuilder
from assetRepository.index import KeyValueIndex
from assetRepository.repository import KnowledgeAssetRepository
from assetRepository.stores import InMemoryArtifactStore
from assetRepository.vocab import IMPORTS, SURROGATE
from service.api_server import create_app
from service.api_server.config import ApiSettings

BASE_URL = "http://testserver"


def _repository(*, allow_clear_all: bool = False) -> KnowledgeAssetRepository:
    return KnowledgeAssetRepository(
        KeyValueIndex(),
        InMemoryArtifactStore(),
        settings=RepositorySettings(base_url=BASE_URL, allow_clear_all=allow_clear_all),
        hrefs=HrefBuilder(BASE_URL),
    )


def _settings(**overrides) -> ApiSettings:
    values = dict(host="testserver", port=9001, request_timeout_seconds=5.0, request_body_limit=32 * 1024)
    values.update(overrides)
    return ApiSettings(**values)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(create_app(_settings(), repository=_repository()))


def _put_asset(client: TestClient, asset_id, version="1", **fields):
    body = {"asset_id": {"id": str(asset_id), "version": version}, "name": "Asset", **fields}
    return client.put(f"/cat/assets/{asset_id}/versions/{version}", json=body)


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "index": "KeyValueIndex", "store": "InMemoryArtifactStore"}
    assert response.headers["X-Request-Id"]


def test_register_list_and_fetch(client: TestClient) -> None:
    asset_id = uuid4()
    response = _put_asset(client, asset_id, name="Alpha", formal_types=["Rule"])
    assert response.status_code == 200
    assert response.json() == {"id": str(asset_id), "version": "1"}

    listing = client.get("/cat/assets", params={"assetType": "Rule"})
    assert listing.status_code == 200
    [entry] = listing.json()
    assert entry["name"] == "Alpha"
    assert entry["type"] == "Rule"
    assert entry["href"] == f"{BASE_URL}/cat/assets/{asset_id}/versions/1"

    assert client.get("/cat/assets", params={"assetType": "Model"}).json() == []
    assert client.get(f"/cat/assets/{asset_id}").json()["name"] == "Alpha"
    assert client.get(f"/cat/assets/{asset_id}/versions/1").json()["formal_types"] == ["Rule"]
    assert client.get(f"/cat/assets/{asset_id}/versions/1/surrogate").json()["name"] == "Alpha"


def test_put_without_pointer_uses_path(client: TestClient) -> None:
    asset_id = uuid4()
    response = client.put(f"/cat/assets/{asset_id}/versions/2", json={"name": "Implicit"})
    assert response.status_code == 200
    assert client.get(f"/cat/assets/{asset_id}").json()["asset_id"] == {"id": str(asset_id), "version": "2"}


def test_versions_listing(client: TestClient) -> None:
    asset_id = uuid4()
    _put_asset(client, asset_id, "1")
    _put_asset(client, asset_id, "2")

    response = client.get(f"/cat/assets/{asset_id}/versions")
    assert [v["version"] for v in response.json()] == ["2", "1"]
    assert client.get(f"/cat/assets/{uuid4()}/versions").status_code == 404


def test_unknown_asset_is_problem_details(client: TestClient) -> None:
    response = client.get(f"/cat/assets/{uuid4()}/versions/1")
    assert response.status_code == 404
    assert response.headers["content-type"] == "application/problem+json"
    problem = response.json()
    assert problem["status"] == 404
    assert problem["title"] == "Not Found"
    assert problem["trace_id"]


def test_mismatched_surrogate_is_bad_request(client: TestClient) -> None:
    asset_id = uuid4()
    response = client.put(
        f"/cat/assets/{asset_id}/versions/1",
        json={"asset_id": {"id": str(uuid4()), "version": "1"}},
    )
    assert response.status_code == 400
    assert response.json()["title"] == "Bad Request"


def test_malformed_identifier_is_validation_error(client: TestClient) -> None:
    response = client.get("/cat/assets/not-a-uuid")
    assert response.status_code == 422
    assert response.json()["title"] == "Validation Failed"


def test_carrier_upload_and_download(client: TestClient) -> None:
    asset_id = uuid4()
    artifact_id = uuid4()
    _put_asset(client, asset_id)

    response = client.put(
        f"/cat/assets/{asset_id}/versions/1/carriers/{artifact_id}/versions/1.0",
        params={"lang": "knart", "fmt": "xml"},
        content=b"<knart/>",
        headers={"Content-Type": "application/octet-stream"},
    )
    assert response.status_code == 201
    assert response.json() == {"id": str(artifact_id), "version": "1.0"}

    carriers = client.get(f"/cat/assets/{asset_id}/versions/1/carriers").json()
    assert carriers[0]["representation"] == {"language": "KNART", "format": "XML"}

    base = f"/cat/assets/{asset_id}/versions/1/carriers/{artifact_id}/versions/1.0"
    view = client.get(base).json()
    assert base64.b64decode(view["content"]) == b"<knart/>"
    content = client.get(base + "/content")
    assert content.content == b"<knart/>"
    assert content.headers["content-type"].startswith("application/xml")


def test_canonical_carrier_negotiation(client: TestClient) -> None:
    asset_id = uuid4()
    _put_asset(client, asset_id)
    for lang, fmt, body in (("KNART", "XML", b"<knart/>"), ("HTML", "TXT", b"<p>hi</p>")):
        client.put(
            f"/cat/assets/{asset_id}/versions/1/carriers/{uuid4()}/versions/1",
            params={"lang": lang, "fmt": fmt},
            content=body,
        )

    base = f"/cat/assets/{asset_id}/versions/1/carrier"
    html = client.get(base, params={"xAccept": "text/html"}).json()
    assert base64.b64decode(html["content"]) == b"<p>hi</p>"
    knart = client.get(base + "/content", headers={"X-Accept": "model/knart+xml"})
    assert knart.content == b"<knart/>"
    rejected = client.get(base, params={"xAccept": "model/dmn+xml"})
    assert rejected.status_code == 406
    assert rejected.json()["preferences"] == "model/dmn+xml"


def test_surrogate_negotiation_redirects_to_html(client: TestClient) -> None:
    asset_id = uuid4()
    _put_asset(
        client,
        asset_id,
        surrogates=[
            {"representation": {"language": "HTML", "format": "TXT"}, "locator": "http://docs.test/a.html"}
        ],
    )
    url = f"/cat/assets/{asset_id}/versions/1"

    redirect = client.get(url, params={"xAccept": "text/html"}, follow_redirects=False)
    assert redirect.status_code == 303
    assert redirect.headers["location"] == "http://docs.test/a.html"

    canonical = client.get(url, params={"xAccept": f"lang={SURROGATE}"})
    assert canonical.status_code == 200
    assert canonical.json()["asset_id"]["id"] == str(asset_id)

    assert client.get(url, params={"xAccept": "model/knart+xml"}).status_code == 406


def test_bundle_route(client: TestClient) -> None:
    a, b = uuid4(), uuid4()
    _put_asset(client, a, links=[{"rel": IMPORTS, "href": {"id": str(b), "version": "1"}}])
    _put_asset(client, b)
    for asset_id, body in ((a, b"Hi!"), (b, b"There!")):
        client.put(f"/cat/assets/{asset_id}/versions/1/carriers/{uuid4()}/versions/1", content=body)

    response = client.get(f"/cat/assets/{a}/versions/1/bundle", params={"assetRelationship": IMPORTS})
    assert response.status_code == 200
    payload = response.json()
    assert payload["root"] == {"id": str(a), "version": "1"}
    assert sorted(base64.b64decode(c["content"]) for c in payload["carriers"]) == [b"Hi!", b"There!"]

    shallow = client.get(f"/cat/assets/{a}/versions/1/bundle", params={"depth": 0}).json()
    assert len(shallow["carriers"]) == 1


def test_inverse_links_on_request(client: TestClient) -> None:
    a, b = uuid4(), uuid4()
    _put_asset(client, a, links=[{"rel": IMPORTS, "href": {"id": str(b), "version": "1"}}])
    _put_asset(client, b)

    links = client.get(f"/cat/assets/{b}/versions/1", params={"inverses": "true"}).json()["links"]
    assert links == [{"rel": IMPORTS, "href": {"id": str(a), "version": "1"}, "inverse": True}]


def test_clear_all_forbidden_by_default(client: TestClient) -> None:
    response = client.delete("/cat/assets")
    assert response.status_code == 403
    assert response.json()["title"] == "Forbidden"


def test_clear_all_when_enabled() -> None:
    client = TestClient(create_app(_settings(), repository=_repository(allow_clear_all=True)))
    asset_id = uuid4()
    _put_asset(client, asset_id)

    assert client.delete("/cat/assets").status_code == 204
    assert client.get("/cat/assets").json() == []


def test_body_limit() -> None:
    client = TestClient(create_app(_settings(request_body_limit=16), repository=_repository()))
    asset_id = uuid4()
    response = client.put(
        f"/cat/assets/{asset_id}/versions/1/carriers/{uuid4()}/versions/1",
        content=b"x" * 64,
    )
    assert response.status_code == 413


def test_incoming_request_id_is_propagated(client: TestClient) -> None:
    response = client.get(f"/cat/assets/{uuid4()}", headers={"X-Request-Id": "caller-42"})
    assert response.status_code == 404
    assert response.headers["X-Request-Id"] == "caller-42"
    assert response.json()["trace_id"] == "caller-42"


def test_enriched_surrogate_locators_resolve() -> None:
    repository = _repository()
    client = TestClient(create_app(_settings(), repository=repository))
    asset_id, inline_id, uploaded_id = uuid4(), uuid4(), uuid4()
    _put_asset(
        client,
        asset_id,
        surrogates=[
            {
                "artifact_id": {"id": str(inline_id), "version": "1"},
                "representation": {"language": "HTML", "format": "TXT"},
                "inlined": "<p>About</p>",
            }
        ],
    )
    uploaded = client.put(
        f"/cat/assets/{asset_id}/versions/1/surrogate/{uploaded_id}/versions/2",
        params={"lang": "html", "fmt": "txt"},
        content=b"<p>Uploaded</p>",
    )
    assert uploaded.status_code == 201
    assert uploaded.json() == {"id": str(uploaded_id), "version": "2"}

    forms = client.get(f"/cat/assets/{asset_id}/versions/1").json()["surrogates"]
    locators = {f["artifact_id"]["id"]: f["locator"] for f in forms}
    assert locators[str(inline_id)].endswith(f"/surrogate/{inline_id}/versions/1/content")

    inline = client.get(locators[str(inline_id)])
    assert inline.status_code == 200
    assert inline.content == b"<p>About</p>"
    assert inline.headers["content-type"].startswith("text/html")
    assert client.get(locators[str(uploaded_id)]).content == b"<p>Uploaded</p>"

    canonical_id = repository.index.get_surrogate_for_asset(repository.get_asset(asset_id).asset_id)
    canonical = client.get(repository.index.get_location(canonical_id))
    assert canonical.status_code == 200
    assert canonical.json()["asset_id"]["id"] == str(asset_id)


def test_surrogate_endpoint_honours_preferences(client: TestClient) -> None:
    asset_id = uuid4()
    _put_asset(
        client,
        asset_id,
        surrogates=[
            {"representation": {"language": "HTML", "format": "TXT"}, "locator": "http://docs.test/a.html"}
        ],
    )
    url = f"/cat/assets/{asset_id}/versions/1/surrogate"

    redirect = client.get(url, params={"xAccept": "text/html"}, follow_redirects=False)
    assert redirect.status_code == 303
    assert redirect.headers["location"] == "http://docs.test/a.html"
    assert client.get(url).json()["asset_id"]["id"] == str(asset_id)
    assert client.get(url, headers={"X-Accept": "model/knart+xml"}).status_code == 406
