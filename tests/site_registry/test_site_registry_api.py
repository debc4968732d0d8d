import pytest
from fastapi.testclient import TestClient

import services.site_registry.app as registry_app
from services.site_registry.app import create_app
from services.site_registry.config import SiteRegistryConfig
from services.site_registry.errors import SiteStorageError
from services.site_registry.service import SiteRegistryService
from services.site_registry.sql_repository import SqlSiteRepository


def test_build_serve_info_delete_flow(client):
    build = client.post("/build/demo", json={"html": "<p>hi</p>"})
    assert build.status_code == 201
    payload = build.json()
    assert payload["message"] == "Site built successfully"
    assert payload["siteId"] == "demo"
    assert payload["metadata"] == {}
    assert payload["created"] == payload["updated"]

    serve = client.get("/sites/demo")
    assert serve.status_code == 200
    assert serve.headers["content-type"].startswith("text/html")
    assert serve.text == "<p>hi</p>"

    info = client.get("/sites/demo/info")
    assert info.status_code == 200
    assert info.json() == {
        "siteId": "demo",
        "metadata": {},
        "created": payload["created"],
        "updated": payload["updated"],
    }

    deleted = client.delete("/sites/demo")
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Site deleted successfully"}

    missing = client.get("/sites/demo")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Site not found"}


def test_rebuild_replaces_content_and_keeps_created(client, clock):
    first = client.post("/build/demo", json={"html": "<p>one</p>", "metadata": {"title": "One"}}).json()
    clock.advance(30)
    second = client.post("/build/demo", json={"html": "<p>two</p>", "metadata": {"lang": "en"}}).json()

    assert second["created"] == first["created"]
    assert second["updated"] != second["created"]
    assert second["metadata"] == {"lang": "en"}
    assert client.get("/sites/demo").text == "<p>two</p>"
    assert client.get("/sites/demo/info").json()["metadata"] == {"lang": "en"}


def test_list_sites_excludes_html(client):
    client.post("/build/alpha", json={"html": "<p>" + "a" * 50_000 + "</p>", "metadata": {"n": 1}})
    client.post("/build/beta", json={"html": "<p>b</p>"})

    response = client.get("/sites")
    assert response.status_code == 200
    sites = response.json()["sites"]
    assert {site["siteId"] for site in sites} == {"alpha", "beta"}
    for site in sites:
        assert "html" not in site
        assert set(site) == {"siteId", "metadata", "created", "updated"}


def test_invalid_site_id_is_rejected_on_every_route(client):
    for method, path in [
        ("post", "/build/bad.id"),
        ("get", "/sites/bad.id"),
        ("get", "/sites/bad.id/info"),
        ("delete", "/sites/bad.id"),
        ("get", "/sites/bad%20id"),
    ]:
        kwargs = {"json": {"html": "<p>x</p>"}} if method == "post" else {}
        response = getattr(client, method)(path, **kwargs)
        assert response.status_code == 400, path
        assert response.json() == {"error": "Invalid site ID"}
    assert client.get("/sites").json() == {"sites": []}


def test_build_requires_html(client):
    for body in [{}, {"html": ""}, {"metadata": {"a": 1}}, {"html": None}]:
        response = client.post("/build/demo", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "HTML content is required"}

    no_body = client.post("/build/demo")
    assert no_body.status_code == 400
    assert no_body.json() == {"error": "HTML content is required"}
    assert client.get("/sites/demo").status_code == 404


def test_malformed_body_is_a_client_error(client):
    response = client.post("/build/demo", json={"html": "<p>x</p>", "metadata": ["not", "a", "map"]})
    assert response.status_code == 400
    assert "error" in response.json()

    response = client.post(
        "/build/demo",
        content="not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400


def test_missing_site_returns_404(client):
    assert client.get("/sites/ghost").status_code == 404
    assert client.get("/sites/ghost/info").json() == {"error": "Site not found"}
    deleted = client.delete("/sites/ghost")
    assert deleted.status_code == 404
    assert deleted.json() == {"error": "Site not found"}


def test_storage_failure_returns_generic_500(tmp_path):
    repo = SqlSiteRepository.from_url(f"sqlite:///{tmp_path / 'missing' / 'sites.db'}")
    client = TestClient(create_app(registry=SiteRegistryService(repo), config=SiteRegistryConfig()))

    expected = {
        ("post", "/build/demo"): "Failed to build site",
        ("get", "/sites/demo"): "Failed to serve site",
        ("get", "/sites/demo/info"): "Failed to fetch site information",
        ("get", "/sites"): "Failed to fetch sites",
        ("delete", "/sites/demo"): "Failed to delete site",
    }
    for (method, path), message in expected.items():
        kwargs = {"json": {"html": "<p>x</p>"}} if method == "post" else {}
        response = getattr(client, method)(path, **kwargs)
        assert response.status_code == 500, path
        assert response.json() == {"error": message}


def test_root_lists_capabilities(client):
    response = client.get("/")
    assert response.status_code == 200
    payload = response.json()
    assert payload["project"] == "Dynamic Website Builder"
    assert "/build/:siteId" in payload["endpoints"]


def test_request_id_is_echoed_or_generated(client):
    echoed = client.get("/", headers={"X-Request-ID": "req-123"})
    assert echoed.headers["X-Request-ID"] == "req-123"

    generated = client.get("/sites")
    assert generated.headers["X-Request-ID"]


def test_cors_headers_present(client):
    response = client.get("/sites", headers={"Origin": "https://example.com"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_module_app_contract():
    client = TestClient(registry_app.app)
    response = client.post("/build/module-app", json={"html": "<h1>ok</h1>", "metadata": {"x": 1}})
    assert response.status_code == 201
    assert client.get("/sites/module-app").text == "<h1>ok</h1>"
    assert client.delete("/sites/module-app").status_code == 200


def _post_raw(client, path, body):
    return client.post(path, content=body, headers={"content-type": "application/json"})


def test_non_finite_metadata_is_rejected_and_listing_survives(client):
    client.post("/build/good", json={"html": "<p>ok</p>", "metadata": {"score": 1}})

    for body in [
        '{"html": "<p>x</p>", "metadata": {"score": NaN}}',
        '{"html": "<p>x</p>", "metadata": {"score": Infinity}}',
        '{"html": "<p>x</p>", "metadata": {"deep": {"list": [1, -Infinity]}}}',
    ]:
        response = _post_raw(client, "/build/bad", body)
        assert response.status_code == 400
        assert response.json() == {"error": "metadata must not contain NaN or Infinity"}

    assert client.get("/sites/bad").status_code == 404
    listing = client.get("/sites")
    assert listing.status_code == 200
    assert [site["siteId"] for site in listing.json()["sites"]] == ["good"]
    assert client.get("/sites/good/info").json()["metadata"] == {"score": 1}


def test_startup_initializes_schema(tmp_path):
    repo = SqlSiteRepository.from_url(f"sqlite:///{tmp_path / 'sites.db'}")
    with TestClient(create_app(registry=SiteRegistryService(repo), config=SiteRegistryConfig())) as client:
        assert client.post("/build/demo", json={"html": "<p>hi</p>"}).status_code == 201
    repo.dispose()


def test_startup_fails_when_storage_is_unreachable(tmp_path):
    repo = SqlSiteRepository.from_url(f"sqlite:///{tmp_path / 'missing' / 'sites.db'}")
    app = create_app(registry=SiteRegistryService(repo), config=SiteRegistryConfig())
    with pytest.raises(SiteStorageError):
        with TestClient(app):
            pass


def test_schema_init_can_be_left_to_the_caller(tmp_path):
    repo = SqlSiteRepository.from_url(f"sqlite:///{tmp_path / 'missing' / 'sites.db'}")
    app = create_app(registry=SiteRegistryService(repo), config=SiteRegistryConfig(), init_schema=False)
    with TestClient(app) as client:
        assert client.get("/").status_code == 200


def test_module_app_is_built_once_on_access():
    assert registry_app.app is registry_app.app
    assert registry_app.get_app() is registry_app.app
    with pytest.raises(AttributeError):
        registry_app.not_an_attribute
