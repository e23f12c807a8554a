"""
Tests for the HTTP surface the host talks to.
"""
import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import ROWS, TABLES
from hub import api_nodes


CREDS = {"glideappsApi": {"apiToken": "tok"}}


def _handler(request):
    if request.headers.get("Authorization") != "Bearer tok":
        return httpx.Response(401, json={"message": "Unauthorized"})
    path = request.url.path
    if path == "/apps":
        return httpx.Response(200, json=[{"id": "app1", "name": "App One"}])
    if path == "/apps/app1/tables":
        return httpx.Response(200, json={"data": TABLES})
    if path.endswith("/schema"):
        return httpx.Response(404)
    if path == "/api/function/queryTables":
        return httpx.Response(200, json=[{"rows": ROWS}])
    if path == "/api/function/mutateTables":
        return httpx.Response(200, json=[{"rowID": "r-new"}])
    return httpx.Response(404)


@pytest.fixture
def client(monkeypatch):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        api_nodes.httpx, "AsyncClient", lambda *a, **kw: real_client(transport=httpx.MockTransport(_handler))
    )
    app = FastAPI()
    app.include_router(api_nodes.router)
    return TestClient(app)


def test_describe_node(client):
    r = client.get("/api/nodes/glide")
    assert r.status_code == 200
    assert r.json()["name"] == "glide"


def test_describe_unknown_node(client):
    assert client.get("/api/nodes/nope").status_code == 404


def test_tables_options(client):
    r = client.post("/api/nodes/options/getTablesDropdown", json={"parameters": {"appId": "app1"}, "credentials": CREDS})
    assert r.status_code == 200
    assert r.json() == [{"name": "Table One", "value": "tbl1"}, {"name": "Table Two", "value": "tbl2"}]


def test_options_with_bad_token_returns_error_option(client):
    r = client.post("/api/nodes/options/getAppsDropdown", json={"credentials": {"glideappsApi": {"apiToken": "x"}}})
    assert r.status_code == 200
    body = r.json()
    assert len(body) == 1
    assert body[0]["value"] == ""
    assert "Unauthorized" in body[0]["name"]


def test_unknown_options_method(client):
    r = client.post("/api/nodes/options/getNothing", json={"credentials": CREDS})
    assert r.status_code == 404


def test_execute_rows(client):
    r = client.post(
        "/api/nodes/execute",
        json={
            "parameters": {"resource": "row", "operation": "rowGetAll", "appId": "app1", "tableName": "tbl1"},
            "credentials": CREDS,
        },
    )
    assert r.status_code == 200
    assert len(r.json()["items"][0]["rows"]) == 3


def test_execute_add_row(client):
    r = client.post(
        "/api/nodes/execute",
        json={
            "parameters": {
                "resource": "row",
                "operation": "rowCreate",
                "appId": "app1",
                "tableName": "tbl1",
                "rowData": '{"Name": "Dan"}',
            },
            "credentials": CREDS,
        },
    )
    assert r.json() == {"items": [{"result": [{"rowID": "r-new"}]}]}


def test_execute_validation_error_is_400(client):
    r = client.post(
        "/api/nodes/execute",
        json={
            "parameters": {"resource": "row", "operation": "rowCreate", "appId": "app1", "tableName": "tbl1", "rowData": "{"},
            "credentials": CREDS,
        },
    )
    assert r.status_code == 400


def test_execute_upstream_error_is_502(client):
    r = client.post(
        "/api/nodes/execute",
        json={"parameters": {"resource": "table", "operation": "tableGetAll", "appId": "app1"}, "credentials": {"glideappsApi": {"apiToken": "x"}}},
    )
    assert r.status_code == 502


def test_credential_check(client):
    r = client.post("/api/nodes/credentials/test", json={"type": "glideappsApi", "data": {"apiToken": "tok"}})
    assert r.json()["status"] == "OK"


def test_credential_check_unknown_type(client):
    r = client.post("/api/nodes/credentials/test", json={"type": "nope", "data": {}})
    assert r.status_code == 400


def test_webapp_mounts_router():
    from webapp import app

    c = TestClient(app)
    assert c.get("/health").json() == {"status": "ok"}
    assert c.get("/api/nodes/glide").status_code == 200


def test_list_nodes(client):
    r = client.get("/api/nodes")
    assert r.status_code == 200
    assert [d["name"] for d in r.json()] == ["glide"]


def test_execute_bad_row_limit_is_400(client):
    r = client.post(
        "/api/nodes/execute",
        json={
            "parameters": {"resource": "row", "operation": "rowGetAll", "appId": "app1", "tableName": "tbl1", "rowLimit": "lots"},
            "credentials": CREDS,
        },
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Parameter 'rowLimit' must be a number"
