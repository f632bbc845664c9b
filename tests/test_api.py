"""Tests for the HTTP API, local-only flows and error mapping."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def api():
    from server.api.api_app import app

    with TestClient(app) as client:
        yield client


def _add(api, **fields):
    resp = api.post("/documents", json=fields)
    assert resp.status_code == 201
    return resp.json()


class TestDocuments:
    def test_empty_list(self, api):
        resp = api.get("/documents")
        assert resp.status_code == 200
        assert resp.json() == {"documents": [], "total": 0, "status": "local-only"}

    def test_add_and_get(self, api):
        doc = _add(api, kind="received", dtsNo="R-1", receivedBy="Ana", date="2024-02-01")
        assert doc["id"]
        assert doc["receivedBy"] == "Ana"
        assert api.get(f"/documents/{doc['id']}").json() == doc

    def test_unknown_id(self, api):
        assert api.get("/documents/nope").status_code == 404
        assert api.put("/documents/nope", json={"details": "x"}).status_code == 404

    def test_filtering(self, api):
        _add(api, kind="forward", details="Budget memo", date="2024-01-10")
        _add(api, kind="received", details="Budget reply", date="2024-01-11")
        body = api.get("/documents", params={"kind": "received", "q": "BUDGET"}).json()
        assert [d["details"] for d in body["documents"]] == ["Budget reply"]
        assert api.get("/documents", params={"date": "2024-01-10"}).json()["total"] == 1

    def test_invalid_kind(self, api):
        assert api.get("/documents", params={"kind": "archived"}).status_code == 422

    def test_update(self, api):
        doc = _add(api, details="draft")
        resp = api.put(f"/documents/{doc['id']}", json={"kind": "forward", "details": "final", "toOffice": "HR"})
        assert resp.status_code == 200
        assert resp.json()["id"] == doc["id"]
        assert api.get(f"/documents/{doc['id']}").json()["toOffice"] == "HR"

    def test_delete(self, api):
        a = _add(api, details="a")
        _add(api, details="b")
        resp = api.request("DELETE", "/documents", json={"ids": [a["id"], "missing"]})
        assert resp.json() == {"removed": 1}
        assert api.get("/documents").json()["total"] == 1

    def test_import(self, api):
        resp = api.post("/documents/import", json={"rows": [
            {"DTS No": "T-1", "Details": "Leave", "Type": "received"},
            {"DTS No": "T-2", "Details": "Travel"},
        ]})
        assert resp.status_code == 200
        assert resp.json()["imported"] == 2
        assert [d["dtsNo"] for d in api.get("/documents").json()["documents"]] == ["T-2", "T-1"]

    def test_import_without_valid_rows(self, api):
        resp = api.post("/documents/import", json={"rows": [{"DTS No": "", "Details": ""}]})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "No valid records found"

    def test_documents_survive_restart(self):
        from server.api.api_app import app

        with TestClient(app) as first:
            _add(first, details="persisted")
        with TestClient(app) as restarted:
            assert [d["details"] for d in restarted.get("/documents").json()["documents"]] == ["persisted"]


class TestRemoteAndSession:
    def test_status_without_config(self, api):
        assert api.get("/remote/status").json() == {"enabled": False, "status": "local-only", "endpoint": None, "user": None}

    def test_incomplete_config(self, api):
        assert api.put("/remote/config", json={"url": "https://x.supabase.co", "anonKey": ""}).status_code == 400

    def test_save_and_clear_config(self, api):
        resp = api.put("/remote/config", json={"url": " https://x.supabase.co ", "anonKey": "anon"})
        assert resp.status_code == 200
        assert resp.json()["enabled"] is True
        assert resp.json()["endpoint"] == "https://x.supabase.co"

        resp = api.delete("/remote/config")
        assert resp.json()["enabled"] is False

    def test_connection_test_requires_sign_in(self, api):
        resp = api.post("/remote/test", json={"url": "https://x.supabase.co", "anonKey": "anon"})
        assert resp.status_code == 401

    def test_connection_test_without_config(self, api):
        assert api.post("/remote/test").status_code == 400

    def test_sign_in_without_config(self, api):
        assert api.post("/session/sign-in", json={"email": "a@b.c", "password": "x"}).status_code == 400

    def test_session_signed_out(self, api):
        assert api.get("/session").json() == {"signed_in": False, "user": None, "status": "local-only"}

    def test_sign_out_with_clear_cache(self, api):
        _add(api, details="gone")
        resp = api.post("/session/sign-out", params={"clear_cache": True})
        assert resp.json()["signed_in"] is False
        assert api.get("/documents").json()["total"] == 0

    def test_sign_out_keeps_local_documents(self, api):
        _add(api, details="kept")
        resp = api.post("/session/sign-out")
        assert resp.json()["signed_in"] is False
        assert api.get("/documents").json()["total"] == 1


class TestApiKey:
    def test_key_enforced_when_configured(self, api, monkeypatch):
        monkeypatch.setenv("APP_API_KEY", "topsecret")
        assert api.get("/documents").status_code == 401
        assert api.get("/documents", headers={"X-API-Key": "wrong"}).status_code == 401
        assert api.get("/documents", headers={"X-API-Key": "topsecret"}).status_code == 200
