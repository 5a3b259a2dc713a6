"""
Integration tests for the drafts HTTP API: the full path from request
through the facade to local or database storage.
"""

import asyncio

import httpx

from app.main import app

DRAFT_PAYLOAD = {
    "businessId": "b1",
    "type": "invoice",
    "invoiceNumber": "INV-2026-001",
    "clientId": "c1",
    "issueDate": "2026-10-19",
    "dueDate": "2026-11-18",
    "currency": "eur",
    "taxRate": 19,
    "notes": "Net 30",
    "templateId": "classic",
    "items": [{"description": "Consulting", "quantity": 3, "price": 120}],
}


def _provision(client, headers):
    response = client.post("/api/admin/drafts/table", headers=headers("admin", role="ADMIN"))
    assert response.status_code == 200
    return response.json()


class TestAuthentication:
    def test_anonymous_requests_are_rejected(self, client):
        assert client.get("/api/drafts").status_code == 401
        assert client.post("/api/drafts", json=DRAFT_PAYLOAD).status_code == 401
        assert client.delete("/api/drafts/d1").status_code == 401
        assert client.get("/api/drafts/storage").status_code == 401

    def test_invalid_token_is_rejected(self, client):
        response = client.get("/api/drafts", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_admin_routes_need_admin_role(self, client, headers):
        assert client.get("/api/admin/drafts/status", headers=headers("u1")).status_code == 403
        assert client.post("/api/admin/drafts/table", headers=headers("u1")).status_code == 403
        assert client.post("/api/admin/drafts/migrate", headers=headers("u1")).status_code == 403


class TestLocalOnlyFlow:
    """No table yet: drafts live on this device."""

    def test_save_then_fetch(self, client, headers):
        created = client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=headers("u1"))

        assert created.status_code == 200
        body = created.json()
        assert len(body["id"]) == 36
        assert body["userId"] == "u1"
        assert body["currency"] == "EUR"
        assert body["createdAt"] == body["updatedAt"]

        fetched = client.get(f"/api/drafts/{body['id']}", headers=headers("u1"))
        assert fetched.status_code == 200
        assert fetched.json()["invoiceNumber"] == "INV-2026-001"
        assert fetched.json()["items"][0]["description"] == "Consulting"

        mode = client.get("/api/drafts/storage", headers=headers("u1"))
        assert mode.json() == {"mode": "local_only"}

    def test_resave_replaces_in_place(self, client, headers):
        first = client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=headers("u1")).json()

        second = client.post(
            "/api/drafts", json={**DRAFT_PAYLOAD, "id": first["id"], "notes": "Net 14"}, headers=headers("u1")
        ).json()
        drafts = client.get("/api/drafts", headers=headers("u1")).json()

        assert second["id"] == first["id"]
        assert second["updatedAt"] >= first["updatedAt"]
        assert [d["notes"] for d in drafts] == ["Net 14"]

    def test_unknown_draft_is_404(self, client, headers):
        assert client.get("/api/drafts/missing", headers=headers("u1")).status_code == 404

    def test_delete_unknown_draft_is_not_an_error(self, client, headers):
        response = client.delete("/api/drafts/missing", headers=headers("u1"))

        assert response.status_code == 200
        assert response.json() == {"deleted": False, "message": "Draft not found"}

    def test_list_filters_by_type(self, client, headers):
        client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=headers("u1"))
        offer = client.post("/api/drafts", json={**DRAFT_PAYLOAD, "type": "offer"}, headers=headers("u1")).json()

        offers = client.get("/api/drafts", params={"type": "offer"}, headers=headers("u1")).json()

        assert [d["id"] for d in offers] == [offer["id"]]

    def test_invalid_payload_is_422(self, client, headers):
        response = client.post(
            "/api/drafts", json={**DRAFT_PAYLOAD, "issueDate": "19/10/2026"}, headers=headers("u1")
        )
        assert response.status_code == 422


class TestRemoteFlow:
    """With the table provisioned before first use, drafts go to the database."""

    def test_save_goes_to_database(self, client, headers, stores):
        _provision(client, headers)

        created = client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=headers("u1")).json()

        assert client.get("/api/drafts/storage", headers=headers("u1")).json() == {"mode": "remote_capable"}
        assert stores.local.path_for("u1").exists() is False
        assert client.get(f"/api/drafts/{created['id']}", headers=headers("u1")).status_code == 200

    def test_other_users_cannot_see_drafts(self, client, headers):
        _provision(client, headers)
        created = client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=headers("u1")).json()

        assert client.get("/api/drafts", headers=headers("u2")).json() == []
        assert client.get(f"/api/drafts/{created['id']}", headers=headers("u2")).status_code == 404
        assert client.delete(f"/api/drafts/{created['id']}", headers=headers("u2")).json()["deleted"] is False

    def test_delete(self, client, headers):
        _provision(client, headers)
        created = client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=headers("u1")).json()

        response = client.delete(f"/api/drafts/{created['id']}", headers=headers("u1"))

        assert response.json() == {"deleted": True, "message": "Draft deleted successfully"}
        assert client.get("/api/drafts", headers=headers("u1")).json() == []


class TestProvisionAndMigrate:
    """Local drafts written before the table existed are migrated by an admin."""

    def test_create_table_twice(self, client, headers):
        first = _provision(client, headers)
        second = _provision(client, headers)

        assert first["created"] is True
        assert second == {
            "table_exists": True,
            "created": False,
            "message": "The invoice_drafts table already exists.",
        }

    def test_status_before_and_after(self, client, headers):
        admin = headers("admin", role="ADMIN")
        client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=admin)

        before = client.get("/api/admin/drafts/status", headers=admin).json()
        _provision(client, headers)
        after = client.get("/api/admin/drafts/status", headers=admin).json()

        assert before == {"table_exists": False, "local_drafts": 1}
        assert after == {"table_exists": True, "local_drafts": 1}

    def test_migrate_without_table_is_unavailable(self, client, headers):
        admin = headers("admin", role="ADMIN")
        client.post("/api/drafts", json=DRAFT_PAYLOAD, headers=admin)

        result = client.post("/api/admin/drafts/migrate", headers=admin).json()

        assert result["outcome"] == "unavailable"
        assert result["migrated"] == 0

    def test_local_drafts_follow_the_user_to_the_database(self, client, headers, stores):
        admin = headers("admin", role="ADMIN")
        local = [
            client.post("/api/drafts", json={**DRAFT_PAYLOAD, "invoiceNumber": str(n)}, headers=admin).json()
            for n in range(2)
        ]
        assert client.get("/api/drafts/storage", headers=admin).json() == {"mode": "local_only"}

        _provision(client, headers)
        result = client.post("/api/admin/drafts/migrate", headers=admin).json()

        assert result["outcome"] == "success"
        assert result["migrated"] == 2
        assert client.get("/api/drafts/storage", headers=admin).json() == {"mode": "remote_capable"}
        listed = client.get("/api/drafts", headers=admin).json()
        assert {d["id"] for d in listed} == {d["id"] for d in local}
        assert stores.local.path_for("admin").exists()

    def test_refresh_picks_up_new_table(self, client, headers):
        client.get("/api/drafts", headers=headers("u1"))
        assert client.get("/api/drafts/storage", headers=headers("u1")).json() == {"mode": "local_only"}

        _provision(client, headers)
        refreshed = client.post("/api/drafts/storage/refresh", headers=headers("u1"))

        assert refreshed.json() == {"mode": "remote_capable"}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": True}


class TestOverlappingRequests:
    """A quick double refresh must not surface as a server error."""

    async def test_superseded_list_is_a_conflict(self, provisioned, stores, headers, monkeypatch):
        original = stores.remote.list
        calls = []

        async def _slow_first(user_id, draft_type=None):
            calls.append(user_id)
            if len(calls) == 1:
                await asyncio.sleep(0.3)
            return await original(user_id, draft_type)

        monkeypatch.setattr(stores.remote, "list", _slow_first)

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            stale = asyncio.ensure_future(ac.get("/api/drafts", headers=headers("u1")))
            await asyncio.sleep(0.1)
            fresh = await ac.get("/api/drafts", headers=headers("u1"))
            stale_response = await stale

        assert fresh.status_code == 200
        assert fresh.json() == []
        assert stale_response.status_code == 409
        assert "retry" in stale_response.json()["detail"]
