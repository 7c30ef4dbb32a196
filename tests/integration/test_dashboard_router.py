"""Integration tests for the dashboard, health check and error envelope."""

from io_manager.auth.permissions import Permission


class TestDashboard:
    async def _seed(self, client, headers):
        resp = await client.post("/api/vendors", json={"VendorName": "Acme"}, headers=headers)
        vendor_id = resp.json()["data"]["VendorID"]
        await client.post("/api/products", json={
            "VendorID": vendor_id, "ProductName": "Tracker",
        }, headers=headers)
        await client.post("/api/io-universal", json={"IOID": 1, "IOName": "Ignition"},
                          headers=headers)

    async def test_admin_sees_everything(self, client, admin_headers):
        await self._seed(client, admin_headers)
        resp = await client.get("/api/dashboard/stats", headers=admin_headers)
        assert resp.status_code == 200
        stats = resp.json()["data"]
        assert stats["vendors"] == 1
        assert stats["products"] == 1
        assert stats["ioUniversal"] == 1
        assert stats["ioMappings"] == 0
        assert stats["users"] == 1
        assert stats["roles"] == 1
        assert stats["auditLogs"] == 3

    async def test_non_admin_sees_catalog_only(self, client, admin_headers, make_user, bearer):
        await self._seed(client, admin_headers)
        headers = bearer(await make_user("clerk", [Permission.VENDORS_READ]))
        stats = (await client.get("/api/dashboard/stats", headers=headers)).json()["data"]
        assert stats["vendors"] == 1
        assert stats["users"] == 0
        assert stats["roles"] == 0
        assert stats["auditLogs"] == 0

    async def test_requires_authentication(self, client):
        assert (await client.get("/api/dashboard/stats")).status_code == 401


class TestAppSurface:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_unknown_route_uses_error_envelope(self, client):
        resp = await client.get("/api/nothing-here")
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert "error" in body

    async def test_invalid_token(self, client):
        resp = await client.get("/api/vendors", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Unauthorized"}
