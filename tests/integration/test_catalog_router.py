"""Integration tests for vendors, products, IO universal and IO mappings."""

import json
import math

import pytest

from io_manager.auth.permissions import Permission


async def _vendor(client, headers, name="Acme", **extra):
    resp = await client.post("/api/vendors", json={"VendorName": name, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _product(client, headers, vendor_id, name="Tracker X"):
    resp = await client.post("/api/products", json={
        "VendorID": vendor_id, "ProductName": name, "TempTypeId": 2,
    }, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _io(client, headers, io_id, name=None, category="Digital"):
    body = {"IOID": io_id, "IOCategory": category}
    if name:
        body["IOName"] = name
    resp = await client.post("/api/io-universal", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _mapping(client, headers, io_id, **fields):
    resp = await client.post("/api/io-mappings", json={"IOID": io_id, **fields}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestVendors:
    async def test_acme_scenario(self, client, admin_headers):
        vendor = await _vendor(client, admin_headers, country="US")
        resp = await client.get(f"/api/vendors/{vendor['VendorID']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["VendorName"] == "Acme"

        resp = await client.delete(f"/api/vendors/{vendor['VendorID']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Vendor deleted successfully"

        resp = await client.get(f"/api/vendors/{vendor['VendorID']}", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Vendor not found"}

    async def test_name_required(self, client, admin_headers):
        resp = await client.post("/api/vendors", json={"Country": "DE"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "VendorName is required"

    async def test_update_partial(self, client, admin_headers):
        vendor = await _vendor(client, admin_headers, country="US", website="acme.example")
        resp = await client.put(
            f"/api/vendors/{vendor['VendorID']}",
            json={"Country": "CA"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["Country"] == "CA"
        assert data["VendorName"] == "Acme"
        assert data["Website"] == "acme.example"

    async def test_update_cannot_clear_name(self, client, admin_headers, audit_rows):
        vendor = await _vendor(client, admin_headers)
        resp = await client.put(
            f"/api/vendors/{vendor['VendorID']}",
            json={"VendorName": None, "Country": "CA"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "VendorName is required"

        resp = await client.get(f"/api/vendors/{vendor['VendorID']}", headers=admin_headers)
        assert resp.json()["data"]["VendorName"] == "Acme"
        assert resp.json()["data"]["Country"] is None
        assert [r.action for r in await audit_rows()] == ["CREATE"]

    async def test_update_missing(self, client, admin_headers):
        resp = await client.put("/api/vendors/999", json={"Country": "CA"}, headers=admin_headers)
        assert resp.status_code == 404

    async def test_search_and_order(self, client, admin_headers):
        for name, country in [("Zeta", "NO"), ("Alpha", "US"), ("Mid", "Norway")]:
            await _vendor(client, admin_headers, name=name, country=country)
        resp = await client.get("/api/vendors", headers=admin_headers)
        assert [v["VendorName"] for v in resp.json()["data"]] == ["Alpha", "Mid", "Zeta"]

        resp = await client.get("/api/vendors?search=nor", headers=admin_headers)
        assert [v["VendorName"] for v in resp.json()["data"]] == ["Mid"]

    async def test_referenced_vendor_not_deleted(self, client, admin_headers):
        vendor = await _vendor(client, admin_headers)
        await _product(client, admin_headers, vendor["VendorID"])
        resp = await client.delete(f"/api/vendors/{vendor['VendorID']}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Cannot delete vendor")

    async def test_mutations_audited_once_each(self, client, admin_headers, audit_rows):
        vendor = await _vendor(client, admin_headers)
        vid = vendor["VendorID"]
        await client.put(f"/api/vendors/{vid}", json={"VendorName": "Acme 2"}, headers=admin_headers)
        await client.delete(f"/api/vendors/{vid}", headers=admin_headers)

        rows = await audit_rows()
        assert [(r.action, r.module, r.record_id) for r in rows] == [
            ("CREATE", "Vendors", str(vid)),
            ("UPDATE", "Vendors", str(vid)),
            ("DELETE", "Vendors", str(vid)),
        ]
        assert json.loads(rows[1].old_value)["VendorName"] == "Acme"
        assert json.loads(rows[1].new_value) == {"VendorName": "Acme 2"}
        assert rows[2].new_value is None

    async def test_failed_mutation_not_audited(self, client, admin_headers, audit_rows):
        await client.delete("/api/vendors/999", headers=admin_headers)
        assert await audit_rows() == []


class TestPermissions:
    async def test_requires_authentication(self, client):
        resp = await client.get("/api/vendors")
        assert resp.status_code == 401

    async def test_read_only_user(self, client, make_user, bearer):
        user = await make_user("reader", [Permission.VENDORS_READ])
        headers = bearer(user)
        assert (await client.get("/api/vendors", headers=headers)).status_code == 200
        resp = await client.post("/api/vendors", json={"VendorName": "X"}, headers=headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Forbidden: Insufficient permissions"
        assert (await client.get("/api/products", headers=headers)).status_code == 403

    async def test_user_without_roles(self, client, make_user, bearer):
        headers = bearer(await make_user("nobody"))
        for path in ("/api/vendors", "/api/products", "/api/io-universal", "/api/io-mappings"):
            assert (await client.get(path, headers=headers)).status_code == 403


class TestPagination:
    @pytest.mark.parametrize("page,page_size", [(1, 3), (2, 3), (3, 3), (4, 3), (1, 10), (2, 4)])
    async def test_pagination_invariant(self, client, admin_headers, page, page_size):
        for i in range(7):
            await _vendor(client, admin_headers, name=f"Vendor {i:02d}")
        resp = await client.get(
            f"/api/vendors?page={page}&pageSize={page_size}", headers=admin_headers,
        )
        body = resp.json()
        assert len(body["data"]) <= page_size
        assert body["total"] == 7
        assert body["page"] == page
        assert body["pageSize"] == page_size
        assert body["totalPages"] == math.ceil(7 / page_size)

    async def test_default_page_size(self, client, admin_headers):
        resp = await client.get("/api/vendors", headers=admin_headers)
        assert resp.json()["pageSize"] == 10
        assert resp.json()["totalPages"] == 0

    async def test_invalid_page(self, client, admin_headers):
        resp = await client.get("/api/vendors?page=0", headers=admin_headers)
        assert resp.status_code == 400


class TestProducts:
    async def test_create_with_vendor_name(self, client, admin_headers):
        vendor = await _vendor(client, admin_headers)
        product = await _product(client, admin_headers, vendor["VendorID"])
        assert product["VendorName"] == "Acme"
        assert product["TempTypeId"] == 2

    async def test_unknown_vendor(self, client, admin_headers):
        resp = await client.post("/api/products", json={
            "VendorID": 42, "ProductName": "Ghost",
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert "Vendor 42" in resp.json()["error"]

    async def test_filter_and_search(self, client, admin_headers):
        acme = await _vendor(client, admin_headers)
        globex = await _vendor(client, admin_headers, name="Globex")
        await _product(client, admin_headers, acme["VendorID"], "A1")
        await _product(client, admin_headers, globex["VendorID"], "G1")
        await _product(client, admin_headers, globex["VendorID"], "G2")

        resp = await client.get(
            f"/api/products?vendorId={globex['VendorID']}", headers=admin_headers,
        )
        assert [p["ProductName"] for p in resp.json()["data"]] == ["G1", "G2"]

        resp = await client.get("/api/products?search=acm", headers=admin_headers)
        assert [p["ProductName"] for p in resp.json()["data"]] == ["A1"]
        assert resp.json()["total"] == 1

    async def test_move_to_other_vendor(self, client, admin_headers):
        acme = await _vendor(client, admin_headers)
        globex = await _vendor(client, admin_headers, name="Globex")
        product = await _product(client, admin_headers, acme["VendorID"])
        resp = await client.put(
            f"/api/products/{product['ProductID']}",
            json={"VendorID": globex["VendorID"]},
            headers=admin_headers,
        )
        assert resp.json()["data"]["VendorName"] == "Globex"


class TestIOUniversal:
    async def test_client_assigned_id(self, client, admin_headers):
        entry = await _io(client, admin_headers, 239, "Ignition")
        assert entry["IOID"] == 239
        resp = await client.get("/api/io-universal/239", headers=admin_headers)
        assert resp.json()["data"]["IOName"] == "Ignition"

    async def test_duplicate_id(self, client, admin_headers):
        await _io(client, admin_headers, 1)
        resp = await client.post("/api/io-universal", json={"IOID": 1}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "IOID already exists"

    async def test_category_filter_ordered_by_id(self, client, admin_headers):
        await _io(client, admin_headers, 30, category="Analog")
        await _io(client, admin_headers, 10, category="Digital")
        await _io(client, admin_headers, 20, category="Digital")
        resp = await client.get("/api/io-universal?category=Digital", headers=admin_headers)
        assert [e["IOID"] for e in resp.json()["data"]] == [10, 20]

    async def test_referenced_entry_not_deleted(self, client, admin_headers):
        await _io(client, admin_headers, 5)
        await _mapping(client, admin_headers, 5)
        resp = await client.delete("/api/io-universal/5", headers=admin_headers)
        assert resp.status_code == 400


class TestIOMappings:
    async def test_create_with_joined_names(self, client, admin_headers):
        vendor = await _vendor(client, admin_headers)
        product = await _product(client, admin_headers, vendor["VendorID"])
        await _io(client, admin_headers, 1, "Ignition")
        mapping = await _mapping(
            client, admin_headers, 1,
            VendorID=vendor["VendorID"], ProductID=product["ProductID"],
            IOCode="DIN1", MinValue=0, MaxValue="1", EventOnChange=True,
        )
        assert mapping["VendorName"] == "Acme"
        assert mapping["ProductName"] == "Tracker X"
        assert mapping["UniversalIOName"] == "Ignition"
        assert mapping["MinValue"] == "0"
        assert mapping["EventOnChange"] is True

    async def test_unknown_io(self, client, admin_headers):
        resp = await client.post("/api/io-mappings", json={"IOID": 77}, headers=admin_headers)
        assert resp.status_code == 400

    async def test_io_required(self, client, admin_headers):
        resp = await client.post("/api/io-mappings", json={"IOCode": "X"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "IOID is required"

    async def test_unknown_product(self, client, admin_headers):
        await _io(client, admin_headers, 1)
        resp = await client.post(
            "/api/io-mappings", json={"IOID": 1, "ProductID": 9}, headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_filters(self, client, admin_headers):
        vendor = await _vendor(client, admin_headers)
        await _io(client, admin_headers, 1)
        await _io(client, admin_headers, 2)
        await _mapping(client, admin_headers, 1, VendorID=vendor["VendorID"], IOName="Speed")
        await _mapping(client, admin_headers, 2, IOName="Fuel", ParameterGroup="Engine")

        resp = await client.get(
            f"/api/io-mappings?vendorId={vendor['VendorID']}", headers=admin_headers,
        )
        assert [m["IOName"] for m in resp.json()["data"]] == ["Speed"]
        resp = await client.get("/api/io-mappings?ioId=2", headers=admin_headers)
        assert [m["IOName"] for m in resp.json()["data"]] == ["Fuel"]
        resp = await client.get("/api/io-mappings?search=engine", headers=admin_headers)
        assert resp.json()["total"] == 1

    async def test_tree(self, client, admin_headers):
        await _io(client, admin_headers, 20, "Battery")
        await _io(client, admin_headers, 10)
        await _mapping(client, admin_headers, 20, IOCode="B1")
        await _mapping(client, admin_headers, 10, IOCode="A1")
        await _mapping(client, admin_headers, 20, IOCode="B2")

        resp = await client.get("/api/io-mappings/tree", headers=admin_headers)
        assert resp.status_code == 200
        groups = resp.json()["data"]
        assert [g["IOID"] for g in groups] == [10, 20]
        assert groups[0]["IOName"] == "IO 10"
        assert groups[1]["IOName"] == "Battery"
        assert [m["IOCode"] for m in groups[1]["Mappings"]] == ["B1", "B2"]

    async def test_update_and_delete(self, client, admin_headers, audit_rows):
        await _io(client, admin_headers, 1)
        mapping = await _mapping(client, admin_headers, 1, IOName="Old")
        mid = mapping["MappingID"]
        resp = await client.put(
            f"/api/io-mappings/{mid}", json={"IOName": "New"}, headers=admin_headers,
        )
        assert resp.json()["data"]["IOName"] == "New"
        resp = await client.delete(f"/api/io-mappings/{mid}", headers=admin_headers)
        assert resp.status_code == 200
        assert (await client.get(f"/api/io-mappings/{mid}", headers=admin_headers)).status_code == 404
        modules = {r.module for r in await audit_rows()}
        assert modules == {"IOUniversal", "IOMapping"}
