"""
End-to-end tests through the HTTP routes.
"""
from conftest import from_data_url
from core.converters import PDF_MIME, PNG_MIME


def create_location(client, name, location_type="shelf", parent_id=None):
    resp = client.post(
        "/locations/",
        json={"name": name, "location_type": location_type, "parent_id": parent_id},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_item(client, name, quantity=0, **fields):
    resp = client.post("/items/", json={"name": name, "quantity": quantity, **fields})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestLocationRoutes:

    def test_create_and_list(self, client):
        shelf = create_location(client, "Shelf A")
        create_location(client, "Box", "box", shelf["id"])

        body = client.get("/locations/").json()
        assert [loc["name"] for loc in body] == ["Box", "Shelf A"]
        assert shelf["qr_code_id"] is None
        assert shelf["location_type"] == "shelf"

    def test_invalid_parent(self, client):
        resp = client.post("/locations/", json={"name": "Box", "location_type": "box", "parent_id": 77})
        assert resp.status_code == 400
        assert resp.json()["error"] == "InvalidParent"

    def test_reparenting_is_rejected(self, client):
        shelf = create_location(client, "Shelf")
        box = create_location(client, "Box", "box", shelf["id"])
        resp = client.patch(f"/locations/{box['id']}", json={"parent_id": None})
        assert resp.status_code == 422

    def test_rename(self, client):
        shelf = create_location(client, "Shelf")
        resp = client.patch(f"/locations/{shelf['id']}", json={"name": "Top shelf"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Top shelf"

    def test_tree_and_path(self, client):
        shelf = create_location(client, "Shelf")
        box = create_location(client, "Box", "box", shelf["id"])
        comp = create_location(client, "Left", "compartment", box["id"])

        tree = client.get("/locations/tree").json()
        assert tree[0]["children"][0]["children"][0]["id"] == comp["id"]

        path = client.get(f"/locations/{comp['id']}/path").json()
        assert [p["name"] for p in path] == ["Shelf", "Box", "Left"]

    def test_delete_reports_detached_items(self, client):
        shelf = create_location(client, "Shelf")
        box = create_location(client, "Box", "box", shelf["id"])
        item = create_item(client, "Glue", 1, location_id=box["id"])

        resp = client.delete(f"/locations/{shelf['id']}")
        assert resp.status_code == 200
        assert resp.json() == {
            "deleted_location_ids": [shelf["id"], box["id"]],
            "detached_item_ids": [item["id"]],
        }
        assert client.get(f"/items/{item['id']}").json()["location_id"] is None
        assert client.get(f"/locations/{box['id']}").status_code == 404

    def test_not_found_body(self, client):
        resp = client.get("/locations/123")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Location 123 not found", "error": "NotFound"}


class TestQRRoutes:

    def test_generate_and_resolve(self, client):
        box = create_location(client, "Box", "box")
        resp = client.post(f"/qrcode/locations/{box['id']}")
        assert resp.status_code == 200
        body = resp.json()
        mime, png = from_data_url(body["qr_data"])
        assert mime == PNG_MIME
        assert png.startswith(b"\x89PNG")

        again = client.post(f"/qrcode/locations/{box['id']}").json()
        assert again["qr_code_id"] == body["qr_code_id"]

        found = client.get(f"/locations/by-qr/{body['qr_code_id']}").json()
        assert found["id"] == box["id"]

    def test_unknown_code(self, client):
        resp = client.get("/locations/by-qr/LOC-NOPE")
        assert resp.status_code == 404

    def test_batch(self, client):
        a = create_location(client, "A")
        b = create_location(client, "B")
        resp = client.post("/qrcode/batch", json={"location_ids": [a["id"], 999, b["id"]]})
        assert [r["id"] for r in resp.json()] == [a["id"], b["id"]]

    def test_empty_batch(self, client):
        assert client.post("/qrcode/batch", json={"location_ids": []}).status_code == 422


class TestItemRoutes:

    def test_quantity_flow(self, client):
        item = create_item(client, "Resistor", 5, min_quantity=2)
        assert item["is_low_stock"] is False

        resp = client.post(f"/items/{item['id']}/quantity", json={"change": -3, "operation_type": "remove"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["quantity"] == 2
        assert body["is_low_stock"] is True
        assert body["log"]["quantity_after"] == 2

        resp = client.post(f"/items/{item['id']}/quantity", json={"change": -3, "operation_type": "remove"})
        assert resp.status_code == 409
        assert resp.json()["error"] == "InvalidQuantity"

        history = client.get(f"/items/{item['id']}/history").json()
        assert [h["quantity_after"] for h in history] == [5, 2]

    def test_patch_quantity_is_rejected(self, client):
        item = create_item(client, "Resistor", 5)
        resp = client.patch(f"/items/{item['id']}", json={"quantity": 50})
        assert resp.status_code == 409

    def test_filter_and_summary(self, client):
        create_item(client, "Red LED", 1, category="electronics", min_quantity=5)
        create_item(client, "Wood glue", 3, category="workshop")

        assert len(client.get("/items/", params={"search": "led"}).json()) == 1
        assert len(client.get("/items/", params={"category": "workshop"}).json()) == 1
        assert len(client.get("/items/", params={"low_stock_only": True}).json()) == 1

        summary = client.get("/items/summary").json()
        assert summary["total_items"] == 2
        assert summary["low_stock_count"] == 1
        assert summary["low_stock_items"][0]["name"] == "Red LED"

    def test_quantity_at(self, client):
        item = create_item(client, "Fuse", 4)
        resp = client.get(f"/items/{item['id']}/quantity-at", params={"at": "2000-01-01T00:00:00Z"})
        assert resp.json()["quantity"] == 0

    def test_delete(self, client):
        item = create_item(client, "Fuse", 4)
        assert client.delete(f"/items/{item['id']}").status_code == 204
        assert client.get(f"/items/{item['id']}").status_code == 404
        assert len(client.get(f"/items/{item['id']}/history").json()) == 1


class TestLabelRoutes:

    def test_pdf(self, client):
        box = create_location(client, "Box", "box")
        ids = [create_item(client, f"Part {i}", i, location_id=box["id"])["id"] for i in range(13)]
        resp = client.post("/labels/pdf", json={"item_ids": ids, "paper_size": "letter", "columns": 3, "rows": 4})
        assert resp.status_code == 200
        body = resp.json()
        assert body["page_count"] == 2
        assert body["label_count"] == 13
        mime, pdf = from_data_url(body["data_url"])
        assert mime == PDF_MIME
        assert pdf.startswith(b"%PDF")

    def test_pdf_same_bytes_on_repeat(self, client):
        shelf = create_location(client, "Shelf", "shelf")
        ids = [create_item(client, f"Part {i}", 1, location_id=shelf["id"])["id"] for i in range(5)]
        request = {"item_ids": ids, "columns": 2, "rows": 2}
        first = client.post("/labels/pdf", json=request).json()["data_url"]
        second = client.post("/labels/pdf", json=request).json()["data_url"]
        assert first == second

    def test_image_pages(self, client):
        ids = [create_item(client, f"Part {i}")["id"] for i in range(13)]
        body = client.post("/labels/image", json={"item_ids": ids, "page": 1}).json()
        assert body["page_count"] == 2
        assert from_data_url(body["data_url"])[0] == PNG_MIME

        resp = client.post("/labels/image", json={"item_ids": ids, "page": 2})
        assert resp.status_code == 400

    def test_errors(self, client):
        assert client.post("/labels/pdf", json={"item_ids": []}).json()["error"] == "EmptySelection"
        assert client.post("/labels/pdf", json={"item_ids": [1], "paper_size": "B4"}).json()["error"] == "InvalidConfig"
        assert client.post("/labels/image", json={"item_ids": [404]}).status_code == 404


class TestSyncRoutes:

    def test_unconfigured(self, client):
        resp = client.post("/sync/webdav/upload")
        assert resp.status_code == 404

    def test_configure_hides_credentials(self, client):
        resp = client.put(
            "/sync/s3",
            json={"bucket": "b", "region": "r", "access_key": "k", "secret_key": "s"},
        )
        assert resp.status_code == 200
        assert "secret_key" not in resp.text
        assert [c["sync_type"] for c in client.get("/sync/").json()] == ["s3"]

    def test_configure_missing_field(self, client):
        resp = client.put("/sync/webdav", json={"url": "https://x", "username": "", "password": "p"})
        assert resp.status_code == 400
