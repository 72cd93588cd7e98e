from decimal import Decimal

from app.core.middleware import CORRELATION_HEADER


def _form(brand_id, category_ids, **overrides):
    data = {
        "name": "Canvas Tote",
        "listed_price": "40.00",
        "selling_price": "35.50",
        "description": "Everyday bag",
        "stock": "7",
        "brand_id": str(brand_id),
        "category_ids": [str(category_id) for category_id in category_ids],
    }
    data.update(overrides)
    return data


def _files(*names):
    return [("new_image_files", (name, f"bytes of {name}".encode(), "image/png")) for name in names]


def _create(client, brand, category, *names):
    response = client.post(
        "/api/v1/catalog/products",
        data=_form(brand.id, [category.id]),
        files=_files(*names) or None,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_product_with_images(client, blob_store, make_brand, make_category):
    brand = make_brand()
    category = make_category()

    data = _create(client, brand, category, "front.png", "side.png")

    assert data["name"] == "Canvas Tote"
    assert Decimal(str(data["selling_price"])) == Decimal("35.50")
    assert data["brand"]["id"] == brand.id
    assert [item["id"] for item in data["categories"]] == [category.id]
    assert len(data["images"]) == 2
    for image in data["images"]:
        assert blob_store.exists(image["image_path"])
        assert image["url"] == f"/api/v1/files/product-images/{image['image_path']}"

    image_response = client.get(data["images"][0]["url"])
    assert image_response.status_code == 200
    assert image_response.content == b"bytes of front.png"


def test_update_product_replaces_unkept_images(client, blob_store, make_brand, make_category):
    brand = make_brand()
    category = make_category()
    created = _create(client, brand, category, "a.png", "b.png", "c.png")
    a, b, c = created["images"]

    response = client.put(
        f"/api/v1/catalog/products/{created['id']}",
        data={**_form(brand.id, [category.id], name="Canvas Tote XL"), "image_ids": [str(b["id"]), str(c["id"])]},
        files=_files("d.png"),
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["name"] == "Canvas Tote XL"
    paths = [image["image_path"] for image in data["images"]]
    assert paths[0].endswith("_d.png")
    assert paths[1:] == [b["image_path"], c["image_path"]]
    assert not blob_store.exists(a["image_path"])
    assert client.get(a["url"]).status_code == 404


def test_update_with_missing_brand_returns_404(client, make_brand, make_category):
    brand = make_brand()
    category = make_category()
    created = _create(client, brand, category, "a.png")

    response = client.put(
        f"/api/v1/catalog/products/{created['id']}",
        data=_form(123456789, [category.id]),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Brand not found"
    current = client.get(f"/api/v1/catalog/products/{created['id']}").json()
    assert current["images"] == created["images"]


def test_create_with_partial_categories_reports_missing_ids(client, blob_store, make_brand, make_category):
    brand = make_brand()
    category = make_category()

    response = client.post(
        "/api/v1/catalog/products",
        data=_form(brand.id, [category.id, 99999]),
        files=_files("a.png"),
    )

    assert response.status_code == 404
    detail = response.json()["detail"]
    assert detail["entity"] == "categories"
    assert detail["missing_ids"] == [99999]
    assert blob_store.list_names() == []


def test_create_rejects_unsupported_file_type(client, make_brand, make_category):
    response = client.post(
        "/api/v1/catalog/products",
        data=_form(make_brand().id, [make_category().id]),
        files=[("new_image_files", ("notes.txt", b"text", "text/plain"))],
    )
    assert response.status_code == 400


def test_create_rejects_invalid_price(client, make_brand, make_category):
    response = client.post(
        "/api/v1/catalog/products",
        data=_form(make_brand().id, [make_category().id], listed_price="-1"),
    )
    assert response.status_code == 422


def test_deactivate_and_activate(client, make_brand, make_category):
    created = _create(client, make_brand(), make_category())

    for _ in range(2):
        response = client.post(f"/api/v1/catalog/products/{created['id']}/deactivate")
        assert response.status_code == 200
        assert response.json()["active"] is False

    active_ids = {item["id"] for item in client.get("/api/v1/catalog/products/active").json()}
    assert created["id"] not in active_ids

    response = client.post(f"/api/v1/catalog/products/{created['id']}/activate")
    assert response.json()["active"] is True
    active_ids = {item["id"] for item in client.get("/api/v1/catalog/products/active").json()}
    assert created["id"] in active_ids


def test_search_endpoint(client, make_brand, make_category):
    brand = make_brand()
    category = make_category()
    created = client.post(
        "/api/v1/catalog/products",
        data=_form(brand.id, [category.id], name="Searchable Zebra Mug"),
    ).json()

    response = client.get(
        "/api/v1/catalog/products/search",
        params={"keyword": "Zebra", "category_ids": [category.id], "brand_id": brand.id},
    )
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [created["id"]]


def test_unknown_product_returns_404(client):
    assert client.get("/api/v1/catalog/products/424242").status_code == 404
    assert client.post("/api/v1/catalog/products/424242/deactivate").status_code == 404


def test_brand_and_category_endpoints(client):
    brand = client.post("/api/v1/catalog/brands", json={"name": "Endpoint Brand"})
    assert brand.status_code == 201
    assert client.post("/api/v1/catalog/brands", json={"name": "Endpoint Brand"}).status_code == 409
    category = client.post("/api/v1/catalog/categories", json={"name": "Endpoint Category"})
    assert category.status_code == 201

    brand_names = [item["name"] for item in client.get("/api/v1/catalog/brands").json()]
    category_names = [item["name"] for item in client.get("/api/v1/catalog/categories").json()]
    assert "Endpoint Brand" in brand_names
    assert "Endpoint Category" in category_names


def test_health_reports_database_and_blob_store(client, blob_store):
    blob_store.ensure_root()
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert {item["name"]: item["status"] for item in response.json()} == {"database": "ok", "blob_store": "ok"}


def test_correlation_id_is_echoed(client):
    response = client.get("/api/v1/catalog/brands", headers={CORRELATION_HEADER: "req-test123"})
    assert response.headers[CORRELATION_HEADER] == "req-test123"


def test_correlation_id_is_generated_when_missing(client):
    first = client.get("/api/v1/catalog/brands")
    second = client.get("/api/v1/catalog/brands")
    assert first.headers[CORRELATION_HEADER].startswith("req-")
    assert first.headers[CORRELATION_HEADER] != second.headers[CORRELATION_HEADER]
