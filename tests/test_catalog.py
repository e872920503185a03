import re

import pytest

from store_api.services import product_service

from .conftest import API


@pytest.fixture
def storage(monkeypatch):
    """Record storage calls instead of talking to Supabase."""
    calls = {"uploaded": [], "deleted": []}

    def fake_upload(path, file_bytes, content_type):
        calls["uploaded"].append((path, content_type))
        return f"http://localhost:54321/storage/v1/object/public/assets/{path}"

    monkeypatch.setattr(product_service, "upload_to_storage", fake_upload)
    monkeypatch.setattr(product_service, "delete_public_url", calls["deleted"].append)
    return calls


# -------- Categories --------


def test_category_crud(client, admin_headers):
    resp = client.post(f"{API}/categories", json={"name": "Uniforms"}, headers=admin_headers)
    assert resp.status_code == 201
    category = resp.json()

    resp = client.post(f"{API}/categories", json={"name": "uniforms"}, headers=admin_headers)
    assert resp.status_code == 409

    resp = client.put(
        f"{API}/categories/{category['id']}",
        json={"name": "School Uniforms"},
        headers=admin_headers,
    )
    assert resp.json()["name"] == "School Uniforms"

    listed = client.get(f"{API}/categories").json()
    assert [c["name"] for c in listed] == ["School Uniforms"]

    assert client.delete(f"{API}/categories/{category['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"{API}/categories").json() == []


def test_category_in_use_cannot_be_deleted(client, admin_headers, create_product):
    category = client.post(f"{API}/categories", json={"name": "Supplies"}, headers=admin_headers).json()
    create_product(category_id=category["id"])

    resp = client.delete(f"{API}/categories/{category['id']}", headers=admin_headers)
    assert resp.status_code == 409


def test_categories_are_admin_managed(client, customer_headers):
    resp = client.post(f"{API}/categories", json={"name": "Books"}, headers=customer_headers)
    assert resp.status_code == 403
    resp = client.post(f"{API}/categories", json={"name": "Books"})
    assert resp.status_code == 401


# -------- Products --------


def test_create_product_generates_unique_slug(create_product):
    first = create_product(name="PE Shirt")
    second = create_product(name="PE Shirt")
    assert first["slug"] == "pe-shirt"
    assert second["slug"] == "pe-shirt-2"


def test_create_product_defaults_reorder_point(client, admin_headers):
    resp = client.post(
        f"{API}/products",
        json={"name": "Notebook", "price": 35.0},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["reorder_point"] == 5
    assert resp.json()["stock"] == 0


def test_create_product_validation(client, admin_headers):
    resp = client.post(
        f"{API}/products",
        json={"name": "Polo", "price": 300.0, "stock": 5, "sizes": [{"size": "M", "stock": 5}]},
        headers=admin_headers,
    )
    assert resp.status_code == 400

    resp = client.post(
        f"{API}/products",
        json={"name": "Polo", "price": 300.0, "sizes": [{"size": "M"}, {"size": "m"}]},
        headers=admin_headers,
    )
    assert resp.status_code == 422

    resp = client.post(
        f"{API}/products",
        json={"name": "Polo", "price": 0},
        headers=admin_headers,
    )
    assert resp.status_code == 422

    resp = client.post(
        f"{API}/products",
        json={"name": "Polo", "price": 300.0, "category_id": 999},
        headers=admin_headers,
    )
    assert resp.status_code == 404


def test_public_listing_filters(client, admin_headers, create_product):
    category = client.post(f"{API}/categories", json={"name": "Uniforms"}, headers=admin_headers).json()
    polo = create_product(name="Uniform Polo", category_id=category["id"], description="White polo")
    create_product(name="Ballpen", description="Blue ink")
    hidden = create_product(name="Old Polo", is_active=False)

    names = [p["name"] for p in client.get(f"{API}/products").json()]
    assert names == ["Ballpen", "Uniform Polo"]

    by_category = client.get(f"{API}/products", params={"category_id": category["id"]}).json()
    assert [p["id"] for p in by_category] == [polo["id"]]

    search = client.get(f"{API}/products", params={"search": "POLO"}).json()
    assert [p["id"] for p in search] == [polo["id"]]

    everything = client.get(f"{API}/products", params={"only_active": False}).json()
    assert hidden["id"] in [p["id"] for p in everything]

    assert client.get(f"{API}/products/{polo['id']}").json()["name"] == "Uniform Polo"
    assert client.get(f"{API}/products/9999").status_code == 404


def test_product_lookup_by_slug(client, create_product):
    shirt = create_product(name="PE Shirt")
    create_product(name="Old Polo", is_active=False)

    resp = client.get(f"{API}/products/by-slug/pe-shirt")
    assert resp.status_code == 200
    assert resp.json()["id"] == shirt["id"]

    assert client.get(f"{API}/products/by-slug/old-polo").status_code == 404
    assert client.get(f"{API}/products/by-slug/nothing-here").status_code == 404


def test_update_product_leaves_stock_alone(client, admin_headers, create_product):
    product = create_product(stock=7)

    resp = client.patch(
        f"{API}/products/{product['id']}",
        json={"price": 55.0, "slug": "id-lace"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["price"] == 55.0
    assert resp.json()["slug"] == "id-lace"
    assert resp.json()["stock"] == 7

    resp = client.patch(
        f"{API}/products/{product['id']}",
        json={"stock": 100},
        headers=admin_headers,
    )
    assert resp.status_code == 422


def test_low_stock_products(client, admin_headers, customer_headers, create_product):
    create_product(name="Lanyard", stock=30)
    low = create_product(name="Ballpen", stock=2)

    rows = client.get(f"{API}/products/low-stock", headers=admin_headers).json()
    assert [p["id"] for p in rows] == [low["id"]]
    assert client.get(f"{API}/products/low-stock", headers=customer_headers).status_code == 403


def test_delete_product_without_history(client, admin_headers, create_product, storage):
    product = create_product(stock=0)

    resp = client.delete(f"{API}/products/{product['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["action"] == "deleted"
    assert client.get(f"{API}/products/{product['id']}").status_code == 404


def test_delete_product_with_history_deactivates(client, admin_headers, create_product, storage):
    product = create_product(stock=4)

    resp = client.delete(f"{API}/products/{product['id']}", headers=admin_headers)
    assert resp.json()["action"] == "deactivated"

    fetched = client.get(f"{API}/products/{product['id']}").json()
    assert fetched["is_active"] is False
    assert storage["deleted"] == []


# -------- Images --------


def test_hero_image_upload_and_replace(client, admin_headers, create_product, storage):
    product = create_product()

    resp = client.post(
        f"{API}/products/{product['id']}/hero-image",
        files={"file": ("hero.png", b"\x89PNG fake", "image/png")},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    first_url = resp.json()["hero_image_url"]
    assert re.search(rf"products/{product['id']}/hero-[0-9a-f-]{{36}}\.png$", first_url)

    client.post(
        f"{API}/products/{product['id']}/hero-image",
        files={"file": ("hero.jpg", b"fake jpeg", "image/jpeg")},
        headers=admin_headers,
    )
    assert storage["deleted"] == [first_url]


def test_hero_image_rejects_unsupported_type(client, admin_headers, create_product, storage):
    product = create_product()
    resp = client.post(
        f"{API}/products/{product['id']}/hero-image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert storage["uploaded"] == []


def test_gallery_images(client, admin_headers, create_product, storage):
    product = create_product()

    resp = client.post(
        f"{API}/products/{product['id']}/gallery",
        files=[
            ("files", ("a.png", b"a", "image/png")),
            ("files", ("b.webp", b"b", "image/webp")),
        ],
        headers=admin_headers,
    )
    assert resp.status_code == 200
    images = resp.json()
    assert [img["sort_order"] for img in images] == [0, 1]

    listed = client.get(f"{API}/products/{product['id']}/images").json()
    assert len(listed) == 2

    resp = client.delete(
        f"{API}/products/{product['id']}/gallery/{images[0]['id']}",
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert len(client.get(f"{API}/products/{product['id']}/images").json()) == 1

    resp = client.delete(
        f"{API}/products/{product['id'] + 1}/gallery/{images[1]['id']}",
        headers=admin_headers,
    )
    assert resp.status_code == 404


def test_gallery_batch_with_bad_file_uploads_nothing(client, admin_headers, create_product, storage):
    product = create_product()

    resp = client.post(
        f"{API}/products/{product['id']}/gallery",
        files=[
            ("files", ("a.png", b"a", "image/png")),
            ("files", ("notes.txt", b"hello", "text/plain")),
        ],
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert storage["uploaded"] == []
    assert client.get(f"{API}/products/{product['id']}/images").json() == []
