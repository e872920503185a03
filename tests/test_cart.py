from .conftest import API


def test_add_merges_same_product_and_size(client, customer_headers, create_product, add_to_cart):
    product = create_product(stock=10)

    add_to_cart(product["id"], 2)
    cart = add_to_cart(product["id"], 3)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5
    assert cart["items"][0]["line_total"] == 250.0
    assert cart["total_quantity"] == 5
    assert cart["total_price"] == 250.0

    assert client.get(f"{API}/cart", headers=customer_headers).json() == cart


def test_sized_product_needs_a_valid_size(client, customer_headers, create_product):
    shirt = create_product(
        name="PE Shirt",
        price=250.0,
        stock=0,
        sizes=[{"size": "M", "stock": 3}, {"size": "L", "stock": 3, "price": 280.0}],
    )

    resp = client.post(f"{API}/cart", json={"product_id": shirt["id"], "quantity": 1}, headers=customer_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please select a size"

    resp = client.post(
        f"{API}/cart",
        json={"product_id": shirt["id"], "quantity": 1, "size": "XS"},
        headers=customer_headers,
    )
    assert resp.status_code == 404


def test_sizes_are_separate_lines_with_own_price(create_product, add_to_cart):
    shirt = create_product(
        name="PE Shirt",
        price=250.0,
        stock=0,
        sizes=[{"size": "M", "stock": 3}, {"size": "L", "stock": 3, "price": 280.0}],
    )

    add_to_cart(shirt["id"], 1, "m")
    cart = add_to_cart(shirt["id"], 2, "L")

    lines = {i["size"]: (i["quantity"], i["snapshot_price"]) for i in cart["items"]}
    assert lines == {"M": (1, 250.0), "L": (2, 280.0)}
    assert cart["total_price"] == 250.0 + 2 * 280.0


def test_unsized_product_rejects_size(client, customer_headers, create_product):
    product = create_product()
    resp = client.post(
        f"{API}/cart",
        json={"product_id": product["id"], "quantity": 1, "size": "M"},
        headers=customer_headers,
    )
    assert resp.status_code == 400


def test_cannot_exceed_stock(client, customer_headers, create_product, add_to_cart):
    product = create_product(stock=3)
    add_to_cart(product["id"], 2)

    resp = client.post(
        f"{API}/cart",
        json={"product_id": product["id"], "quantity": 2},
        headers=customer_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Not enough stock available (only 3 left)"


def test_inactive_and_missing_products(client, customer_headers, create_product):
    inactive = create_product(is_active=False)

    resp = client.post(f"{API}/cart", json={"product_id": inactive["id"], "quantity": 1}, headers=customer_headers)
    assert resp.status_code == 400

    resp = client.post(f"{API}/cart", json={"product_id": 9999, "quantity": 1}, headers=customer_headers)
    assert resp.status_code == 404


def test_update_and_remove_items(client, customer_headers, other_headers, create_product, add_to_cart):
    lace = create_product(stock=5)
    pen = create_product(name="Ballpen", price=15.0, stock=50)
    add_to_cart(lace["id"], 1)
    cart = add_to_cart(pen["id"], 4)
    lace_item = next(i for i in cart["items"] if i["product_id"] == lace["id"])

    resp = client.patch(f"{API}/cart/{lace_item['id']}", json={"quantity": 3}, headers=customer_headers)
    assert resp.status_code == 200
    assert resp.json()["total_quantity"] == 7

    resp = client.patch(f"{API}/cart/{lace_item['id']}", json={"quantity": 6}, headers=customer_headers)
    assert resp.status_code == 400

    resp = client.patch(f"{API}/cart/{lace_item['id']}", json={"quantity": 0}, headers=customer_headers)
    assert resp.status_code == 422

    # Someone else's item
    resp = client.delete(f"{API}/cart/{lace_item['id']}", headers=other_headers)
    assert resp.status_code == 404

    resp = client.delete(f"{API}/cart/{lace_item['id']}", headers=customer_headers)
    assert [i["product_id"] for i in resp.json()["items"]] == [pen["id"]]

    resp = client.delete(f"{API}/cart", headers=customer_headers)
    assert resp.json() == {"items": [], "total_quantity": 0, "total_price": 0.0}


def test_cart_is_customer_only(client, admin_headers):
    assert client.get(f"{API}/cart", headers=admin_headers).status_code == 403
    assert client.get(f"{API}/cart").status_code == 401
