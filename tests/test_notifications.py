from .conftest import API


def test_order_events_notify_customer_and_admins(
    client, customer_headers, admin_headers, create_product, place_order, set_status
):
    product = create_product(name="PE Pants", price=320.0, stock=5)
    order = place_order([(product["id"], 2)])
    set_status(order["id"], "processing")

    inbox = client.get(f"{API}/notifications", headers=customer_headers).json()
    titles = [n["title"] for n in inbox["notifications"]]
    assert titles == ["Order Received", "Order Placed"]
    assert "2x PE Pants" in inbox["notifications"][0]["message"]
    assert all(n["type"] == "order" for n in inbox["notifications"])
    assert inbox["pagination"] == {"page": 1, "limit": 10, "total": 2, "total_pages": 1}

    admin_inbox = client.get(f"{API}/notifications", headers=admin_headers).json()
    new_order = [n for n in admin_inbox["notifications"] if n["title"] == "New Order Received"]
    assert len(new_order) == 1
    assert new_order[0]["user_id"] is None
    assert "Juan Dela Cruz (2021-00123)" in new_order[0]["message"]
    assert "₱640.00" in new_order[0]["message"]


def test_customers_do_not_see_admin_broadcasts(client, other_headers, create_product, place_order):
    product = create_product(stock=5)
    place_order([(product["id"], 1)])

    inbox = client.get(f"{API}/notifications", headers=other_headers).json()
    assert inbox["notifications"] == []
    assert inbox["pagination"]["total"] == 0


def test_unread_count_and_mark_read(client, customer_headers, create_product, place_order, set_status):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])
    set_status(order["id"], "processing")

    assert client.get(f"{API}/notifications/unread-count", headers=customer_headers).json() == {"count": 2}

    first = client.get(f"{API}/notifications", headers=customer_headers).json()["notifications"][0]
    resp = client.put(f"{API}/notifications/{first['id']}/read", headers=customer_headers)
    assert resp.status_code == 200
    assert resp.json()["is_read"] is True
    assert client.get(f"{API}/notifications/unread-count", headers=customer_headers).json() == {"count": 1}

    resp = client.put(f"{API}/notifications/mark-all-read", headers=customer_headers)
    assert resp.json()["updated"] == 1
    assert client.get(f"{API}/notifications/unread-count", headers=customer_headers).json() == {"count": 0}


def test_cannot_touch_someone_elses_notification(
    client, customer_headers, other_headers, create_product, place_order
):
    product = create_product(stock=5)
    place_order([(product["id"], 1)])
    mine = client.get(f"{API}/notifications", headers=customer_headers).json()["notifications"][0]

    assert client.put(f"{API}/notifications/{mine['id']}/read", headers=other_headers).status_code == 404
    assert client.delete(f"{API}/notifications/{mine['id']}", headers=other_headers).status_code == 404

    resp = client.delete(f"{API}/notifications/{mine['id']}", headers=customer_headers)
    assert resp.status_code == 200
    assert client.get(f"{API}/notifications", headers=customer_headers).json()["notifications"] == []


def test_pagination(client, admin_headers, customer, customer_headers):
    for i in range(3):
        resp = client.post(
            f"{API}/notifications",
            json={"user_id": str(customer.id), "message": f"Announcement {i}"},
            headers=admin_headers,
        )
        assert resp.status_code == 201

    page = client.get(
        f"{API}/notifications", params={"page": 2, "limit": 2}, headers=customer_headers
    ).json()
    assert [n["message"] for n in page["notifications"]] == ["Announcement 0"]
    assert page["pagination"]["total_pages"] == 2


def test_manual_notification_validation(client, admin_headers, customer_headers, customer):
    resp = client.post(
        f"{API}/notifications",
        json={"user_id": "00000000-0000-0000-0000-000000000000", "message": "Hi"},
        headers=admin_headers,
    )
    assert resp.status_code == 404

    resp = client.post(
        f"{API}/notifications",
        json={"user_id": str(customer.id), "message": "   "},
        headers=admin_headers,
    )
    assert resp.status_code == 422

    resp = client.post(
        f"{API}/notifications",
        json={"user_id": str(customer.id), "message": "Hi"},
        headers=customer_headers,
    )
    assert resp.status_code == 403


def test_low_stock_broadcast_reaches_admin_inbox(client, admin_headers, create_product, place_order):
    product = create_product(name="Ballpen", stock=6, reorder_point=5)
    place_order([(product["id"], 2)])

    inbox = client.get(f"{API}/notifications", headers=admin_headers).json()["notifications"]
    low = [n for n in inbox if n["type"] == "low_stock"]
    assert len(low) == 1
    assert low[0]["message"] == "Low stock alert: Ballpen has only 4 items remaining."
