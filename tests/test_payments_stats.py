import os
import re
import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt

from .conftest import API, auth_headers, make_token


# -------- Payments --------


def test_select_gcash_keeps_order_unpaid(client, customer_headers, admin_headers, create_product, place_order):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])

    resp = client.post(f"{API}/payments/gcash", json={"order_id": order["id"]}, headers=customer_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert re.fullmatch(r"gcash_\d+_[0-9a-f]{8}", body["payment_reference"])
    assert body["order"]["payment_method"] == "gcash"
    assert body["order"]["payment_status"] == "unpaid"

    status = client.get(f"{API}/payments/status/{order['id']}", headers=customer_headers).json()
    assert status["payment_reference"] == body["payment_reference"]

    admin_inbox = client.get(f"{API}/notifications", headers=admin_headers).json()["notifications"]
    assert any(n["title"] == "GCash Payment Selected" for n in admin_inbox)


def test_select_gcash_rules(client, customer_headers, other_headers, admin_headers, create_product, place_order, set_status):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])

    resp = client.post(f"{API}/payments/gcash", json={"order_id": order["id"]}, headers=other_headers)
    assert resp.status_code == 404

    client.patch(
        f"{API}/payments/{order['id']}/status",
        json={"payment_status": "paid"},
        headers=admin_headers,
    )
    resp = client.post(f"{API}/payments/gcash", json={"order_id": order["id"]}, headers=customer_headers)
    assert resp.status_code == 400

    cancelled = place_order([(product["id"], 1)])
    set_status(cancelled["id"], "cancelled")
    resp = client.post(f"{API}/payments/gcash", json={"order_id": cancelled["id"]}, headers=customer_headers)
    assert resp.status_code == 400


def test_admin_confirms_payment_and_customer_is_notified(
    client, customer_headers, admin_headers, create_product, place_order
):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])

    resp = client.patch(
        f"{API}/payments/{order['id']}/status",
        json={"payment_status": "paid"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "paid"

    inbox = client.get(f"{API}/notifications", headers=customer_headers).json()["notifications"]
    assert inbox[0]["type"] == "payment"
    assert inbox[0]["message"] == f"Payment for order #{order['id']} has been received successfully."

    # Same status again is a no-op: no extra notification
    client.patch(
        f"{API}/payments/{order['id']}/status",
        json={"payment_status": "paid"},
        headers=admin_headers,
    )
    again = client.get(f"{API}/notifications", headers=customer_headers).json()["notifications"]
    assert len(again) == len(inbox)


def test_refunded_payment_is_final(client, admin_headers, create_product, place_order, set_status):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])
    client.patch(f"{API}/payments/{order['id']}/status", json={"payment_status": "paid"}, headers=admin_headers)
    for new_status in ("processing", "ready_for_pickup", "claimed", "refunded"):
        set_status(order["id"], new_status)

    resp = client.patch(
        f"{API}/payments/{order['id']}/status",
        json={"payment_status": "paid"},
        headers=admin_headers,
    )
    assert resp.status_code == 400

    resp = client.patch(
        f"{API}/payments/{order['id']}/status",
        json={"payment_status": "refunded"},
        headers=admin_headers,
    )
    assert resp.status_code == 422


def test_payment_status_visibility(client, other_headers, admin_headers, create_product, place_order):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])

    assert client.get(f"{API}/payments/status/{order['id']}", headers=other_headers).status_code == 404
    assert client.get(f"{API}/payments/status/{order['id']}", headers=admin_headers).status_code == 200


# -------- Dashboards --------


def test_admin_dashboard(client, admin_headers, create_product, place_order, set_status):
    lace = create_product(stock=10)
    pen = create_product(name="Ballpen", price=15.0, stock=6)
    first = place_order([(lace["id"], 2), (pen["id"], 4)])
    second = place_order([(lace["id"], 1)])
    set_status(second["id"], "cancelled")

    stats = client.get(f"{API}/dashboard/admin", headers=admin_headers).json()
    assert stats["total_customers"] == 1
    assert stats["total_orders"] == 2
    assert stats["total_revenue"] == first["total_amount"]
    assert stats["low_stock_products"] == 1
    assert [p["name"] for p in stats["top_products"]] == ["Ballpen", "School ID Lace"]
    assert stats["top_products"][1]["total_quantity"] == 2
    assert stats["daily_sales"][0]["order_count"] == 1
    assert stats["latest_orders"][0]["id"] == second["id"]
    assert stats["latest_orders"][0]["user_name"] == "Juan Dela Cruz"

    resp = client.get(f"{API}/dashboard/admin", params={"month": 13}, headers=admin_headers)
    assert resp.status_code == 400
    resp = client.get(f"{API}/dashboard/admin", params={"year": 9999, "month": 12}, headers=admin_headers)
    assert resp.status_code == 400


def test_user_dashboard(client, customer_headers, create_product, place_order):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])

    dash = client.get(f"{API}/dashboard/user", headers=customer_headers).json()
    assert [o["id"] for o in dash["orders"]] == [order["id"]]
    assert dash["unread_notifications"] == 1


# -------- Users --------


def test_first_request_provisions_profile(client):
    user_id = uuid.uuid4()
    headers = {"Authorization": f"Bearer {make_token(user_id, 'ana.reyes@school.edu')}"}

    me = client.get(f"{API}/users/me", headers=headers).json()
    assert me["id"] == str(user_id)
    assert me["name"] == "ana.reyes"
    assert me["role"] == "user"

    resp = client.post(
        f"{API}/users/me",
        json={"name": "Ana Reyes", "student_id": "2023-00999"},
        headers=headers,
    )
    assert resp.json()["name"] == "Ana Reyes"
    assert resp.json()["student_id"] == "2023-00999"

    resp = client.post(f"{API}/users/me", json={"email": "someone@else.edu"}, headers=headers)
    assert resp.status_code == 400


def test_invalid_tokens_are_rejected(client):
    assert client.get(f"{API}/users/me").status_code == 401
    resp = client.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_admin_user_management(client, admin, admin_headers, customer, customer_headers):
    assert client.get(f"{API}/users", headers=customer_headers).status_code == 403

    users = client.get(f"{API}/users", params={"role": "user"}, headers=admin_headers).json()
    assert [u["id"] for u in users] == [str(customer.id)]

    resp = client.patch(f"{API}/users/{customer.id}/role", json={"role": "admin"}, headers=admin_headers)
    assert resp.json()["role"] == "admin"
    # Role is read from the database on every request
    assert client.get(f"{API}/users", headers=auth_headers(customer)).status_code == 200

    resp = client.patch(f"{API}/users/{admin.id}/role", json={"role": "user"}, headers=admin_headers)
    assert resp.status_code == 400

    assert client.get(f"{API}/users/{uuid.uuid4()}", headers=admin_headers).status_code == 404


def _signup_headers(email: str, metadata: dict) -> dict[str, str]:
    token = jwt.encode(
        {
            "sub": str(uuid.uuid4()),
            "email": email,
            "user_metadata": metadata,
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        },
        os.environ["SUPABASE_JWT_SECRET"],
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


def test_provisioning_reads_signup_metadata(client):
    headers = _signup_headers(
        "p.garcia@school.edu",
        {"full_name": "Paolo Garcia", "student_id": "2024-01234"},
    )
    me = client.get(f"{API}/users/me", headers=headers).json()
    assert me["name"] == "Paolo Garcia"
    assert me["student_id"] == "2024-01234"


def test_student_id_is_unique(client, customer, other_headers):
    resp = client.patch(f"{API}/users/me", json={"student_id": customer.student_id}, headers=other_headers)
    assert resp.status_code == 409

    resp = client.patch(f"{API}/users/me", json={"student_id": "2022-00777"}, headers=other_headers)
    assert resp.status_code == 200
    assert resp.json()["student_id"] == "2022-00777"


def test_signup_with_taken_student_id_is_left_blank(client, customer):
    headers = _signup_headers("copycat@school.edu", {"student_id": customer.student_id})

    resp = client.get(f"{API}/users/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["student_id"] is None

    owner = client.get(f"{API}/users/me", headers=auth_headers(customer)).json()
    assert owner["student_id"] == "2021-00123"


def test_deactivated_account_is_locked_out(client, admin, admin_headers, customer, customer_headers):
    resp = client.patch(
        f"{API}/users/{customer.id}/status",
        json={"is_active": False},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = client.get(f"{API}/users/me", headers=customer_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Account is deactivated"

    inactive = client.get(f"{API}/users", params={"is_active": False}, headers=admin_headers).json()
    assert [u["id"] for u in inactive] == [str(customer.id)]

    resp = client.patch(f"{API}/users/{admin.id}/status", json={"is_active": False}, headers=admin_headers)
    assert resp.status_code == 400

    client.patch(f"{API}/users/{customer.id}/status", json={"is_active": True}, headers=admin_headers)
    assert client.get(f"{API}/users/me", headers=customer_headers).status_code == 200
