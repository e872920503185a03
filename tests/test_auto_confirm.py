import smtplib
from datetime import datetime, timedelta, timezone

from sqlmodel import select

from store_api.core import email_client
from store_api.models.notification import Notification
from store_api.models.order import Order, OrderStatusLog

from .conftest import API


def _claimed_order(create_product, place_order, set_status):
    product = create_product(stock=10)
    order = place_order([(product["id"], 1)])
    for new_status in ("processing", "ready_for_pickup", "claimed"):
        assert set_status(order["id"], new_status).status_code == 200
    return order


def _age(db, order_id: int, days: float):
    db.expire_all()
    order = db.get(Order, order_id)
    order.updated_at = datetime.now(timezone.utc) - timedelta(days=days)
    db.add(order)
    db.commit()


def test_auto_confirm_completes_old_claimed_orders(
    client, db, admin_headers, create_product, place_order, set_status
):
    old = _claimed_order(create_product, place_order, set_status)
    fresh = _claimed_order(create_product, place_order, set_status)
    _age(db, old["id"], days=4)

    resp = client.post(f"{API}/orders/auto-confirm", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["confirmed_order_ids"] == [old["id"]]

    db.expire_all()
    assert db.get(Order, old["id"]).status == "completed"
    assert db.get(Order, fresh["id"]).status == "claimed"

    log = db.exec(
        select(OrderStatusLog).where(
            OrderStatusLog.order_id == old["id"],
            OrderStatusLog.new_status == "completed",
        )
    ).one()
    assert log.old_status == "claimed"
    assert log.changed_by is None
    assert log.notes == "Auto-confirmed after 3 days"

    admin_alert = db.exec(
        select(Notification).where(
            Notification.user_id.is_(None),
            Notification.title == "Order Auto-Confirmed",
        )
    ).one()
    assert admin_alert.related_id == old["id"]


def test_auto_confirm_is_idempotent(client, db, admin_headers, create_product, place_order, set_status):
    order = _claimed_order(create_product, place_order, set_status)
    _age(db, order["id"], days=5)

    first = client.post(f"{API}/orders/auto-confirm", headers=admin_headers).json()
    second = client.post(f"{API}/orders/auto-confirm", headers=admin_headers).json()
    assert first["confirmed_order_ids"] == [order["id"]]
    assert second["confirmed_order_ids"] == []


def test_auto_confirm_ignores_other_statuses(client, db, admin_headers, create_product, place_order, set_status):
    product = create_product(stock=5)
    order = place_order([(product["id"], 1)])
    set_status(order["id"], "processing")
    _age(db, order["id"], days=10)

    resp = client.post(f"{API}/orders/auto-confirm", headers=admin_headers)
    assert resp.json()["confirmed_order_ids"] == []


def test_payment_update_does_not_reset_claim_clock(
    client, db, admin_headers, create_product, place_order, set_status
):
    order = _claimed_order(create_product, place_order, set_status)
    _age(db, order["id"], days=4)

    client.patch(
        f"{API}/payments/{order['id']}/status",
        json={"payment_status": "paid"},
        headers=admin_headers,
    )

    resp = client.post(f"{API}/orders/auto-confirm", headers=admin_headers)
    assert resp.json()["confirmed_order_ids"] == [order["id"]]


def test_auto_confirm_stats_buckets(client, db, admin_headers, create_product, place_order, set_status):
    due = _claimed_order(create_product, place_order, set_status)
    tomorrow = _claimed_order(create_product, place_order, set_status)
    in_two_days = _claimed_order(create_product, place_order, set_status)
    _claimed_order(create_product, place_order, set_status)

    _age(db, due["id"], days=3.5)
    _age(db, tomorrow["id"], days=2.5)
    _age(db, in_two_days["id"], days=1.5)

    stats = client.get(f"{API}/orders/auto-confirm/stats", headers=admin_headers).json()
    assert stats == {
        "total_claimed_orders": 4,
        "ready_for_auto_confirm": 1,
        "will_be_ready_tomorrow": 1,
        "will_be_ready_in_2_days": 1,
    }


def test_auto_confirm_requires_admin(client, customer_headers):
    resp = client.post(f"{API}/orders/auto-confirm", headers=customer_headers)
    assert resp.status_code == 403


def test_receipt_is_emailed_after_auto_confirm(
    client, db, monkeypatch, admin_headers, create_product, place_order, set_status
):
    sent = []
    monkeypatch.setattr(email_client, "is_configured", lambda: True)
    monkeypatch.setattr(
        email_client,
        "send_email",
        lambda to_email, subject, text_body, html_body=None: sent.append((to_email, subject, text_body)),
    )
    order = _claimed_order(create_product, place_order, set_status)
    _age(db, order["id"], days=4)

    client.post(f"{API}/orders/auto-confirm", headers=admin_headers)

    assert len(sent) == 1
    to_email, subject, body = sent[0]
    assert to_email == "juan.dela.cruz@school.edu"
    assert subject == f"Receipt for order #{order['id']}"
    assert "1x School ID Lace" in body
    assert "Total: ₱50.00" in body


def test_receipt_failure_does_not_undo_completion(
    client, db, monkeypatch, admin_headers, create_product, place_order, set_status
):
    def broken_send(*args, **kwargs):
        raise smtplib.SMTPServerDisconnected("connection lost")

    monkeypatch.setattr(email_client, "is_configured", lambda: True)
    monkeypatch.setattr(email_client, "send_email", broken_send)
    order = _claimed_order(create_product, place_order, set_status)
    _age(db, order["id"], days=4)

    resp = client.post(f"{API}/orders/auto-confirm", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["confirmed_order_ids"] == [order["id"]]

    db.expire_all()
    assert db.get(Order, order["id"]).status == "completed"
