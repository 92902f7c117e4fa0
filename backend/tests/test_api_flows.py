from __future__ import annotations

from app import crud
from app.core.config import settings
from app.enums import OrderStatus, UserRole
from app.models import Product, User

API = settings.API_V1_STR


def _ok(r) -> dict:
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["code"] == 0
    return body["data"]


def _place_order(client, headers, product_id: int, quantity: int = 2) -> dict:
    r = client.post(
        f"{API}/orders",
        headers=headers,
        json={
            "items": [{"product_id": product_id, "quantity": quantity}],
            "delivery_name": "Ada Obi",
            "delivery_phone": "+2348000000000",
            "delivery_address": "Block C, Room 12, Moremi Hall",
        },
    )
    return _ok(r)


def _set_status(client, headers, order_id: int, status: str, note: str | None = None):
    return client.post(
        f"{API}/orders/{order_id}/status", headers=headers, json={"status": status, "note": note}
    )


def _admin(db) -> User:
    admin = User(email="admin@campus.test", first_name="Admin", role=UserRole.admin)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def _deliver_paid_order(client, db, buyer, seller, product, auth_headers) -> dict:
    order = _place_order(client, auth_headers(buyer), product.id)
    shop_headers = auth_headers(db.get(User, seller.user_id))
    for status in ("processing", "ready_for_pickup", "in_transit", "delivered"):
        _ok(_set_status(client, shop_headers, order["id"], status))
    crud.mark_order_paid(session=db, order_id=order["id"], reference="PSK-100")
    return order


# ---------------------------------------------------------------------------
# 订单
# ---------------------------------------------------------------------------


def test_create_and_read_order(client, buyer, product, auth_headers):
    headers = auth_headers(buyer)
    order = _place_order(client, headers, product.id)
    assert order["status"] == "pending"
    assert order["payment_status"] == "unpaid"
    assert order["total_amount"] == 500_000
    assert order["platform_fee"] + order["seller_amount"] == order["total_amount"]
    assert order["items"][0]["product_name"] == "Jollof pack"

    detail = _ok(client.get(f"{API}/orders/{order['id']}", headers=headers))
    assert detail["order_number"] == order["order_number"]

    listing = _ok(client.get(f"{API}/orders/list", headers=headers))
    assert listing["count"] == 1
    assert listing["data"][0]["items"] == []


def test_small_order_is_topped_up_to_minimum(client, buyer, product, auth_headers):
    order = _place_order(client, auth_headers(buyer), product.id, quantity=1)
    assert order["total_amount"] == settings.MIN_ORDER_AMOUNT
    assert order["items"][0]["subtotal"] == settings.MIN_ORDER_AMOUNT


def test_unknown_product_is_404(client, buyer, auth_headers):
    r = client.post(
        f"{API}/orders",
        headers=auth_headers(buyer),
        json={
            "items": [{"product_id": 42, "quantity": 1}],
            "delivery_name": "Ada",
            "delivery_phone": "1",
            "delivery_address": "Hall",
        },
    )
    assert r.status_code == 404
    assert r.json()["code"] == 404301


def test_requests_without_token_are_rejected(client):
    r = client.get(f"{API}/orders/list")
    assert r.status_code in (401, 403)


def test_strangers_cannot_see_order(client, db, buyer, product, auth_headers):
    order = _place_order(client, auth_headers(buyer), product.id)
    stranger = User(email="eve@campus.test", first_name="Eve")
    db.add(stranger)
    db.commit()
    r = client.get(f"{API}/orders/{order['id']}", headers=auth_headers(stranger))
    assert r.status_code == 403
    assert r.json()["code"] == 403101


def test_missing_order_is_404(client, buyer, auth_headers):
    r = client.get(f"{API}/orders/123", headers=auth_headers(buyer))
    assert r.status_code == 404
    assert r.json()["code"] == 404101


def test_seller_walks_order_through_pipeline(client, db, buyer, seller, product, auth_headers, notifier):
    order = _place_order(client, auth_headers(buyer), product.id)
    shop_headers = auth_headers(db.get(User, seller.user_id))

    data = _ok(_set_status(client, shop_headers, order["id"], "processing", note="packing now"))
    assert data["status"] == "processing"
    assert notifier.seller_alerts == [order["order_number"]]

    for status in ("ready_for_pickup", "in_transit", "delivered"):
        data = _ok(_set_status(client, shop_headers, order["id"], status))
    assert data["delivered_at"] is not None
    assert data["shipped_at"] is not None
    assert data["payout_status"] == "scheduled"

    history = _ok(client.get(f"{API}/orders/{order['id']}/history", headers=auth_headers(buyer)))
    assert [h["new_status"] for h in history["history"]] == [
        "processing",
        "ready_for_pickup",
        "in_transit",
        "delivered",
    ]
    assert history["history"][0]["old_status"] == "pending"
    assert history["history"][0]["note"] == "packing now"

    payout = _ok(client.get(f"{API}/orders/{order['id']}/payout", headers=shop_headers))
    assert payout["payout_status"] == "scheduled"
    assert payout["seller_amount"] == order["seller_amount"]


def test_skipping_a_stage_returns_conflict_with_details(client, db, buyer, seller, product, auth_headers):
    order = _place_order(client, auth_headers(buyer), product.id)
    shop_headers = auth_headers(db.get(User, seller.user_id))

    r = _set_status(client, shop_headers, order["id"], "in_transit")
    assert r.status_code == 409
    body = r.json()
    assert body["code"] == 409101
    assert body["data"] == {"current_status": "pending", "target_status": "in_transit"}

    detail = _ok(client.get(f"{API}/orders/{order['id']}", headers=shop_headers))
    assert detail["status"] == "pending"
    assert detail["shipped_at"] is None


def test_legacy_shipped_status_is_not_accepted(client, db, buyer, seller, product, auth_headers):
    order = _place_order(client, auth_headers(buyer), product.id)
    r = _set_status(client, auth_headers(db.get(User, seller.user_id)), order["id"], "shipped")
    assert r.status_code == 422
    assert r.json()["code"] == 422000


def test_buyer_can_only_cancel(client, buyer, product, auth_headers):
    headers = auth_headers(buyer)
    order = _place_order(client, headers, product.id)

    r = _set_status(client, headers, order["id"], "processing")
    assert r.status_code == 403
    assert r.json()["code"] == 403101

    data = _ok(_set_status(client, headers, order["id"], "cancelled"))
    assert data["status"] == "cancelled"
    assert data["cancelled_at"] is not None

    r = _set_status(client, headers, order["id"], "cancelled")
    assert r.status_code == 409


def test_payment_confirmation_is_admin_only(client, db, buyer, product, auth_headers):
    order = _place_order(client, auth_headers(buyer), product.id)
    r = client.post(
        f"{API}/orders/{order['id']}/payment",
        headers=auth_headers(buyer),
        json={"reference": "PSK-1"},
    )
    assert r.status_code == 403

    admin_headers = auth_headers(_admin(db))
    data = _ok(
        client.post(f"{API}/orders/{order['id']}/payment", headers=admin_headers, json={"reference": "PSK-1"})
    )
    assert data["payment_status"] == "paid"
    # 重复回调不改变状态
    data = _ok(
        client.post(f"{API}/orders/{order['id']}/payment", headers=admin_headers, json={"reference": "PSK-2"})
    )
    assert data["payment_status"] == "paid"
    assert data["status"] == "pending"


# ---------------------------------------------------------------------------
# 店铺
# ---------------------------------------------------------------------------


def test_seller_orders_filter_by_status(client, db, buyer, seller, product, auth_headers):
    buyer_headers = auth_headers(buyer)
    first = _place_order(client, buyer_headers, product.id)
    _place_order(client, buyer_headers, product.id)
    shop_headers = auth_headers(db.get(User, seller.user_id))
    _ok(_set_status(client, shop_headers, first["id"], "processing"))

    everything = _ok(client.get(f"{API}/seller/orders", headers=shop_headers))
    assert everything["count"] == 2
    processing = _ok(client.get(f"{API}/seller/orders", headers=shop_headers, params={"status": "processing"}))
    assert processing["count"] == 1
    assert processing["data"][0]["id"] == first["id"]


def test_seller_routes_require_a_shop(client, buyer, auth_headers):
    r = client.get(f"{API}/seller/orders", headers=auth_headers(buyer))
    assert r.status_code == 403
    assert r.json()["code"] == 403000


def test_analytics_groups_pickup_and_transit_as_shipped(client, db, buyer, seller, product, auth_headers):
    buyer_headers = auth_headers(buyer)
    shop_headers = auth_headers(db.get(User, seller.user_id))
    pickup = _place_order(client, buyer_headers, product.id)
    transit = _place_order(client, buyer_headers, product.id)
    _place_order(client, buyer_headers, product.id)
    for order, path in (
        (pickup, ["processing", "ready_for_pickup"]),
        (transit, ["processing", "ready_for_pickup", "in_transit"]),
    ):
        for status in path:
            _ok(_set_status(client, shop_headers, order["id"], status))
        crud.mark_order_paid(session=db, order_id=order["id"], reference=f"PSK-{order['id']}")

    stock = db.get(Product, product.id)
    stock.quantity_available = 3
    db.add(stock)
    db.commit()

    data = _ok(client.get(f"{API}/seller/analytics", headers=shop_headers))
    overview = data["overview"]
    assert overview["total_orders"] == 2
    assert overview["shipped_orders"] == 2
    assert overview["total_revenue"] == pickup["seller_amount"] + transit["seller_amount"]
    assert data["top_products"][0]["units_sold"] == 4
    assert data["low_stock_products"][0]["quantity_available"] == 3
    assert len(data["recent_orders"]) == 3
    assert data["recent_orders"][0]["buyer_name"]
    assert sum(day["orders_count"] for day in data["revenue_by_day"]) == 2
    assert data["month_comparison"]["current_month_orders"] == 2


# ---------------------------------------------------------------------------
# 评价
# ---------------------------------------------------------------------------


def test_review_only_after_paid_delivery(client, db, buyer, seller, product, auth_headers):
    headers = auth_headers(buyer)
    order = _place_order(client, headers, product.id)
    params = {"product_id": product.id, "order_id": order["id"]}

    check = _ok(client.get(f"{API}/reviews/eligibility", headers=headers, params=params))
    assert check == {"eligible": False, "reason": "not_purchased"}

    r = client.post(f"{API}/reviews", headers=headers, json={**params, "rating": 5})
    assert r.status_code == 403
    assert r.json()["code"] == 403201
    assert r.json()["data"] == {"reason": "not_purchased"}

    crud.mark_order_paid(session=db, order_id=order["id"], reference="PSK-7")
    check = _ok(client.get(f"{API}/reviews/eligibility", headers=headers, params=params))
    assert check["reason"] == "not_delivered"


def test_review_lifecycle(client, db, buyer, seller, product, auth_headers):
    order = _deliver_paid_order(client, db, buyer, seller, product, auth_headers)
    headers = auth_headers(buyer)

    reviewable = _ok(client.get(f"{API}/reviews/reviewable", headers=headers))
    assert [r["product_id"] for r in reviewable] == [product.id]

    review = _ok(
        client.post(
            f"{API}/reviews",
            headers=headers,
            json={"product_id": product.id, "order_id": order["id"], "rating": 4, "title": "Tasty"},
        )
    )
    assert review["rating"] == 4

    again = client.post(
        f"{API}/reviews",
        headers=headers,
        json={"product_id": product.id, "order_id": order["id"], "rating": 5},
    )
    assert again.status_code == 403
    assert again.json()["data"] == {"reason": "already_reviewed"}
    assert _ok(client.get(f"{API}/reviews/reviewable", headers=headers)) == []

    updated = _ok(client.patch(f"{API}/reviews/{review['id']}", headers=headers, json={"rating": 5}))
    assert updated["rating"] == 5
    assert updated["title"] == "Tasty"

    mine = _ok(client.get(f"{API}/reviews/mine", headers=headers))
    assert mine["count"] == 1

    _ok(client.delete(f"{API}/reviews/{review['id']}", headers=headers))
    assert _ok(client.get(f"{API}/reviews/mine", headers=headers))["count"] == 0


def test_helpful_toggle_and_seller_response(client, db, buyer, seller, product, auth_headers):
    order = _deliver_paid_order(client, db, buyer, seller, product, auth_headers)
    headers = auth_headers(buyer)
    review = _ok(
        client.post(
            f"{API}/reviews",
            headers=headers,
            json={"product_id": product.id, "order_id": order["id"], "rating": 3},
        )
    )

    marked = _ok(client.post(f"{API}/reviews/{review['id']}/helpful", headers=headers))
    assert marked == {"marked": True, "helpful_count": 1}
    listing = _ok(client.get(f"{API}/reviews/product/{product.id}", headers=headers, params={"sort": "helpful"}))
    assert listing["data"][0]["marked_helpful_by_user"] is True
    unmarked = _ok(client.post(f"{API}/reviews/{review['id']}/helpful", headers=headers))
    assert unmarked == {"marked": False, "helpful_count": 0}

    shop_headers = auth_headers(db.get(User, seller.user_id))
    first = _ok(client.post(f"{API}/reviews/{review['id']}/response", headers=shop_headers, json={"response": " Thanks! "}))
    assert first["seller_response"] == "Thanks!"
    second = _ok(client.post(f"{API}/reviews/{review['id']}/response", headers=shop_headers, json={"response": "See you soon"}))
    assert second["seller_response"] == "See you soon"

    blank = client.post(f"{API}/reviews/{review['id']}/response", headers=shop_headers, json={"response": "   "})
    assert blank.status_code == 422

    # 买家不是店铺，不能回复
    r = client.post(f"{API}/reviews/{review['id']}/response", headers=headers, json={"response": "me too"})
    assert r.status_code == 403


def test_other_buyers_cannot_edit_review(client, db, buyer, seller, product, auth_headers):
    order = _deliver_paid_order(client, db, buyer, seller, product, auth_headers)
    review = _ok(
        client.post(
            f"{API}/reviews",
            headers=auth_headers(buyer),
            json={"product_id": product.id, "order_id": order["id"], "rating": 2},
        )
    )
    stranger = User(email="eve@campus.test", first_name="Eve")
    db.add(stranger)
    db.commit()
    r = client.patch(f"{API}/reviews/{review['id']}", headers=auth_headers(stranger), json={"rating": 1})
    assert r.status_code == 404
    assert r.json()["code"] == 404201


def test_health_check(client):
    r = client.get(f"{API}/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_invalid_token_is_unauthorized(client):
    r = client.get(f"{API}/orders/list", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["code"] == 401000
