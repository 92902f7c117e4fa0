from __future__ import annotations

from app.enums import OrderStatus
from app.models import Order, OrderItem, User
from app.services import notification_service
from app.services.notification_service import EmailNotifier, format_amount


def _order() -> Order:
    return Order(
        id=1,
        order_number="ORD-20250310-ABCDEF12",
        buyer_id=2,
        seller_id=3,
        total_amount=400_000,
        platform_fee=20_000,
        seller_amount=380_000,
        delivery_name="Ada Obi",
        delivery_phone="+2348000000000",
        delivery_address="Moremi Hall",
    )


def test_format_amount():
    assert format_amount(400_000) == "NGN 4,000.00"
    assert format_amount(5, "USD") == "USD 0.05"


def test_disabled_notifier_only_logs(caplog, monkeypatch):
    def _no_smtp(*args, **kwargs):
        raise AssertionError("SMTP must not be used")

    monkeypatch.setattr(notification_service.smtplib, "SMTP", _no_smtp)
    notifier = EmailNotifier(host=None, port=587, from_email=None)
    buyer = User(email="ada@campus.test", first_name="Ada")
    with caplog.at_level("INFO", logger="app.services.notification_service"):
        notifier.notify_buyer_status_change(order=_order(), buyer=buyer, status=OrderStatus.in_transit)
    assert "would send to=ada@campus.test" in caplog.text
    assert "In Transit" in caplog.text


class _FakeSMTP:
    sent: list[tuple[str, list[str], str]] = []

    def __init__(self, host, port, timeout=None) -> None:
        self.host = host
        self.tls = False

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        return None

    def starttls(self) -> None:
        self.tls = True

    def login(self, user, password) -> None:
        pass

    def sendmail(self, from_addr, to_addrs, msg) -> None:
        _FakeSMTP.sent.append((from_addr, to_addrs, msg))


def test_seller_alert_lists_items(monkeypatch):
    _FakeSMTP.sent = []
    monkeypatch.setattr(notification_service.smtplib, "SMTP", _FakeSMTP)
    notifier = EmailNotifier(
        host="smtp.campus.test",
        port=587,
        user="mailer",
        password="secret",
        from_email="orders@campus.test",
        from_name="Campus Market",
        frontend_url="https://market.campus.test/",
    )
    seller_user = User(email="shop@campus.test", first_name="Tunde")
    items = [
        OrderItem(
            order_id=1,
            product_id=9,
            product_name="Jollof pack",
            product_price=250_000,
            quantity=1,
            subtotal=400_000,
        )
    ]
    notifier.notify_seller_new_order(order=_order(), seller_user=seller_user, items=items)

    ((from_addr, to_addrs, message),) = _FakeSMTP.sent
    assert from_addr == "orders@campus.test"
    assert to_addrs == ["shop@campus.test"]
    assert "New order ORD-20250310-ABCDEF12" in message


def test_buyer_supplied_text_is_escaped_in_emails():
    sent: list[dict] = []
    notifier = EmailNotifier(host=None, port=587)
    notifier.send = lambda **kwargs: sent.append(kwargs)

    order = _order()
    order.delivery_name = "<b>Ada</b>"
    order.delivery_address = '<a href="http://evil.test">Click to verify bank</a>'
    items = [
        OrderItem(
            order_id=1,
            product_id=9,
            product_name="<script>alert(1)</script>",
            product_price=250_000,
            quantity=1,
            subtotal=400_000,
        )
    ]
    seller_user = User(email="shop@campus.test", first_name="<i>Tunde</i>")
    notifier.notify_seller_new_order(order=order, seller_user=seller_user, items=items)
    buyer = User(email="ada@campus.test", first_name="<img src=x>")
    notifier.notify_buyer_status_change(order=order, buyer=buyer, status=OrderStatus.processing)

    seller_html, buyer_html = (mail["html"] for mail in sent)
    assert '<a href="http://evil.test">' not in seller_html
    assert "&lt;a href=&quot;http://evil.test&quot;&gt;" in seller_html
    assert "<script>" not in seller_html
    assert "&lt;b&gt;Ada&lt;/b&gt;" in seller_html
    assert "&lt;i&gt;Tunde&lt;/i&gt;" in seller_html
    assert "<img src=x>" not in buyer_html
    assert "&lt;img src=x&gt;" in buyer_html
