"""
订单通知邮件服务

两类邮件：
- 订单状态变化时通知买家（每个状态只发一次）
- 订单第一次进入 processing 时通知店铺有新订单

没有配置 SMTP（settings.emails_enabled 为 False）时只记录日志，不真正发送，
方便本地开发和测试。调用方在事务提交之后再发通知，发送失败由调用方记录日志后忽略。
"""
from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol

from app.core.config import settings
from app.enums import OrderStatus
from app.models import Order, OrderItem, User

logger = logging.getLogger(__name__)

_STATUS_MESSAGES: dict[OrderStatus, str] = {
    OrderStatus.pending: "Your order has been received and is awaiting confirmation.",
    OrderStatus.processing: "The seller is preparing your order.",
    OrderStatus.ready_for_pickup: "Your order is packed and ready for pickup.",
    OrderStatus.in_transit: "Your order is on its way.",
    OrderStatus.delivered: "Your order has been delivered. Enjoy your purchase!",
    OrderStatus.cancelled: "Your order has been cancelled.",
}


class OrderNotifier(Protocol):
    def notify_buyer_status_change(
        self, *, order: Order, buyer: User, status: OrderStatus
    ) -> None: ...

    def notify_seller_new_order(
        self, *, order: Order, seller_user: User, items: list[OrderItem]
    ) -> None: ...


def format_amount(amount: int, currency: str = "NGN") -> str:
    """kobo 转成展示金额，例如 400000 -> 'NGN 4,000.00'"""
    return f"{currency} {amount // 100:,}.{amount % 100:02d}"


class EmailNotifier:
    """SMTP 邮件通知"""

    def __init__(
        self,
        *,
        host: str | None,
        port: int,
        user: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        use_ssl: bool = False,
        from_email: str | None = None,
        from_name: str | None = None,
        frontend_url: str = "",
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.from_email = from_email
        self.from_name = from_name
        self.frontend_url = frontend_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.from_email)

    def send(self, *, to_email: str, subject: str, html: str) -> None:
        """
        发送一封 HTML 邮件

        未启用 SMTP 时只写日志。SMTP 异常直接抛出，由调用方决定如何处理。
        """
        if not self.enabled:
            logger.info("Email disabled, would send to=%s subject=%s", to_email, subject)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.from_name or "", self.from_email or ""))
        msg["To"] = to_email
        msg.attach(MIMEText(html, "html", "utf-8"))

        smtp_cls = smtplib.SMTP_SSL if self.use_ssl else smtplib.SMTP
        with smtp_cls(self.host, self.port, timeout=30) as server:
            if self.use_tls and not self.use_ssl:
                server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(self.from_email, [to_email], msg.as_string())
        logger.info("Email sent to=%s subject=%s", to_email, subject)

    def notify_buyer_status_change(
        self, *, order: Order, buyer: User, status: OrderStatus
    ) -> None:
        status = OrderStatus(status)
        label = status.value.replace("_", " ").title()
        subject = f"Order {order.order_number}: {label}"
        body = f"""
        <h2>Order update</h2>
        <p>Hi {html.escape(buyer.first_name or buyer.full_name or "there")},</p>
        <p>{_STATUS_MESSAGES[status]}</p>
        <ul>
            <li><strong>Order number:</strong> {html.escape(order.order_number)}</li>
            <li><strong>Status:</strong> {label}</li>
            <li><strong>Total:</strong> {format_amount(order.total_amount, order.currency)}</li>
        </ul>
        <p><a href="{self.frontend_url}/orders/{order.id}">View your order</a></p>
        """
        self.send(to_email=buyer.email, subject=subject, html=body)

    def notify_seller_new_order(
        self, *, order: Order, seller_user: User, items: list[OrderItem]
    ) -> None:
        rows = "".join(
            f"<li>{html.escape(item.product_name)} x {item.quantity} "
            f"({format_amount(item.subtotal, order.currency)})</li>"
            for item in items
        )
        subject = f"New order {order.order_number}"
        body = f"""
        <h2>You have a new order</h2>
        <p>Hi {html.escape(seller_user.first_name or seller_user.full_name or "there")},</p>
        <ul>{rows}</ul>
        <p><strong>Your earnings:</strong> {format_amount(order.seller_amount, order.currency)}</p>
        <p><strong>Deliver to:</strong>
        {html.escape(order.delivery_name)}, {html.escape(order.delivery_phone)}<br/>
        {html.escape(order.delivery_address)}</p>
        <p><a href="{self.frontend_url}/seller/orders/{order.id}">Open order</a></p>
        """
        self.send(to_email=seller_user.email, subject=subject, html=body)


_notifier: EmailNotifier | None = None


def init_notifier() -> EmailNotifier:
    """根据配置创建全局通知服务"""
    global _notifier
    _notifier = EmailNotifier(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_TLS,
        use_ssl=settings.SMTP_SSL,
        from_email=settings.EMAILS_FROM_EMAIL,
        from_name=settings.EMAILS_FROM_NAME or settings.PROJECT_NAME,
        frontend_url=settings.FRONTEND_URL,
    )
    if not settings.emails_enabled:
        logger.warning("SMTP not configured, order emails will only be logged")
    return _notifier


def get_notifier() -> EmailNotifier:
    if _notifier is None:
        return init_notifier()
    return _notifier
