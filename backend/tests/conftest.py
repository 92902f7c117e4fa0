from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from app import crud
from app.api.deps import get_db
from app.core import security
from app.enums import OrderStatus, UserRole
from app.main import app
from app.models import (
    Order,
    OrderItem,
    OrderStatusHistory,
    Product,
    Review,
    ReviewHelpful,
    Seller,
    User,
)


# 测试订单的下单时间，早于各用例里注入的流转时钟
ORDER_CREATED_AT = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

class RecordingNotifier:
    """记录发出的通知，可以设置为发送时抛异常"""

    def __init__(self) -> None:
        self.buyer_updates: list[tuple[str, str]] = []
        self.seller_alerts: list[str] = []
        self.fail = False

    def notify_buyer_status_change(self, *, order, buyer, status) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.buyer_updates.append((order.order_number, OrderStatus(status).value))

    def notify_seller_new_order(self, *, order, seller_user, items) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.seller_alerts.append(order.order_number)


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
        session.rollback()
        # Clean tables after each test (children first).
        session.exec(delete(ReviewHelpful))
        session.exec(delete(Review))
        session.exec(delete(OrderStatusHistory))
        session.exec(delete(OrderItem))
        session.exec(delete(Order))
        session.exec(delete(Product))
        session.exec(delete(Seller))
        session.exec(delete(User))
        session.commit()


@pytest.fixture(scope="function")
def client(engine) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def notifier(monkeypatch) -> RecordingNotifier:
    recorder = RecordingNotifier()
    monkeypatch.setattr("app.crud.orders.get_notifier", lambda: recorder)
    return recorder


@pytest.fixture
def buyer(db) -> User:
    user = User(email="ada@campus.test", first_name="Ada", last_name="Obi")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def seller(db) -> Seller:
    owner = User(email="shop@campus.test", first_name="Tunde", role=UserRole.seller)
    db.add(owner)
    db.commit()
    shop = Seller(user_id=owner.id, shop_name="Hostel Snacks")
    db.add(shop)
    db.commit()
    db.refresh(shop)
    return shop


@pytest.fixture
def product(db, seller) -> Product:
    item = Product(seller_id=seller.id, name="Jollof pack", price=250_000, quantity_available=10)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def make_order(db, buyer, product) -> Callable[..., Order]:
    """按默认买家、商品创建订单，金额不受最低订单金额影响"""

    def _make(quantity: int = 2, **kwargs) -> Order:
        params = {
            "session": db,
            "buyer_id": buyer.id,
            "lines": [(product.id, quantity)],
            "delivery_name": "Ada Obi",
            "delivery_phone": "+2348000000000",
            "delivery_address": "Block C, Room 12, Moremi Hall",
            "fee_rate": Decimal("5"),
            "minimum_amount": 0,
            "clock": lambda: ORDER_CREATED_AT,
        }
        params.update(kwargs)
        return crud.create_order(**params)

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        token = security.create_access_token(user.id, timedelta(hours=1))
        return {"Authorization": f"Bearer {token}"}

    return _headers
