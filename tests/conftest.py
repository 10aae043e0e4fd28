from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from storefront.app import create_app
from storefront.common.db import build_session_factory, init_db
from storefront.common.errors import InvoiceNotFoundError
from storefront.common.models import Category, Order, OrderItem, Product, User, utcnow
from storefront.common.services import hash_password
from storefront.config import StoreConfig


PASSWORD = "secret123"


class FakeGateway:
    """In-memory stand-in for the PayKeeper client."""

    def __init__(self) -> None:
        self.invoices: Dict[str, Dict] = {}
        self.errors: Dict[str, Exception] = {}
        self.created: List[Dict] = []
        self.lookups: List[str] = []
        self.on_lookup = None

    def create_invoice(self, **kwargs) -> Dict[str, str]:
        self.created.append(kwargs)
        invoice_id = f"inv-{len(self.created)}"
        self.invoices[invoice_id] = {"id": invoice_id, "status": "new", "pay_amount": str(kwargs["amount"])}
        return {"invoice_id": invoice_id, "payment_link": f"https://pay.test/bill/{invoice_id}/"}

    def get_invoice(self, invoice_id: str) -> Dict:
        self.lookups.append(invoice_id)
        if self.on_lookup is not None:
            self.on_lookup(invoice_id)
        if invoice_id in self.errors:
            raise self.errors[invoice_id]
        if invoice_id not in self.invoices:
            raise InvoiceNotFoundError(invoice_id)
        return dict(self.invoices[invoice_id])


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: List[Dict] = []

    def send_order_notification(self, details: Dict) -> bool:
        self.sent.append(details)
        return True


@pytest.fixture
def session_factory():
    factory = build_session_factory("sqlite://")
    init_db(factory)
    return factory


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(session_factory, gateway, mailer):
    config = StoreConfig(background_tasks=False, log_level="WARNING")
    app = create_app(config, session_factory=session_factory, gateway=gateway, mailer=mailer)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(session_factory, email: str = "user@example.com", role: str = "user", **extra) -> str:
    with session_factory() as session:
        user = User(
            first_name=extra.pop("first_name", "Ivan"),
            last_name=extra.pop("last_name", "Petrov"),
            email=email,
            password_hash=hash_password(PASSWORD),
            role=role,
            status=extra.pop("status", "inactive"),
            last_activity=extra.pop("last_activity", utcnow()),
            **extra,
        )
        session.add(user)
        session.flush()
        return user.id


def login(client, email: str) -> Dict[str, str]:
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['access_token']}"}


def make_product(session_factory, name: str = "Coffee", price: str = "10.00", quantity: int = 5) -> str:
    with session_factory() as session:
        category = session.query(Category).filter(Category.name == "Drinks").first()
        if category is None:
            category = Category(name="Drinks")
            session.add(category)
            session.flush()
        product = Product(
            name=name,
            description=f"{name} description",
            price=Decimal(price),
            quantity=quantity,
            weight=250,
            unit="g",
            category_id=category.id,
        )
        session.add(product)
        session.flush()
        return product.id


def make_order(
    session_factory,
    user_id: str,
    *,
    status: str = "pending",
    paykeeper_id: Optional[str] = None,
    total: str = "25.00",
    created_at: Optional[datetime] = None,
) -> str:
    with session_factory() as session:
        order = Order(
            user_id=user_id,
            total_amount=Decimal(total),
            delivery_address="Main st. 1",
            delivery_time=utcnow() + timedelta(days=1),
            delivery_cost=Decimal("0"),
            status=status,
            paykeeper_id=paykeeper_id,
            created_at=created_at or utcnow(),
        )
        order.items = [
            OrderItem(product_id="p-1", name="Coffee", quantity=1, price=Decimal(total), total=Decimal(total))
        ]
        session.add(order)
        session.flush()
        return order.id


def order_row(session_factory, order_id: str) -> Optional[Dict]:
    with session_factory() as session:
        order = session.get(Order, order_id)
        if order is None:
            return None
        return {
            "status": order.status,
            "paykeeper_id": order.paykeeper_id,
            "paid_at": order.paid_at,
            "updated_at": order.updated_at,
        }
