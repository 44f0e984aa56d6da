import hashlib
import hmac
import json
import os
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# must be set before storefront.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_storefront"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_storefront_test"
os.environ["RESEND_API_KEY"] = "re_test"
os.environ["NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY"] = "pk_test_storefront"

import fakeredis
import pytest

import storefront.data.models  # noqa: F401
from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.domain.schemas import CartOwner, PaymentIntentView
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient
from storefront.services.session_store import SessionStore

WEBHOOK_SECRET = "whsec_storefront_test"

ADDRESS = {
    "full_name": "Layla Haddad",
    "street_address": "12 Spice Lane",
    "city": "Sydney",
    "postal_code": "2000",
    "country": "Australia",
}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


@pytest.fixture
def session_store(redis_client):
    return SessionStore(client=redis_client)


_clock = {"t": datetime(2026, 1, 1, tzinfo=timezone.utc)}


def _next_created_at():
    _clock["t"] += timedelta(seconds=1)
    return _clock["t"]


@pytest.fixture
def make_product(db):
    def _make(slug="arabica", price="10.00", stock=10, category="Coffee", **kw):
        product = ProductModel(
            slug=slug,
            name=kw.pop("name", slug.replace("-", " ").title()),
            category=category,
            brand=kw.pop("brand", "Alshami"),
            description=kw.pop("description", "Freshly packed"),
            stock=stock,
            price=Decimal(price),
            image=kw.pop("image", f"/images/{slug}.jpg"),
            created_at=kw.pop("created_at", _next_created_at()),
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_user(db):
    def _make(email="layla@example.com", role="user", address=None, payment_method=None):
        user = UserModel(
            email=email,
            full_name=email.split("@")[0].title(),
            role=role,
            address=address,
            payment_method=payment_method,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def anon_owner():
    return CartOwner(user_id=None, session_cart_id="8d1f6f0e-5c3b-4f6d-9a55-0c2f8b7e6a11")


class FakePaymentClient(PaymentClient):
    """Keeps intents in memory; signature verification is the real one."""

    def __init__(self):
        super().__init__(secret_key="sk_test_storefront", webhook_secret=WEBHOOK_SECRET)
        self.intents: dict[str, PaymentIntentView] = {}
        self.idempotency_keys: list[str] = []

    def create_intent(self, amount_minor, currency, metadata, idempotency_key):
        n = len(self.intents) + 1
        intent = PaymentIntentView(
            id=f"pi_{n}",
            client_secret=f"pi_{n}_secret_abc",
            status="requires_payment_method",
            amount=amount_minor,
            currency=currency,
            metadata=metadata,
        )
        self.intents[intent.id] = intent
        self.idempotency_keys.append(idempotency_key)
        return intent

    def retrieve_intent(self, intent_id):
        return self.intents[intent_id]

    def set_status(self, intent_id, status):
        self.intents[intent_id] = self.intents[intent_id].model_copy(update={"status": status})


class RecordingNotifications(NotificationService):
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def on_order_paid(self, order):
        if self.fail:
            raise RuntimeError("email provider down")
        self.sent.append((order.id, order.paid_at))
        return True


@pytest.fixture
def payment_client():
    return FakePaymentClient()


@pytest.fixture
def notifications():
    return RecordingNotifications()


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def succeeded_event(order_id: str | None, intent_id: str = "pi_1", event_type: str = "payment_intent.succeeded") -> bytes:
    metadata = {"orderId": order_id} if order_id else {}
    event = {
        "id": "evt_1",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent", "status": "succeeded", "metadata": metadata}},
    }
    return json.dumps(event).encode()
