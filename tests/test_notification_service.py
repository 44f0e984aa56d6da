from datetime import datetime, timezone

import pytest
import requests

from storefront.domain.errors import ProviderError
from storefront.domain.schemas import CartItemIn, CartOwner
from storefront.repos.order_repo import OrderRepo
from storefront.services import notification_service
from storefront.services.cart_service import CartService
from storefront.services.email_client import EmailClient
from storefront.services.notification_service import (
    NotificationService,
    build_confirmation,
    render_confirmation_html,
)
from storefront.services.order_service import OrderService
from tests.conftest import ADDRESS


@pytest.fixture
def paid_order(db, make_user, make_product):
    user = make_user(address=ADDRESS, payment_method="Stripe")
    product = make_product(slug="cardamom-pods", name="Cardamom <Green>", price="7.25", stock=5)
    owner = CartOwner(user_id=user.id, session_cart_id="s")
    CartService(db).add_item(owner, CartItemIn(product_id=product.id))
    CartService(db).add_item(owner, CartItemIn(product_id=product.id))
    order = OrderService(db).create_order(user)

    repo = OrderRepo(db)
    repo.mark_paid(order.id, datetime(2026, 3, 4, 15, 4, tzinfo=timezone.utc), payment_status="succeeded")
    repo.commit()
    return repo.get_order_with_details(order.id)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body or {"id": "email_1"}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._body


def test_confirmation_payload(paid_order):
    payload = build_confirmation(paid_order)

    assert payload["to"] == "layla@example.com"
    assert payload["order_number"] == paid_order.id[:8].upper()
    assert payload["items"] == [{"name": "Cardamom <Green>", "quantity": 2, "price": "7.25", "subtotal": "14.50"}]
    assert payload["total_price"] == "26.68"
    assert payload["shipping_address"]["city"] == "Sydney"
    assert payload["idempotency_key"].startswith(f"order-confirmation/{paid_order.id}/2026-03-04")


def test_confirmation_html_escapes_names(paid_order):
    html = render_confirmation_html(build_confirmation(paid_order))

    assert "Cardamom &lt;Green&gt;" in html
    assert "$26.68" in html
    assert "Dear Layla," in html


def test_on_order_paid_sends_through_worker(paid_order, monkeypatch):
    sent = []

    def fake_send(self, to, subject, html, idempotency_key=None):
        sent.append((to, subject, idempotency_key))
        return "email_1"

    monkeypatch.setattr(EmailClient, "send", fake_send)

    assert NotificationService().on_order_paid(paid_order) is True

    assert sent == [
        (
            "layla@example.com",
            f"Order Confirmation - #{paid_order.id[:8].upper()}",
            build_confirmation(paid_order)["idempotency_key"],
        )
    ]


def test_dispatch_failure_is_reported_not_raised(paid_order, monkeypatch):
    def broken_delay(payload):
        raise ConnectionError("broker unreachable")

    monkeypatch.setattr(notification_service.send_order_confirmation_task, "delay", broken_delay)

    assert NotificationService().on_order_paid(paid_order) is False


def test_email_client_sends_idempotency_key(monkeypatch):
    calls = []

    def fake_post(url, json, headers, timeout):
        calls.append((url, json, headers))
        return FakeResponse()

    monkeypatch.setattr("storefront.services.email_client.requests.post", fake_post)

    email_id = EmailClient(api_key="re_key", base_url="https://mail.test/").send(
        to="a@example.com", subject="Hi", html="<p>hi</p>", idempotency_key="order-confirmation/1/x"
    )

    assert email_id == "email_1"
    url, body, headers = calls[0]
    assert url == "https://mail.test/emails"
    assert body["to"] == ["a@example.com"]
    assert headers["Authorization"] == "Bearer re_key"
    assert headers["Idempotency-Key"] == "order-confirmation/1/x"


def test_email_client_wraps_http_errors(monkeypatch):
    monkeypatch.setattr(
        "storefront.services.email_client.requests.post",
        lambda url, json, headers, timeout: FakeResponse(status_code=422),
    )

    with pytest.raises(ProviderError):
        EmailClient(api_key="re_key").send(to="a@example.com", subject="Hi", html="")
