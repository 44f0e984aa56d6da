import pytest

from storefront.domain.errors import Conflict, Forbidden, PaymentSignatureInvalid
from storefront.domain.schemas import CartItemIn, CartOwner
from storefront.repos.order_repo import OrderRepo
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from tests.conftest import ADDRESS, RecordingNotifications, sign, succeeded_event


@pytest.fixture
def place_order(db, make_user, make_product):
    def _place(payment_method="Stripe", email="layla@example.com"):
        user = make_user(email=email, address=ADDRESS, payment_method=payment_method)
        product = make_product(slug=f"beans-{email.split('@')[0]}", price="20.00", stock=4)
        CartService(db).add_item(CartOwner(user_id=user.id, session_cart_id="s"), CartItemIn(product_id=product.id))
        return user, OrderService(db).create_order(user)

    return _place


@pytest.fixture
def payments(db, payment_client, notifications):
    return PaymentService(db, client=payment_client, notifications=notifications, currency="aud")


def _reload(db, order_id):
    return OrderRepo(db).get_order_with_details(order_id)


def test_intent_created_in_minor_units_and_reused(payments, payment_client, place_order):
    _, order = place_order()

    first = payments.create_payment_intent(order)
    again = payments.create_payment_intent(order)

    # 20.00 + 10.00 shipping + 3.00 tax
    assert first.amount_minor == 3300
    assert first.currency == "aud"
    assert again.intent_id == first.intent_id
    assert payment_client.idempotency_keys == [f"order-{order.id}-intent"]
    assert payment_client.intents[first.intent_id].metadata == {"orderId": order.id}


def test_cancelled_intent_is_replaced(db, payments, payment_client, place_order):
    _, order = place_order()
    first = payments.create_payment_intent(order)
    payment_client.set_status(first.intent_id, "canceled")

    second = payments.create_payment_intent(order)

    assert second.intent_id != first.intent_id
    assert payment_client.idempotency_keys[-1] == f"order-{order.id}-after-{first.intent_id}"
    assert _reload(db, order.id).payment_intent_id == second.intent_id


def test_intent_only_for_card_orders(payments, place_order):
    _, order = place_order(payment_method="CashOnDelivery")

    with pytest.raises(Conflict):
        payments.create_payment_intent(order)


def test_order_view_carries_client_secret_until_paid(db, payments, place_order):
    user, order = place_order()

    view = payments.get_order_view(order.id, user)
    assert view.client_secret == "pi_1_secret_abc"
    assert view.publishable_key == "pk_test_storefront"

    body = succeeded_event(order.id)
    payments.handle_webhook(body, sign(body))

    assert payments.get_order_view(order.id, user).client_secret is None


def test_order_view_without_card_payment_has_no_secret(payments, payment_client, place_order):
    user, order = place_order(payment_method="PayPal")

    assert payments.get_order_view(order.id, user).client_secret is None
    assert payment_client.intents == {}


def test_webhook_marks_order_paid_once(db, payments, notifications, place_order):
    _, order = place_order()
    body = succeeded_event(order.id)

    assert payments.handle_webhook(body, sign(body)) == {"received": True}
    paid = _reload(db, order.id)
    assert paid.is_paid is True
    assert paid.paid_at is not None
    first_paid_at = paid.paid_at

    # provider retries the same event
    assert payments.handle_webhook(body, sign(body)) == {"received": True}

    assert _reload(db, order.id).paid_at == first_paid_at
    assert len(notifications.sent) == 1
    assert notifications.sent[0][0] == order.id


def test_tampered_body_is_rejected(db, payments, notifications, place_order):
    _, order = place_order()
    signature = sign(succeeded_event(order.id))
    tampered = succeeded_event(order.id, intent_id="pi_forged")

    with pytest.raises(PaymentSignatureInvalid):
        payments.handle_webhook(tampered, signature)

    assert _reload(db, order.id).is_paid is False
    assert notifications.sent == []


@pytest.mark.parametrize("header", [None, "", "t=1,v1=deadbeef"])
def test_missing_or_bogus_signature(db, payments, place_order, header):
    _, order = place_order()

    with pytest.raises(PaymentSignatureInvalid):
        payments.handle_webhook(succeeded_event(order.id), header)

    assert _reload(db, order.id).is_paid is False


def test_signature_with_other_secret(db, payments, place_order):
    _, order = place_order()
    body = succeeded_event(order.id)

    with pytest.raises(PaymentSignatureInvalid):
        payments.handle_webhook(body, sign(body, secret="whsec_somebody_else"))


def test_other_events_are_acknowledged_and_ignored(db, payments, notifications, place_order):
    _, order = place_order()
    body = succeeded_event(order.id, event_type="payment_intent.payment_failed")

    assert payments.handle_webhook(body, sign(body)) == {"received": True}
    assert _reload(db, order.id).is_paid is False
    assert notifications.sent == []


@pytest.mark.parametrize("order_id", [None, "no-such-order"])
def test_event_without_known_order_is_a_noop(payments, notifications, order_id):
    body = succeeded_event(order_id)

    assert payments.handle_webhook(body, sign(body)) == {"received": True}
    assert notifications.sent == []


def test_notification_failure_does_not_fail_webhook(db, payment_client, place_order):
    _, order = place_order()
    payments = PaymentService(db, client=payment_client, notifications=RecordingNotifications(fail=True))
    body = succeeded_event(order.id)

    assert payments.handle_webhook(body, sign(body)) == {"received": True}
    assert _reload(db, order.id).is_paid is True


def test_redirect_return_checks_intent(db, payments, payment_client, place_order):
    user, order = place_order()
    intent = payments.create_payment_intent(order)

    pending = payments.verify_redirect_return(order.id, intent.intent_id, user)
    assert pending.success is False
    assert pending.redirect_to == f"/order/{order.id}"

    missing = payments.verify_redirect_return(order.id, None, user)
    assert missing.success is False

    payment_client.set_status(intent.intent_id, "succeeded")
    ok = payments.verify_redirect_return(order.id, intent.intent_id, user)
    assert ok.success is True
    assert ok.payload == {"order_id": order.id, "payment_intent": intent.intent_id}

    # the redirect never writes the paid state
    assert _reload(db, order.id).is_paid is False


def test_redirect_return_rejects_intent_of_another_order(payments, payment_client, place_order):
    user, order = place_order()
    foreign = payment_client.create_intent(3300, "aud", {"orderId": "another-order"}, "k")
    payment_client.set_status(foreign.id, "succeeded")

    result = payments.verify_redirect_return(order.id, foreign.id, user)

    assert result.success is False


def test_redirect_return_for_paid_order(payments, place_order):
    user, order = place_order()
    body = succeeded_event(order.id)
    payments.handle_webhook(body, sign(body))

    result = payments.verify_redirect_return(order.id, "pi_whatever", user)

    assert result.success is True
    assert result.redirect_to == f"/order/{order.id}"


def test_redirect_return_is_owner_only(payments, place_order, make_user):
    _, order = place_order()
    stranger = make_user(email="stranger@example.com")

    with pytest.raises(Forbidden):
        payments.verify_redirect_return(order.id, "pi_1", stranger)
