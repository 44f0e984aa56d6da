# storefront/services/payment_service.py
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.domain.errors import Conflict
from storefront.domain.schemas import ActionResult, OrderOut, PaymentIntentOut, WebhookEvent
from storefront.repos.order_repo import OrderRepo
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService, order_to_out
from storefront.services.payment_client import PaymentClient
from storefront.utils.formatting import to_minor_units
from storefront.utils.logging import get_logger
from storefront.utils.settings import STORE_CURRENCY, STRIPE_PAYMENT_METHOD, STRIPE_PUBLISHABLE_KEY

logger = get_logger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
_REUSABLE_STATUSES = {
    "requires_payment_method",
    "requires_confirmation",
    "requires_action",
    "processing",
}


class PaymentService:
    """
    Drives an order through  created -> awaiting payment -> paid.

    Only the signed webhook flips an order to paid, and only once:
    the update is conditional on is_paid being false, so replays are no-ops
    and never send a second confirmation. The redirect check after checkout
    reads the intent status and never writes.
    """

    def __init__(
        self,
        db: Session,
        client: PaymentClient | None = None,
        notifications: NotificationService | None = None,
        currency: str = STORE_CURRENCY,
    ):
        self.repo = OrderRepo(db)
        self.orders = OrderService(db)
        self.client = client or PaymentClient()
        self.notifications = notifications or NotificationService()
        self.currency = currency

    # awaiting payment
    def create_payment_intent(self, order: OrderModel) -> PaymentIntentOut:
        if order.is_paid:
            raise Conflict("Order is already paid")
        if order.payment_method != STRIPE_PAYMENT_METHOD:
            raise Conflict(f"Order is paid with {order.payment_method}, not by card")

        amount = to_minor_units(order.total_price)
        previous = order.payment_intent_id

        if previous:
            intent = self.client.retrieve_intent(previous)
            if intent.status in _REUSABLE_STATUSES and intent.metadata.get("orderId") == order.id:
                return PaymentIntentOut(
                    intent_id=intent.id,
                    client_secret=intent.client_secret,
                    amount_minor=intent.amount,
                    currency=intent.currency,
                )
            logger.info(f"Intent {previous} of order {order.id} is {intent.status}, creating a new one")

        idempotency_key = f"order-{order.id}-intent" if previous is None else f"order-{order.id}-after-{previous}"
        intent = self.client.create_intent(
            amount_minor=amount,
            currency=self.currency,
            metadata={"orderId": order.id},
            idempotency_key=idempotency_key,
        )

        if self.repo.attach_payment_intent(order.id, intent.id, intent.status, previous=previous):
            self.repo.commit()
            order.payment_intent_id = intent.id
            order.payment_status = intent.status
            logger.info(f"Intent {intent.id} attached to order {order.id} ({amount} {self.currency})")
        else:
            self.repo.rollback()
            logger.info(f"Order {order.id} got an intent concurrently, keeping {intent.id} for this client")

        return PaymentIntentOut(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            amount_minor=amount,
            currency=self.currency,
        )

    def get_order_view(self, order_id: str, user: UserModel | None) -> OrderOut:
        order = self.orders.get_order(order_id, user)

        if order.is_paid or order.payment_method != STRIPE_PAYMENT_METHOD:
            return order_to_out(order)

        client_secret = self.create_payment_intent(order).client_secret
        return order_to_out(order, client_secret=client_secret, publishable_key=STRIPE_PUBLISHABLE_KEY or None)

    # paid
    def handle_webhook(self, raw_body: bytes, signature_header: str | None) -> dict:
        """
        Verifies the signature over the raw bytes before anything else.
        Raises PaymentSignatureInvalid (-> 400) or SQLAlchemyError when the
        paid transition could not be stored (-> 500, the provider retries).
        """
        self.client.verify_webhook(raw_body, signature_header)

        try:
            event = WebhookEvent.model_validate_json(raw_body)
        except ValidationError:
            logger.warning("Signed webhook with an unexpected shape ignored")
            return {"received": True}

        if event.type != PAYMENT_SUCCEEDED:
            logger.info(f"Webhook {event.id} of type {event.type} ignored")
            return {"received": True}

        order_id = event.order_id
        if not order_id:
            logger.warning(f"Webhook {event.id} has no orderId in metadata")
            return {"received": True}

        try:
            updated = self.repo.mark_paid(order_id, datetime.now(timezone.utc), payment_status="succeeded")
            self.repo.commit()
        except SQLAlchemyError:
            self.repo.rollback()
            logger.exception(f"Failed to mark order {order_id} as paid")
            raise

        if not updated:
            logger.info(f"Order {order_id} already paid or unknown, webhook {event.id} is a no-op")
            return {"received": True}

        logger.info(f"Order {order_id} marked as paid (event {event.id})")
        self._notify(order_id)
        return {"received": True}

    def _notify(self, order_id: str) -> None:
        # the transition is committed; from here on nothing may fail the webhook
        try:
            order = self.repo.get_order_with_details(order_id)
            if order is None:
                logger.error(f"Order {order_id} could not be reloaded after payment")
                return
            self.notifications.on_order_paid(order)
        except Exception:
            logger.exception(f"Confirmation for order {order_id} failed")

    # redirect back from the provider
    def verify_redirect_return(self, order_id: str, intent_id: str | None, user: UserModel | None) -> ActionResult:
        order = self.orders.get_order(order_id, user)
        back = f"/order/{order.id}"

        if order.is_paid:
            return ActionResult(success=True, message="Order is already paid", redirect_to=back)
        if not intent_id:
            return ActionResult(success=False, message="Missing payment intent", redirect_to=back)

        intent = self.client.retrieve_intent(intent_id)
        if intent.metadata.get("orderId") != order.id or intent.status != "succeeded":
            logger.info(f"Redirect for order {order.id} with intent {intent_id} not confirmed ({intent.status})")
            return ActionResult(success=False, message="Payment not confirmed", redirect_to=back)

        return ActionResult(
            success=True,
            message="Payment successful",
            payload={"order_id": order.id, "payment_intent": intent.id},
        )
