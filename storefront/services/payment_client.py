# storefront/services/payment_client.py
import stripe

from storefront.domain.errors import PaymentSignatureInvalid, ProviderError
from storefront.domain.schemas import PaymentIntentView
from storefront.utils.logging import get_logger
from storefront.utils.retry import stripe_retry
from storefront.utils.settings import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET

logger = get_logger(__name__)


def _intent_view(intent) -> PaymentIntentView:
    metadata = intent.metadata or {}
    return PaymentIntentView(
        id=intent.id,
        client_secret=intent.client_secret,
        status=intent.status,
        amount=intent.amount,
        currency=intent.currency,
        metadata={k: str(metadata[k]) for k in metadata.keys()},
    )


class PaymentClient:
    """Thin wrapper over the Stripe SDK; returns plain views, not SDK objects."""

    def __init__(self, secret_key: str | None = None, webhook_secret: str | None = None):
        self.secret_key = secret_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET

    @stripe_retry()
    def create_intent(
        self, amount_minor: int, currency: str, metadata: dict[str, str], idempotency_key: str
    ) -> PaymentIntentView:
        logger.info(f"Stripe create payment intent {amount_minor} {currency} {metadata}")
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.secret_key,
                amount=amount_minor,
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
            )
        except stripe.APIConnectionError:
            raise
        except stripe.StripeError as e:
            logger.error(f"Stripe rejected payment intent: {e}")
            raise ProviderError("Payment provider error") from e
        return _intent_view(intent)

    @stripe_retry()
    def retrieve_intent(self, intent_id: str) -> PaymentIntentView:
        logger.info(f"Stripe retrieve payment intent {intent_id}")
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.secret_key)
        except stripe.APIConnectionError:
            raise
        except stripe.StripeError as e:
            logger.error(f"Stripe could not load intent {intent_id}: {e}")
            raise ProviderError("Payment provider error") from e
        return _intent_view(intent)

    def verify_webhook(self, raw_body: bytes, signature_header: str | None) -> None:
        """Checks the signature over the exact bytes received; raises PaymentSignatureInvalid."""
        if not signature_header:
            raise PaymentSignatureInvalid("Webhook signature missing")
        try:
            payload = raw_body.decode("utf-8")
            stripe.WebhookSignature.verify_header(payload, signature_header, self.webhook_secret)
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise PaymentSignatureInvalid("Invalid signature") from e
