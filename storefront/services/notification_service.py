# storefront/services/notification_service.py
from decimal import Decimal
from html import escape

from storefront.celery_worker import celery_app
from storefront.data.models.order import OrderModel
from storefront.services.email_client import EmailClient
from storefront.utils.formatting import format_date_time, format_money, order_number
from storefront.utils.logging import get_logger
from storefront.utils.settings import STORE_NAME

logger = get_logger(__name__)


def build_confirmation(order: OrderModel) -> dict:
    """Plain JSON payload for the email task, built from the order joined with buyer and items."""
    paid_at = order.paid_at.isoformat() if order.paid_at else ""
    return {
        "order_id": order.id,
        "order_number": order_number(order.id),
        "order_date": format_date_time(order.created_at),
        "to": order.user.email,
        "full_name": order.user.full_name,
        "items": [
            {
                "name": i.name,
                "quantity": i.quantity,
                "price": format_money(i.price),
                "subtotal": format_money(Decimal(i.price) * i.quantity),
            }
            for i in order.items
        ],
        "shipping_address": dict(order.shipping_address),
        "items_price": format_money(order.items_price),
        "shipping_price": format_money(order.shipping_price),
        "tax_price": format_money(order.tax_price),
        "total_price": format_money(order.total_price),
        # same order + same paid transition -> same key, so retried deliveries collapse
        "idempotency_key": f"order-confirmation/{order.id}/{paid_at}",
    }


def render_confirmation_html(payload: dict) -> str:
    rows = "".join(
        f"<tr><td>{escape(i['name'])}</td><td>{i['quantity']}</td>"
        f"<td>${i['price']}</td><td>${i['subtotal']}</td></tr>"
        for i in payload["items"]
    )
    address = payload["shipping_address"]
    return f"""<!DOCTYPE html>
<html lang="en">
<body style="font-family: Arial, sans-serif;">
  <h1>Thank you for your order!</h1>
  <p>Dear {escape(payload['full_name'])},</p>
  <p>Your order has been confirmed and will be shipped to the address below.</p>
  <p><strong>Order Number:</strong> #{payload['order_number']}<br/>
     <strong>Order Date:</strong> {payload['order_date']}</p>
  <h2>Order Items</h2>
  <table>
    <thead><tr><th>Product</th><th>Qty</th><th>Price</th><th>Total</th></tr></thead>
    <tbody>{rows}</tbody>
  </table>
  <h2>Shipping Address</h2>
  <p>{escape(address['full_name'])}<br/>
     {escape(address['street_address'])}<br/>
     {escape(address['city'])}, {escape(address['postal_code'])}<br/>
     {escape(address['country'])}</p>
  <h2>Order Summary</h2>
  <table>
    <tr><td>Subtotal:</td><td>${payload['items_price']}</td></tr>
    <tr><td>Shipping:</td><td>${payload['shipping_price']}</td></tr>
    <tr><td>Tax:</td><td>${payload['tax_price']}</td></tr>
    <tr><td><strong>Total:</strong></td><td><strong>${payload['total_price']}</strong></td></tr>
  </table>
  <p>Thank you for shopping with {escape(STORE_NAME)}!</p>
</body>
</html>"""


class NotificationService:
    """
    Reacts to the paid transition. Fire and forget: the email goes out from
    a Celery worker and no failure here ever reaches the webhook.
    """

    def on_order_paid(self, order: OrderModel) -> bool:
        try:
            payload = build_confirmation(order)
            send_order_confirmation_task.delay(payload)
        except Exception:
            logger.exception(f"Could not dispatch confirmation for order {order.id}")
            return False

        logger.info(f"Confirmation for order {order.id} queued")
        return True


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(payload: dict):
    subject = f"Order Confirmation - #{payload['order_number']}"
    email_id = EmailClient().send(
        to=payload["to"],
        subject=subject,
        html=render_confirmation_html(payload),
        idempotency_key=payload["idempotency_key"],
    )
    logger.info(f"[NOTIFICATION] Order {payload['order_id']} confirmation sent to {payload['to']} ({email_id})")
    return {"order_id": payload["order_id"], "email_id": email_id, "status": "sent"}
