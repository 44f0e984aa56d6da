# storefront/services/order_service.py
import redis
from pydantic import ValidationError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.user import UserModel
from storefront.domain.errors import Conflict, Forbidden, NotFound, PreconditionMissing, StockExceeded
from storefront.domain.schemas import (
    OrderBuyer,
    OrderItemOut,
    OrderOut,
    OrderSummaryOut,
    ShippingAddress,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import CartService
from storefront.services.identity_service import can_view_order, require_user
from storefront.services.lock_service import LockService
from storefront.utils.formatting import format_id, format_money
from storefront.utils.logging import get_logger
from storefront.utils.settings import PAYMENT_METHODS

logger = get_logger(__name__)


def order_to_out(order: OrderModel, client_secret: str | None = None, publishable_key: str | None = None) -> OrderOut:
    return OrderOut(
        id=order.id,
        user_id=order.user_id,
        shipping_address=ShippingAddress(**order.shipping_address),
        payment_method=order.payment_method,
        items=[
            OrderItemOut(
                order_id=order.id,
                product_id=i.product_id,
                name=i.name,
                slug=i.slug,
                image=i.image,
                price=format_money(i.price),
                quantity=i.quantity,
            )
            for i in order.items
        ],
        items_price=format_money(order.items_price),
        shipping_price=format_money(order.shipping_price),
        tax_price=format_money(order.tax_price),
        total_price=format_money(order.total_price),
        is_paid=order.is_paid,
        paid_at=order.paid_at,
        created_at=order.created_at,
        user=OrderBuyer(full_name=order.user.full_name, email=order.user.email) if order.user else None,
        client_secret=client_secret,
        publishable_key=publishable_key,
    )


class OrderService:
    """
    Turns the user's cart into an immutable order.

    Preconditions are checked in checkout order (cart, address, payment
    method) so the caller can send the buyer back to the missing step.
    The order insert, stock decrement and cart teardown run in a single
    transaction; any failure rolls all of it back and leaves the cart as it was.
    """

    def __init__(self, db: Session, lock_service: LockService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.products = ProductRepo(db)
        self.cart_service = CartService(db)
        self.lock_service = lock_service

    def create_order(self, user: UserModel | None) -> OrderModel:
        user = require_user(user)

        cart = self.carts.get_active_cart_by_user(user.id)
        if not cart or not cart.items:
            raise PreconditionMissing("Your cart is empty", redirect_to="/cart")

        if not user.address:
            raise PreconditionMissing("No shipping address", redirect_to="/shipping-address")
        try:
            address = ShippingAddress(**user.address)
        except ValidationError:
            raise PreconditionMissing("Shipping address is incomplete", redirect_to="/shipping-address")

        if user.payment_method not in PAYMENT_METHODS:
            raise PreconditionMissing("No payment method", redirect_to="/payment-method")

        token = None
        if self.lock_service is not None:
            token = self.lock_service.acquire_checkout_lock(user.id)
            if token is None:
                raise Conflict("An order is already being placed, please wait")

        try:
            return self._place_order(user, address)
        finally:
            if token is not None:
                self._release_lock(user.id, token)

    def _release_lock(self, user_id: str, token: str) -> None:
        # the order may already be committed; an unreleased lock expires on its ttl
        try:
            self.lock_service.release_checkout_lock(user_id, token)
        except redis.RedisError:
            logger.exception(f"Could not release checkout lock of user {user_id}")

    def _place_order(self, user: UserModel, address: ShippingAddress) -> OrderModel:
        try:
            cart = self.carts.lock_cart_for_user(user.id)
            if not cart or not cart.items:
                raise PreconditionMissing("Your cart is empty", redirect_to="/cart")

            lines = list(cart.items)
            products = self.products.lock_products([line.product_id for line in lines])

            for line in lines:
                product = products.get(line.product_id)
                if product is None:
                    raise NotFound(f"{line.name} is no longer available")
                if product.stock < line.quantity:
                    raise StockExceeded(f"Not enough stock for {line.name}")

            order = OrderModel(
                user_id=user.id,
                shipping_address=address.model_dump(),
                payment_method=user.payment_method,
                items_price=cart.items_price,
                shipping_price=cart.shipping_price,
                tax_price=cart.tax_price,
                total_price=cart.total_price,
                is_paid=False,
                paid_at=None,
                items=[
                    OrderItemModel(
                        product_id=line.product_id,
                        name=line.name,
                        slug=line.slug,
                        image=line.image,
                        price=line.price,
                        quantity=line.quantity,
                        position=position,
                    )
                    for position, line in enumerate(lines)
                ],
            )
            self.repo.add_order(order)

            for line in lines:
                if self.products.decrement_stock(line.product_id, line.quantity) == 0:
                    raise StockExceeded(f"Not enough stock for {line.name}")

            self.cart_service.clear(cart.id, commit=False)
            self.carts.delete_cart(cart)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.id} placed by user {user.id}, total {format_money(order.total_price)}")
        return order

    # queries
    def get_order(self, order_id: str, user: UserModel | None) -> OrderModel:
        user = require_user(user)

        order = self.repo.get_order_with_details(order_id)
        if not order:
            raise NotFound("Order not found")
        if not can_view_order(user, order):
            raise Forbidden("You do not have access to this order")
        return order

    def list_my_orders(self, user: UserModel | None) -> list[OrderSummaryOut]:
        user = require_user(user)
        return [
            OrderSummaryOut(
                id=order.id,
                short_id=format_id(order.id),
                created_at=order.created_at,
                is_paid=order.is_paid,
                paid_at=order.paid_at,
                item_count=count,
                total_price=format_money(order.total_price),
            )
            for order, count in self.repo.list_user_orders(user.id)
        ]

