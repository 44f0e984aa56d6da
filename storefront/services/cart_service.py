# storefront/services/cart_service.py
from decimal import Decimal

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import Conflict, NotFound, StockExceeded, ValidationFailed
from storefront.domain.schemas import CartItemIn, CartLineItem, CartOut, CartOwner
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.pricing import Totals, calc_totals
from storefront.utils.formatting import format_money
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def cart_to_out(cart: CartModel) -> CartOut:
    return CartOut(
        id=cart.id,
        user_id=cart.user_id,
        session_cart_id=cart.session_cart_id,
        items=[
            CartLineItem(
                product_id=i.product_id,
                name=i.name,
                slug=i.slug,
                image=i.image,
                price=format_money(i.price),
                quantity=i.quantity,
            )
            for i in cart.items
        ],
        items_price=format_money(cart.items_price),
        shipping_price=format_money(cart.shipping_price),
        tax_price=format_money(cart.tax_price),
        total_price=format_money(cart.total_price),
    )


def _error_message(err: dict) -> str:
    msg = str(err.get("msg", ""))
    return msg[len("Value error, "):] if msg.startswith("Value error, ") else msg


def _totals_columns(totals: Totals) -> dict[str, Decimal]:
    return {k: Decimal(v) for k, v in totals.as_dict().items()}


class CartService:
    """
    One active cart per owner (profile or anonymous session).
    commands (add, remove, clear) change state, get_my_cart only reads.

    Stock is checked on add but never reserved; the authoritative check
    happens again when the order is placed.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    # query
    def get_my_cart(self, owner: CartOwner) -> CartOut | None:
        cart = self.repo.get_for_owner(owner)
        if not cart:
            return None
        return cart_to_out(cart)

    # commands
    def add_item(self, owner: CartOwner, payload: CartItemIn) -> tuple[CartOut, str]:
        if not owner.session_cart_id:
            raise NotFound("Cart session not found")

        product = self.products.get_product(payload.product_id)
        if not product:
            raise NotFound("Product not found")

        cart = self.repo.get_for_owner(owner)
        existing_item = None
        if cart:
            existing_item = next((i for i in cart.items if i.product_id == product.id), None)

        if existing_item:
            if product.stock < existing_item.quantity + 1:
                raise StockExceeded("Not enough stock")
            logger.info(
                f"Product {product.id} already in cart {cart.id}, "
                f"quantity {existing_item.quantity} -> {existing_item.quantity + 1}"
            )
            existing_item.quantity += 1
            message = f"{product.name} updated in cart"
        else:
            if product.stock < 1:
                raise StockExceeded("Not enough stock")

            # snapshot from the product row, validated as a line item
            try:
                line = CartLineItem(
                    product_id=product.id,
                    name=product.name,
                    slug=product.slug,
                    image=product.image,
                    price=format_money(product.price),
                    quantity=1,
                )
            except ValidationError as e:
                logger.warning(f"Product {product.id} cannot be added to a cart: {e}")
                raise ValidationFailed([_error_message(err) for err in e.errors()]) from e

            if cart is None:
                cart = self._create_cart(owner)

            position = max((i.position for i in cart.items), default=-1) + 1
            logger.info(f"Adding product {product.id} to cart {cart.id}")
            cart.items.append(
                CartItemModel(
                    product_id=line.product_id,
                    name=line.name,
                    slug=line.slug,
                    image=line.image,
                    price=Decimal(line.price),
                    quantity=line.quantity,
                    position=position,
                )
            )
            message = f"{product.name} added to cart"

        self._save(cart)
        return cart_to_out(cart), message

    def remove_item(self, owner: CartOwner, product_id: str) -> tuple[CartOut, str]:
        cart = self.repo.get_for_owner(owner)
        if not cart:
            raise NotFound("Cart not found")

        item = next((i for i in cart.items if i.product_id == product_id), None)
        if not item:
            raise NotFound("Item not found")

        name = item.name
        if item.quantity > 1:
            item.quantity -= 1
        else:
            self.repo.delete_cart_item(item)

        logger.info(f"Removed one of product {product_id} from cart {cart.id}")
        self._save(cart)
        return cart_to_out(cart), f"{name} removed from cart"

    def clear(self, cart_id: str, commit: bool = True) -> None:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise NotFound("Cart not found")

        cart.items.clear()
        if commit:
            self._save(cart)
        else:
            self.repo.db.flush()
        logger.info(f"Cart {cart_id} cleared")

    # internals
    def _create_cart(self, owner: CartOwner) -> CartModel:
        zero = Decimal("0.00")
        cart = CartModel(
            user_id=owner.user_id,
            session_cart_id=None if owner.user_id else owner.session_cart_id,
            version=1,
            items_price=zero,
            shipping_price=zero,
            tax_price=zero,
            total_price=zero,
        )
        try:
            created = self.repo.create_cart(cart)
        except IntegrityError:
            # a parallel request created the owner's cart first
            self.repo.rollback()
            created = self.repo.get_for_owner(owner)
            if created is None:
                raise
            logger.info(f"Reusing cart {created.id} created concurrently")
            return created

        logger.info(f"Created cart {created.id} (user={owner.user_id}, session={created.session_cart_id})")
        return created

    def _save(self, cart: CartModel) -> None:
        totals = calc_totals(cart.items)

        # optimistic locking on the version column
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={"version": cart.version + 1, **_totals_columns(totals)},
        )
        if rowcount == 0:
            self.repo.rollback()
            raise Conflict("Cart was modified by another request, please try again")

        self.repo.commit()
        logger.info(f"Cart {cart.id} saved, version {cart.version}, total {totals.total_price}")
