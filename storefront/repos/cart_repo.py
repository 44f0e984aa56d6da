# storefront/repos/cart_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.schemas import CartOwner


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: str) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def get_active_cart_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def get_by_session(self, session_cart_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.session_cart_id == session_cart_id)
        ).scalar_one_or_none()

    def get_for_owner(self, owner: CartOwner) -> CartModel | None:
        # an authenticated user only ever sees the cart bound to the profile
        if owner.user_id:
            return self.get_active_cart_by_user(owner.user_id)
        if owner.session_cart_id:
            return self.get_by_session(owner.session_cart_id)
        return None

    def lock_cart_for_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .where(CartModel.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def delete_cart_item(self, item: CartItemModel) -> None:
        cart = item.cart
        if cart is not None and item in cart.items:
            cart.items.remove(item)
        self.db.delete(item)
        self.db.flush()

    def update_cart_version(self, cart_id: str, old_version: int, new_data: dict) -> int:
        # UPDATE carts SET ... WHERE id = :id AND version = :old_version
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
        )
        return result.rowcount

    def delete_cart(self, cart: CartModel) -> None:
        self.db.delete(cart)
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
