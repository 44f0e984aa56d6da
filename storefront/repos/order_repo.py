# storefront/repos/order_repo.py
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        # no commit, order creation runs inside the caller's transaction
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_with_details(self, order_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(joinedload(OrderModel.user), selectinload(OrderModel.items))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_user_orders(self, user_id: str) -> list[tuple[OrderModel, int]]:
        item_count = (
            select(func.count(OrderItemModel.id))
            .where(OrderItemModel.order_id == OrderModel.id)
            .correlate(OrderModel)
            .scalar_subquery()
        )
        stmt = (
            select(OrderModel, item_count)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc())
        )
        return [(order, count or 0) for order, count in self.db.execute(stmt).all()]

    def mark_paid(self, order_id: str, paid_at: datetime, payment_status: str) -> int:
        # UPDATE orders SET is_paid = true ... WHERE id = :id AND is_paid = false
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.is_paid.is_(False))
            .values(is_paid=True, paid_at=paid_at, payment_status=payment_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def attach_payment_intent(self, order_id: str, intent_id: str, status: str, previous: str | None = None) -> int:
        # only replaces the intent this caller saw, a concurrent attach wins
        current = OrderModel.payment_intent_id.is_(None) if previous is None else OrderModel.payment_intent_id == previous
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.is_paid.is_(False), current)
            .values(payment_intent_id=intent_id, payment_status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
