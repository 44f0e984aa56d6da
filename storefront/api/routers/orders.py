# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_authenticated_user, get_lock_service, get_payment_client
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import ActionResult, OrderOut
from storefront.services.lock_service import LockService
from storefront.services.order_service import OrderService
from storefront.services.payment_client import PaymentClient
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=ActionResult, status_code=201)
def create_order(
    user: UserModel = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    """Places an order from the user's cart."""
    order = OrderService(db, lock_service=lock_service).create_order(user)
    return ActionResult(
        success=True,
        message="Order created",
        redirect_to=f"/order/{order.id}",
        payload={"order_id": order.id},
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    user: UserModel = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
    client: PaymentClient = Depends(get_payment_client),
):
    """
    Order details. Unpaid card orders carry the client secret of their
    payment intent so the browser can complete payment with the provider.
    """
    return PaymentService(db, client=client).get_order_view(order_id, user)


@router.get("/{order_id}/stripe-payment-success", response_model=ActionResult)
def stripe_payment_success(
    order_id: str,
    payment_intent: str | None = Query(None),
    user: UserModel = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
    client: PaymentClient = Depends(get_payment_client),
):
    return PaymentService(db, client=client).verify_redirect_return(order_id, payment_intent, user)
