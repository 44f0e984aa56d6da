# storefront/api/routers/me.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_authenticated_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import (
    ActionResult,
    PaymentMethodIn,
    ProfileUpdateIn,
    ShippingAddress,
    UserOut,
)
from storefront.services.order_service import OrderService
from storefront.services.user_service import UserService, user_to_out

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=UserOut)
def get_me(user: UserModel = Depends(get_authenticated_user)):
    return user_to_out(user)


@router.put("", response_model=ActionResult)
def update_profile(
    payload: ProfileUpdateIn,
    user: UserModel = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    updated = UserService(db).update_profile(user.id, payload)
    return ActionResult(success=True, message="User updated successfully", payload=user_to_out(updated).model_dump(mode="json"))


@router.put("/address", response_model=ActionResult)
def update_address(
    payload: ShippingAddress,
    user: UserModel = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    UserService(db).update_address(user.id, payload)
    return ActionResult(success=True, message="User updated successfully", redirect_to="/payment-method")


@router.put("/payment-method", response_model=ActionResult)
def update_payment_method(
    payload: PaymentMethodIn,
    user: UserModel = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    UserService(db).update_payment_method(user.id, payload)
    return ActionResult(success=True, message="User updated successfully", redirect_to="/place-order")


@router.get("/orders", response_model=ActionResult)
def my_orders(user: UserModel = Depends(get_authenticated_user), db: Session = Depends(get_db)):
    orders = OrderService(db).list_my_orders(user)
    return ActionResult(success=True, payload=[o.model_dump(mode="json") for o in orders])
