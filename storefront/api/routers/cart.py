# storefront/api/routers/cart.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_cart_owner
from storefront.data.database import get_db
from storefront.domain.schemas import ActionResult, CartItemIn, CartOwner
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=ActionResult)
def get_my_cart(owner: CartOwner = Depends(get_cart_owner), db: Session = Depends(get_db)):
    cart = CartService(db).get_my_cart(owner)
    return ActionResult(success=True, payload=cart.model_dump(mode="json") if cart else None)


@router.post("/items", response_model=ActionResult)
def add_item(
    payload: CartItemIn,
    owner: CartOwner = Depends(get_cart_owner),
    db: Session = Depends(get_db),
):
    cart, message = CartService(db).add_item(owner, payload)
    return ActionResult(success=True, message=message, payload=cart.model_dump(mode="json"))


@router.delete("/items/{product_id}", response_model=ActionResult)
def remove_item(
    product_id: str,
    owner: CartOwner = Depends(get_cart_owner),
    db: Session = Depends(get_db),
):
    cart, message = CartService(db).remove_item(owner, product_id)
    return ActionResult(success=True, message=message, payload=cart.model_dump(mode="json"))
