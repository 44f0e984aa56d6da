# storefront/domain/schemas.py
import re
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, List

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from storefront.utils.settings import DEFAULT_PAYMENT_METHOD, PAYMENT_METHODS

_CURRENCY_RE = re.compile(r"^[0-9]+(\.[0-9]{2})?$")


def _format_number_with_decimal(value) -> str:
    integer, _, decimal = str(value).partition(".")
    return f"{integer}.{decimal.ljust(2, '0')}" if decimal else f"{integer}.00"


def _currency(value: Any) -> str:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError("Price must be a string")
    formatted = _format_number_with_decimal(value.strip())
    if not _CURRENCY_RE.match(formatted):
        raise ValueError("Price must have exactly two decimal places")
    return formatted


def _min_length(label: str, size: int = 3):
    def check(value: str) -> str:
        if len(value.strip()) < size:
            raise ValueError(f"{label} must be at least {size} characters")
        return value.strip()

    return AfterValidator(check)


Currency = Annotated[str, BeforeValidator(_currency)]


# ----------------------------------------------------------------------------
# results / identity
# ----------------------------------------------------------------------------


class ActionResult(BaseModel):
    """Tagged result returned by every mutating endpoint."""

    success: bool
    message: str = ""
    redirect_to: str | None = None
    payload: Any = None


class CartOwner(BaseModel):
    """Who a request acts for: an authenticated profile and/or an anonymous cart session."""

    user_id: str | None = None
    session_cart_id: str | None = None

    model_config = ConfigDict(frozen=True)


class IdentityClaims(BaseModel):
    """Verified claims from the identity provider."""

    subject: str
    email: str
    name: str | None = None
    image: str | None = None


class SignInIn(BaseModel):
    id_token: str = Field(..., min_length=1)


# ----------------------------------------------------------------------------
# cart
# ----------------------------------------------------------------------------


class CartItemIn(BaseModel):
    """Add-to-cart request. Snapshot fields are always taken from the product row."""

    product_id: str = Field(..., min_length=1, description="Product id")


class CartLineItem(BaseModel):
    """Line item snapshot, shared by carts and orders."""

    product_id: str = Field(..., min_length=1, description="Product is required")
    name: Annotated[str, _min_length("Name")]
    slug: Annotated[str, _min_length("Slug")]
    image: str = Field(..., min_length=1, description="Image is required")
    price: Currency
    quantity: int = Field(..., ge=1, description="Quantity must be a positive number")


class CartOut(BaseModel):
    id: str
    user_id: str | None = None
    session_cart_id: str | None = None
    items: List[CartLineItem]
    items_price: str
    shipping_price: str
    tax_price: str
    total_price: str


# ----------------------------------------------------------------------------
# profile / checkout steps
# ----------------------------------------------------------------------------


class ShippingAddress(BaseModel):
    """Shipping address value object, frozen into the order at creation."""

    full_name: Annotated[str, _min_length("Name")]
    street_address: Annotated[str, _min_length("Address")]
    city: Annotated[str, _min_length("City")]
    postal_code: Annotated[str, _min_length("Postal code")]
    country: Annotated[str, _min_length("Country")]


class PaymentMethodIn(BaseModel):
    type: str = Field(DEFAULT_PAYMENT_METHOD, min_length=1)

    @field_validator("type")
    @classmethod
    def recognised(cls, value: str) -> str:
        if value not in PAYMENT_METHODS:
            raise ValueError("Invalid payment method")
        return value


class ProfileUpdateIn(BaseModel):
    full_name: Annotated[str, _min_length("Name")]


class UserOut(BaseModel):
    id: str
    email: str
    full_name: str
    image: str | None = None
    role: str
    address: ShippingAddress | None = None
    payment_method: str | None = None

    model_config = ConfigDict(from_attributes=True)


# ----------------------------------------------------------------------------
# catalog / admin
# ----------------------------------------------------------------------------


class ProductIn(BaseModel):
    """Admin product form (create and update)."""

    name: Annotated[str, _min_length("Name")]
    slug: Annotated[str, _min_length("Slug")]
    category: Annotated[str, _min_length("Category")]
    brand: Annotated[str, _min_length("Brand")]
    description: Annotated[str, _min_length("Description")]
    stock: int = Field(..., ge=0, description="Stock must be a positive number")
    image: str = Field(..., min_length=1, description="Image is required")
    price: Currency


class ProductOut(BaseModel):
    id: str
    slug: str
    name: str
    category: str
    brand: str
    description: str
    stock: int
    price: str
    image: str
    created_at: datetime


class ImageUploadOut(BaseModel):
    url: str
    path: str


# ----------------------------------------------------------------------------
# orders / payments
# ----------------------------------------------------------------------------


class OrderItemOut(CartLineItem):
    order_id: str


class OrderBuyer(BaseModel):
    full_name: str
    email: str


class OrderOut(BaseModel):
    id: str
    user_id: str
    shipping_address: ShippingAddress
    payment_method: str
    items: List[OrderItemOut]
    items_price: str
    shipping_price: str
    tax_price: str
    total_price: str
    is_paid: bool
    paid_at: datetime | None = None
    created_at: datetime
    user: OrderBuyer | None = None
    client_secret: str | None = None
    publishable_key: str | None = None


class OrderSummaryOut(BaseModel):
    id: str
    short_id: str
    created_at: datetime
    is_paid: bool
    paid_at: datetime | None = None
    item_count: int
    total_price: str


class PaymentIntentOut(BaseModel):
    intent_id: str
    client_secret: str
    amount_minor: int
    currency: str


class PaymentIntentView(BaseModel):
    """Subset of the provider's payment intent the checkout cares about."""

    id: str
    client_secret: str | None = None
    status: str
    amount: int
    currency: str
    metadata: dict[str, str] = Field(default_factory=dict)


class WebhookEventData(BaseModel):
    object: dict[str, Any]


class WebhookEvent(BaseModel):
    """Provider event envelope; only the fields the orchestrator reads."""

    id: str
    type: str
    data: WebhookEventData

    model_config = ConfigDict(extra="ignore")

    @property
    def order_id(self) -> str | None:
        metadata = self.data.object.get("metadata") or {}
        return metadata.get("orderId") or None
