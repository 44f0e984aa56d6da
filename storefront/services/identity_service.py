# storefront/services/identity_service.py
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.domain.errors import Forbidden, Unauthorized
from storefront.domain.schemas import CartOwner, IdentityClaims
from storefront.repos.cart_repo import CartRepo
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def require_user(user: UserModel | None) -> UserModel:
    if user is None:
        raise Unauthorized()
    return user


def require_admin(user: UserModel | None) -> UserModel:
    user = require_user(user)
    if not user.is_admin:
        raise Forbidden("Admin access required")
    return user


def can_view_order(user: UserModel | None, order: OrderModel) -> bool:
    return user is not None and order.user_id == user.id


class IdentityService:
    """
    Maps requests to cart owners and handles sign-in:
    - provisions a profile the first time an email signs in
    - merges the anonymous cart into the profile (anonymous cart wins)
    """

    def __init__(self, db: Session):
        self.users = UserRepo(db)
        self.carts = CartRepo(db)

    def resolve_owner(self, user: UserModel | None, session_cart_id: str | None) -> CartOwner:
        return CartOwner(user_id=user.id if user else None, session_cart_id=session_cart_id)

    def provision_profile(self, claims: IdentityClaims) -> UserModel:
        existing = self.users.get_by_email(claims.email)
        if existing:
            return existing

        profile = UserModel(
            email=claims.email,
            full_name=claims.name or claims.email.split("@")[0],
            image=claims.image,
            role="user",
        )
        try:
            created = self.users.create_user(profile)
        except IntegrityError:
            # first sign-in raced with another one for the same email
            self.users.rollback()
            created = self.users.get_by_email(claims.email)
            if created is None:
                raise
            return created

        logger.info(f"Provisioned profile {created.id} for {claims.email}")
        return created

    def merge_carts(self, user_id: str, session_cart_id: str | None) -> None:
        """Best effort: failures are logged and sign-in carries on."""
        if not session_cart_id:
            return

        try:
            anonymous = self.carts.get_by_session(session_cart_id)
            if not anonymous:
                return

            stale = self.carts.get_active_cart_by_user(user_id)
            if stale and stale.id != anonymous.id:
                logger.info(f"Discarding saved cart {stale.id} of user {user_id}")
                # flushed before the rebind so the unique user_id index is free
                self.carts.delete_cart(stale)

            anonymous.user_id = user_id
            anonymous.session_cart_id = None
            self.carts.commit()
            logger.info(f"Cart {anonymous.id} bound to user {user_id}")
        except SQLAlchemyError:
            self.carts.rollback()
            logger.exception(f"Cart merge failed for user {user_id}")

    def sign_in(self, claims: IdentityClaims, session_cart_id: str | None) -> UserModel:
        profile = self.provision_profile(claims)
        self.merge_carts(profile.id, session_cart_id)
        return profile
