# storefront/services/user_service.py
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFound
from storefront.domain.schemas import PaymentMethodIn, ProfileUpdateIn, ShippingAddress, UserOut
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def user_to_out(user: UserModel) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        image=user.image,
        role=user.role,
        address=ShippingAddress(**user.address) if user.address else None,
        payment_method=user.payment_method,
    )


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def get_user(self, user_id: str) -> UserModel:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_address(self, user_id: str, address: ShippingAddress) -> UserModel:
        user = self.get_user(user_id)
        user.address = address.model_dump()
        logger.info(f"Shipping address updated for user {user_id}")
        return self.repo.save(user)

    def update_payment_method(self, user_id: str, payload: PaymentMethodIn) -> UserModel:
        user = self.get_user(user_id)
        user.payment_method = payload.type
        logger.info(f"Payment method of user {user_id} set to {payload.type}")
        return self.repo.save(user)

    def update_profile(self, user_id: str, payload: ProfileUpdateIn) -> UserModel:
        user = self.get_user(user_id)
        user.full_name = payload.full_name
        return self.repo.save(user)
