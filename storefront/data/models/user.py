# storefront/data/models/user.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class UserModel(Base):
    __tablename__ = "user_profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(320), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    image = Column(String(1024), nullable=True)
    role = Column(String(20), nullable=False, default="user")  # user, admin

    address = Column(JSON, nullable=True)
    payment_method = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
