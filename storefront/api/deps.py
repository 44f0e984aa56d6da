# storefront/api/deps.py
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import CartOwner
from storefront.repos.user_repo import UserRepo
from storefront.services.identity_client import IdentityClient
from storefront.services.identity_service import IdentityService, require_admin, require_user
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient
from storefront.services.session_store import SessionStore
from storefront.services.storage_client import StorageClient
from storefront.utils.settings import AUTH_COOKIE, SESSION_CART_COOKIE


# outbound clients are process-wide, overridden in tests
@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore()


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_payment_client() -> PaymentClient:
    return PaymentClient()


@lru_cache
def get_storage_client() -> StorageClient:
    return StorageClient()


@lru_cache
def get_identity_client() -> IdentityClient:
    return IdentityClient()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_auth_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(AUTH_COOKIE)


def get_session_cart_id(request: Request) -> str | None:
    # the middleware issues one on first contact
    return getattr(request.state, "session_cart_id", None) or request.cookies.get(SESSION_CART_COOKIE)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store),
) -> UserModel | None:
    token = get_auth_token(request)
    if not token:
        return None
    user_id = sessions.resolve(token)
    if not user_id:
        return None
    # role and profile are always read fresh from the database
    return UserRepo(db).get_user(user_id)


def get_authenticated_user(user: UserModel | None = Depends(get_current_user)) -> UserModel:
    return require_user(user)


def get_admin_user(user: UserModel | None = Depends(get_current_user)) -> UserModel:
    return require_admin(user)


def get_cart_owner(
    request: Request,
    user: UserModel | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CartOwner:
    return IdentityService(db).resolve_owner(user, get_session_cart_id(request))
