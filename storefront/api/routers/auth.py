# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from storefront.api.deps import (
    get_auth_token,
    get_identity_client,
    get_session_cart_id,
    get_session_store,
)
from storefront.data.database import get_db
from storefront.domain.schemas import ActionResult, SignInIn
from storefront.services.identity_client import IdentityClient
from storefront.services.identity_service import IdentityService
from storefront.services.session_store import SessionStore
from storefront.services.user_service import user_to_out
from storefront.utils.settings import AUTH_COOKIE, AUTH_SESSION_TTL_SECONDS, COOKIE_SECURE

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-in", response_model=ActionResult)
def sign_in(
    payload: SignInIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    identity: IdentityClient = Depends(get_identity_client),
    sessions: SessionStore = Depends(get_session_store),
):
    claims = identity.verify_id_token(payload.id_token)
    profile = IdentityService(db).sign_in(claims, get_session_cart_id(request))
    token = sessions.issue(profile.id)

    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        max_age=AUTH_SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=COOKIE_SECURE,
    )
    return ActionResult(
        success=True,
        message="Signed in",
        redirect_to="/",
        payload={"token": token, "user": user_to_out(profile).model_dump(mode="json")},
    )


@router.post("/sign-out", response_model=ActionResult)
def sign_out(
    request: Request,
    response: Response,
    sessions: SessionStore = Depends(get_session_store),
):
    token = get_auth_token(request)
    if token:
        sessions.revoke(token)
    response.delete_cookie(AUTH_COOKIE)
    return ActionResult(success=True, message="Signed out", redirect_to="/")
