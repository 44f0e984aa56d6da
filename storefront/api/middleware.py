# storefront/api/middleware.py
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from storefront.utils.settings import COOKIE_SECURE, SESSION_CART_COOKIE, SESSION_CART_MAX_AGE

_SKIP_PREFIXES = ("/webhooks", "/health")


class SessionCartMiddleware(BaseHTTPMiddleware):
    """Tags every browser request with an anonymous cart session id, issuing the cookie on first contact."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(_SKIP_PREFIXES):
            return await call_next(request)

        session_cart_id = request.cookies.get(SESSION_CART_COOKIE)
        issued = False
        if not session_cart_id:
            session_cart_id = str(uuid.uuid4())
            issued = True

        request.state.session_cart_id = session_cart_id
        response = await call_next(request)

        if issued:
            response.set_cookie(
                key=SESSION_CART_COOKIE,
                value=session_cart_id,
                max_age=SESSION_CART_MAX_AGE,
                httponly=True,
                samesite="lax",
                secure=COOKIE_SECURE,
            )
        return response
