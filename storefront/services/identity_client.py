# storefront/services/identity_client.py
import requests

from storefront.domain.errors import ProviderError, Unauthorized
from storefront.domain.schemas import IdentityClaims
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import AUTH_GOOGLE_ID, GOOGLE_TOKENINFO_URL

logger = get_logger(__name__)


class IdentityClient:
    """Verifies Google ID tokens through the token info endpoint."""

    def __init__(self, client_id: str | None = None, tokeninfo_url: str | None = None, timeout: int = 5):
        self.client_id = client_id or AUTH_GOOGLE_ID
        self.tokeninfo_url = tokeninfo_url or GOOGLE_TOKENINFO_URL
        self.timeout = timeout

    @http_retry()
    def _fetch(self, id_token: str) -> requests.Response:
        logger.info(f"IdentityClient GET {self.tokeninfo_url}")
        return requests.get(self.tokeninfo_url, params={"id_token": id_token}, timeout=self.timeout)

    def verify_id_token(self, id_token: str) -> IdentityClaims:
        try:
            resp = self._fetch(id_token)
        except requests.RequestException as e:
            raise ProviderError("Identity provider unavailable") from e

        if resp.status_code == 400:
            raise Unauthorized("Invalid identity token")
        if not resp.ok:
            raise ProviderError(f"Identity provider responded with {resp.status_code}")

        data = resp.json()
        if data.get("aud") != self.client_id:
            raise Unauthorized("Identity token was issued for another client")
        if str(data.get("email_verified", "")).lower() != "true" or not data.get("email"):
            raise Unauthorized("Email address is not verified")

        return IdentityClaims(
            subject=data["sub"],
            email=data["email"].lower(),
            name=data.get("name"),
            image=data.get("picture"),
        )
