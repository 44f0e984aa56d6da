# storefront/services/email_client.py
import requests

from storefront.domain.errors import ProviderError
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import EMAIL_FROM_ADDRESS, RESEND_API_KEY, RESEND_API_URL

logger = get_logger(__name__)


class EmailClient:
    """Transactional email over the Resend REST API."""

    def __init__(self, api_key: str | None = None, base_url: str | None = None, timeout: int = 5):
        self.api_key = api_key or RESEND_API_KEY
        self.base_url = (base_url or RESEND_API_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _post(self, body: dict, idempotency_key: str | None) -> requests.Response:
        url = f"{self.base_url}/emails"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if idempotency_key:
            # provider drops repeats of the same key
            headers["Idempotency-Key"] = idempotency_key
        logger.info(f"EmailClient POST {url}")
        return requests.post(url, json=body, headers=headers, timeout=self.timeout)

    def send(self, to: str, subject: str, html: str, idempotency_key: str | None = None) -> str | None:
        body = {"from": EMAIL_FROM_ADDRESS, "to": [to], "subject": subject, "html": html}
        try:
            resp = self._post(body, idempotency_key)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ProviderError(f"Email could not be sent: {e}") from e
        return resp.json().get("id")
