# storefront/services/storage_client.py
import requests

from storefront.domain.errors import ProviderError
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import PRODUCT_IMAGE_BUCKET, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL

logger = get_logger(__name__)


class StorageClient:
    """Object storage for product images (Supabase Storage REST API)."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        bucket: str | None = None,
        timeout: int = 10,
    ):
        self.base_url = (base_url or SUPABASE_URL).rstrip("/")
        self.service_key = service_key or SUPABASE_SERVICE_ROLE_KEY
        self.bucket = bucket or PRODUCT_IMAGE_BUCKET
        self.timeout = timeout

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    @http_retry()
    def _post(self, path: str, content: bytes, content_type: str) -> requests.Response:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{path}"
        logger.info(f"StorageClient POST {url}")
        return requests.post(
            url,
            data=content,
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
                "Content-Type": content_type,
                "x-upsert": "false",
            },
            timeout=self.timeout,
        )

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        try:
            resp = self._post(path, content, content_type)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Image upload failed for {path}: {e}")
            raise ProviderError("Image could not be uploaded") from e
        return self.public_url(path)
