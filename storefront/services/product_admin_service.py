# storefront/services/product_admin_service.py
import uuid
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.domain.errors import Conflict, Forbidden, NotFound, ValidationFailed
from storefront.domain.schemas import ProductIn
from storefront.repos.product_repo import ProductRepo
from storefront.services.catalog_service import CatalogService
from storefront.services.storage_client import StorageClient
from storefront.utils.logging import get_logger
from storefront.utils.settings import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES

logger = get_logger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


class ProductAdminService:
    """
    Product CRUD for administrators. The role is checked again on every
    call, route guards are not trusted on their own.
    """

    def __init__(self, db: Session, storage: StorageClient | None = None):
        self.repo = ProductRepo(db)
        self.catalog = CatalogService(db)
        self.storage = storage or StorageClient()

    @staticmethod
    def _ensure_admin(actor: UserModel | None):
        if actor is None or not actor.is_admin:
            raise Forbidden("Admin access required")

    def create_product(self, actor: UserModel, payload: ProductIn) -> ProductModel:
        self._ensure_admin(actor)

        slug = self.catalog.find_unique_slug(payload.slug)
        product = ProductModel(
            slug=slug,
            name=payload.name,
            category=payload.category,
            brand=payload.brand,
            description=payload.description,
            stock=payload.stock,
            price=Decimal(payload.price),
            image=payload.image,
        )

        try:
            self.repo.add(product)
            self.repo.commit()
        except IntegrityError as e:
            # lost a race for the slug between lookup and insert
            self.repo.rollback()
            logger.warning(f"Slug clash while creating product {slug}: {e}")
            raise Conflict("Slug already exists.") from e

        logger.info(f"Product {product.id} created with slug {product.slug}")
        return product

    def update_product(self, actor: UserModel, product_id: str, payload: ProductIn) -> ProductModel:
        self._ensure_admin(actor)

        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product not found")

        if payload.slug != product.slug:
            other = self.repo.get_by_slug(payload.slug)
            if other is not None and other.id != product.id:
                raise Conflict("Slug already exists.")

        product.slug = payload.slug
        product.name = payload.name
        product.category = payload.category
        product.brand = payload.brand
        product.description = payload.description
        product.stock = payload.stock
        product.price = Decimal(payload.price)
        product.image = payload.image

        try:
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            raise Conflict("Slug already exists.") from e

        logger.info(f"Product {product.id} updated")
        return product

    def delete_product(self, actor: UserModel, product_id: str) -> None:
        self._ensure_admin(actor)

        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product not found")

        self.repo.delete(product)
        self.repo.commit()
        logger.info(f"Product {product_id} deleted")

    def upload_image(self, actor: UserModel, content: bytes, content_type: str | None) -> tuple[str, str]:
        self._ensure_admin(actor)

        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationFailed("Image must be a JPEG, PNG or WEBP file")
        if not content:
            raise ValidationFailed("Image is required")
        if len(content) > MAX_IMAGE_BYTES:
            raise ValidationFailed(f"Image must be at most {MAX_IMAGE_BYTES // (1024 * 1024)} MB")

        path = f"{uuid.uuid4()}.{_EXTENSIONS[content_type]}"
        url = self.storage.upload(path, content, content_type)
        logger.info(f"Product image uploaded to {path}")
        return url, path
