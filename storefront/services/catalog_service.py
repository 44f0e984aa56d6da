# storefront/services/catalog_service.py
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.schemas import ProductOut
from storefront.repos.product_repo import ProductRepo
from storefront.utils.formatting import format_money


def product_to_out(product: ProductModel) -> ProductOut:
    return ProductOut(
        id=product.id,
        slug=product.slug,
        name=product.name,
        category=product.category,
        brand=product.brand,
        description=product.description,
        stock=product.stock,
        price=format_money(product.price),
        image=product.image,
        created_at=product.created_at,
    )


class CatalogService:
    """
    Read model for the catalog. Lookup misses return None, the caller
    decides between a 404 and a domain error.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def list_products(self, category: str | None = None) -> list[ProductModel]:
        if category == "all":
            category = None
        return self.repo.list_products(category)

    def list_categories(self) -> list[str]:
        return self.repo.list_categories()

    def get_by_id(self, product_id: str) -> ProductModel | None:
        return self.repo.get_product(product_id)

    def get_by_slug(self, slug: str) -> ProductModel | None:
        return self.repo.get_by_slug(slug)

    def find_unique_slug(self, base: str, exclude_id: str | None = None) -> str:
        """base if free, otherwise base-2, base-3, ... until one is unused."""
        taken = self.repo.slugs_like(base)
        if exclude_id:
            current = self.repo.get_product(exclude_id)
            if current is not None:
                taken.discard(current.slug)

        if base not in taken:
            return base

        suffix = 2
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"
