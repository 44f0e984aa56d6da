# storefront/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_products(self, category: str | None = None) -> list[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.created_at.desc())
        if category:
            stmt = stmt.where(ProductModel.category == category)
        return list(self.db.execute(stmt).scalars().all())

    def list_categories(self) -> list[str]:
        stmt = select(ProductModel.category).distinct().order_by(ProductModel.category)
        return list(self.db.execute(stmt).scalars().all())

    def get_product(self, product_id: str) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_by_slug(self, slug: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(ProductModel.slug == slug)
        ).scalar_one_or_none()

    def slugs_like(self, base: str) -> set[str]:
        stmt = select(ProductModel.slug).where(
            (ProductModel.slug == base) | ProductModel.slug.like(f"{base}-%")
        )
        return set(self.db.execute(stmt).scalars().all())

    def lock_products(self, product_ids: list[str]) -> dict[str, ProductModel]:
        # sorted so concurrent checkouts take row locks in the same order
        stmt = (
            select(ProductModel)
            .where(ProductModel.id.in_(sorted(product_ids)))
            .order_by(ProductModel.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {p.id: p for p in self.db.execute(stmt).scalars().all()}

    def add(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def delete(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        # UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
