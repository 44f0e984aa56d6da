# storefront/api/routers/products.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import NotFound
from storefront.domain.schemas import ProductOut
from storefront.services.catalog_service import CatalogService, product_to_out

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductOut])
def list_products(category: str | None = Query(None), db: Session = Depends(get_db)):
    return [product_to_out(p) for p in CatalogService(db).list_products(category)]


@router.get("/categories", response_model=List[str])
def list_categories(db: Session = Depends(get_db)):
    return CatalogService(db).list_categories()


@router.get("/id/{product_id}", response_model=ProductOut)
def get_product_by_id(product_id: str, db: Session = Depends(get_db)):
    product = CatalogService(db).get_by_id(product_id)
    if not product:
        raise NotFound("Product not found")
    return product_to_out(product)


@router.get("/{slug}", response_model=ProductOut)
def get_product(slug: str, db: Session = Depends(get_db)):
    product = CatalogService(db).get_by_slug(slug)
    if not product:
        raise NotFound("Product not found")
    return product_to_out(product)
