# storefront/api/routers/admin.py
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from storefront.api.deps import get_admin_user, get_storage_client
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import ActionResult, ImageUploadOut, ProductIn, ProductOut
from storefront.services.catalog_service import CatalogService, product_to_out
from storefront.services.product_admin_service import ProductAdminService
from storefront.services.storage_client import StorageClient
from storefront.utils.settings import MAX_IMAGE_BYTES

router = APIRouter(prefix="/admin/products", tags=["admin"])


def get_service(db: Session, storage: StorageClient | None = None):
    return ProductAdminService(db, storage=storage)


@router.get("", response_model=List[ProductOut])
def list_products(admin: UserModel = Depends(get_admin_user), db: Session = Depends(get_db)):
    return [product_to_out(p) for p in CatalogService(db).list_products()]


@router.post("", response_model=ActionResult, status_code=201)
def create_product(
    payload: ProductIn,
    admin: UserModel = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    product = get_service(db).create_product(admin, payload)
    return ActionResult(
        success=True,
        message="Product created successfully",
        redirect_to="/admin/products",
        payload=product_to_out(product).model_dump(mode="json"),
    )


@router.post("/image", response_model=ActionResult, status_code=201)
def upload_image(
    file: UploadFile = File(...),
    admin: UserModel = Depends(get_admin_user),
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage_client),
):
    # one byte past the limit is enough to reject
    content = file.file.read(MAX_IMAGE_BYTES + 1)
    url, path = get_service(db, storage).upload_image(admin, content, file.content_type)
    return ActionResult(success=True, message="Image uploaded", payload=ImageUploadOut(url=url, path=path).model_dump())


@router.put("/{product_id}", response_model=ActionResult)
def update_product(
    product_id: str,
    payload: ProductIn,
    admin: UserModel = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    product = get_service(db).update_product(admin, product_id, payload)
    return ActionResult(
        success=True,
        message="Product updated successfully",
        redirect_to="/admin/products",
        payload=product_to_out(product).model_dump(mode="json"),
    )


@router.delete("/{product_id}", response_model=ActionResult)
def delete_product(
    product_id: str,
    admin: UserModel = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    get_service(db).delete_product(admin, product_id)
    return ActionResult(success=True, message="Product deleted successfully")
