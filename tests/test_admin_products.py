import pytest
from pydantic import ValidationError

from storefront.domain.errors import Conflict, Forbidden, NotFound, ValidationFailed
from storefront.domain.schemas import ProductIn
from storefront.repos.product_repo import ProductRepo
from storefront.services.product_admin_service import ProductAdminService


class FakeStorage:
    def __init__(self):
        self.uploads = []

    def upload(self, path, content, content_type):
        self.uploads.append((path, len(content), content_type))
        return f"https://cdn.test/products/{path}"


def _form(**overrides):
    data = {
        "name": "Za'atar Mix",
        "slug": "zaatar",
        "category": "Spices",
        "brand": "Alshami",
        "description": "Thyme, sumac and sesame",
        "stock": 12,
        "image": "/images/zaatar.jpg",
        "price": "6.5",
    }
    data.update(overrides)
    return ProductIn(**data)


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role="admin")


@pytest.fixture
def service(db):
    return ProductAdminService(db, storage=FakeStorage())


def test_create_product_normalises_price(service, admin):
    product = service.create_product(admin, _form())

    assert product.slug == "zaatar"
    assert str(product.price) == "6.50"


def test_duplicate_slug_gets_suffix(service, admin, make_product):
    make_product(slug="zaatar")
    make_product(slug="zaatar-2")

    product = service.create_product(admin, _form())

    assert product.slug == "zaatar-3"


def test_non_admin_is_rejected(service, make_user):
    shopper = make_user(email="shopper@example.com")

    with pytest.raises(Forbidden):
        service.create_product(shopper, _form())
    with pytest.raises(Forbidden):
        service.create_product(None, _form())


def test_update_to_taken_slug_conflicts(service, admin, make_product):
    make_product(slug="sumac")
    product = service.create_product(admin, _form())

    with pytest.raises(Conflict, match="Slug already exists"):
        service.update_product(admin, product.id, _form(slug="sumac"))


def test_update_changes_fields(db, service, admin):
    product = service.create_product(admin, _form())

    service.update_product(admin, product.id, _form(stock=0, price="7.00", name="Za'atar Blend"))

    stored = ProductRepo(db).get_product(product.id)
    assert stored.stock == 0
    assert stored.name == "Za'atar Blend"


def test_update_and_delete_unknown_product(service, admin):
    with pytest.raises(NotFound):
        service.update_product(admin, "missing", _form())
    with pytest.raises(NotFound):
        service.delete_product(admin, "missing")


def test_delete_product(db, service, admin, make_product):
    product = make_product(slug="sumac")

    service.delete_product(admin, product.id)

    assert ProductRepo(db).get_product(product.id) is None


def test_upload_image_stores_under_generated_name(service, admin):
    url, path = service.upload_image(admin, b"\x89PNG....", "image/png")

    assert path.endswith(".png")
    assert url == f"https://cdn.test/products/{path}"
    assert service.storage.uploads == [(path, 8, "image/png")]


@pytest.mark.parametrize(
    "content, content_type",
    [
        (b"GIF89a", "image/gif"),
        (b"", "image/jpeg"),
        (b"x" * (2 * 1024 * 1024 + 1), "image/jpeg"),
    ],
)
def test_upload_image_validation(service, admin, content, content_type):
    with pytest.raises(ValidationFailed):
        service.upload_image(admin, content, content_type)

    assert service.storage.uploads == []


def test_product_form_validation_messages():
    with pytest.raises(ValidationError) as exc:
        _form(name="ab", price="1.234", stock=-1)

    messages = " ".join(e["msg"] for e in exc.value.errors())
    assert "Name must be at least 3 characters" in messages
    assert "Price must have exactly two decimal places" in messages
    assert len(exc.value.errors()) == 3
