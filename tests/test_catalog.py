import warnings

from sqlalchemy.exc import SAWarning

from storefront.services.catalog_service import CatalogService, product_to_out


def test_unique_slug_appends_next_free_suffix(db, make_product):
    make_product(slug="arabica")
    make_product(slug="arabica-2")

    assert CatalogService(db).find_unique_slug("arabica") == "arabica-3"


def test_unique_slug_returns_base_when_free(db, make_product):
    make_product(slug="arabica-blend")

    assert CatalogService(db).find_unique_slug("arabica") == "arabica"


def test_unique_slug_ignores_the_product_being_edited(db, make_product):
    product = make_product(slug="arabica")

    assert CatalogService(db).find_unique_slug("arabica", exclude_id=product.id) == "arabica"


def test_products_newest_first_and_filtered_by_category(db, make_product):
    make_product(slug="mint", category="Herbs")
    make_product(slug="arabica", category="Coffee")
    make_product(slug="turkish", category="Coffee")

    svc = CatalogService(db)

    assert [p.slug for p in svc.list_products()] == ["turkish", "arabica", "mint"]
    assert [p.slug for p in svc.list_products("Coffee")] == ["turkish", "arabica"]
    assert len(svc.list_products("all")) == 3


def test_categories_are_distinct_and_sorted(db, make_product):
    make_product(slug="saffron", category="Spices")
    make_product(slug="mint", category="Herbs")
    make_product(slug="cardamom", category="Spices")

    with warnings.catch_warnings():
        warnings.simplefilter("error", SAWarning)
        categories = CatalogService(db).list_categories()

    assert categories == ["Herbs", "Spices"]


def test_lookups_return_none_on_miss(db, make_product):
    product = make_product(slug="arabica", price="29.9")
    svc = CatalogService(db)

    assert svc.get_by_slug("robusta") is None
    assert svc.get_by_id("missing") is None
    assert svc.get_by_id(product.id).slug == "arabica"
    assert product_to_out(svc.get_by_slug("arabica")).price == "29.90"
