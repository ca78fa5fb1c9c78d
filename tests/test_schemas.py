from types import SimpleNamespace

import pytest

from shop_admin.core.exceptions import ValidationError
from shop_admin.schemas.products import ProductFields, ProductFilters, ProductResponse, parse_bool


@pytest.mark.parametrize("raw,expected", [
    ("true", True), ("TRUE", True), ("1", True), ("on", True),
    ("false", False), ("0", False), ("off", False), ("", False),
])
def test_parse_bool(raw, expected):
    assert parse_bool(raw) is expected


@pytest.mark.parametrize("raw", ["yes", "2", "truthy", "null"])
def test_parse_bool_rejects_other_values(raw):
    with pytest.raises(ValueError):
        parse_bool(raw)


def test_from_form_only_sets_submitted_fields():
    fields = ProductFields.from_form(name=None, price="9.99", stock=None, featured=None)
    assert fields.supplied() == {"price": 9.99}


def test_from_form_decodes_and_trims():
    fields = ProductFields.from_form(
        name="  Rose Water ",
        description="   ",
        price="12.50",
        category=" face ",
        stock="3",
        featured="on",
    )
    assert fields.supplied() == {
        "name": "Rose Water",
        "description": None,
        "price": 12.5,
        "category": "face",
        "stock": 3,
        "featured": True,
    }


def test_from_form_empty_stock_and_featured():
    fields = ProductFields.from_form(stock="", featured="")
    assert fields.supplied() == {"stock": 0, "featured": False}


@pytest.mark.parametrize("raw", [
    {"price": "abc"},
    {"price": "-0.01"},
    {"price": "nan"},
    {"price": "inf"},
    {"price": ""},
    {"stock": "1.5"},
    {"stock": "-2"},
    {"stock": "9" * 30},
    {"stock": str(2 ** 63)},
    {"featured": "maybe"},
    {"name": ""},
])
def test_from_form_rejects_invalid_values(raw):
    with pytest.raises(ValidationError) as exc_info:
        ProductFields.from_form(**raw)
    assert exc_info.value.status_code == 400


def test_require_for_create():
    with pytest.raises(ValidationError):
        ProductFields.from_form(price="1").require_for_create()
    with pytest.raises(ValidationError):
        ProductFields.from_form(name="Rose").require_for_create()
    ProductFields.from_form(name="Rose", price="1").require_for_create()


def test_filters_from_query():
    filters = ProductFilters.from_query(category=" face ", featured="1", search="")
    assert filters.category == "face"
    assert filters.featured is True
    assert filters.search is None

    with pytest.raises(ValidationError):
        ProductFilters.from_query(featured="sometimes")


def _row(**overrides):
    row = dict(
        id=1, name="Rose", description=None, price="12.5", image=None,
        category=None, stock=None, featured=1, created_at=None, updated_at=None,
    )
    row.update(overrides)
    return SimpleNamespace(**row)


def test_response_normalizes_stored_row():
    product = ProductResponse.from_product(_row(), "http://shop.test")
    assert product.price == 12.5
    assert product.stock == 0
    assert product.featured is True
    assert product.image is None


def test_response_qualifies_relative_image():
    product = ProductResponse.from_product(_row(image="/uploads/1-2.png"), "http://shop.test/")
    assert product.image == "http://shop.test/uploads/1-2.png"


def test_response_keeps_absolute_image():
    product = ProductResponse.from_product(_row(image="https://cdn.test/a.png"), "http://shop.test")
    assert product.image == "https://cdn.test/a.png"
