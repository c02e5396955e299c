import uuid

import pytest
from pydantic import ValidationError

from app.core.errors import DuplicateProductCode, ProductNotFound
from app.schemas.product import ProductCreate, ProductUpdate
from app.services.broadcaster import PRODUCTS_UPDATE


def _create_payload(**overrides) -> ProductCreate:
    data = {
        "title": "Desk lamp",
        "description": "Warm LED lamp",
        "code": "LAMP-1",
        "price": 25,
        "stock": 4,
        "category": "home",
    }
    data.update(overrides)
    return ProductCreate(**data)


def test_create_product_defaults(session, product_service):
    product = product_service.create_product(session, _create_payload())

    assert product.id is not None
    assert product.status is True
    assert product.thumbnails == []


def test_duplicate_code_is_rejected_and_store_unchanged(session, product_service, product_repo):
    product_service.create_product(session, _create_payload(code="X1"))
    before = [p.id for p in product_repo.list_all(session)]

    with pytest.raises(DuplicateProductCode):
        product_service.create_product(session, _create_payload(code="X1", title="Other"))

    assert [p.id for p in product_repo.list_all(session)] == before


def test_create_publishes_full_listing(session, product_service, publisher):
    product_service.create_product(session, _create_payload(code="A"))
    product_service.create_product(session, _create_payload(code="B"))

    event, listing = publisher.events[-1]
    assert event == PRODUCTS_UPDATE
    assert [p["code"] for p in listing] == ["A", "B"]
    assert isinstance(listing[0]["id"], str)


def test_failed_create_publishes_nothing(session, product_service, publisher):
    product_service.create_product(session, _create_payload(code="A"))
    publisher.events.clear()

    with pytest.raises(DuplicateProductCode):
        product_service.create_product(session, _create_payload(code="A"))

    assert publisher.events == []


def test_delete_publishes_listing_without_the_product(session, product_service, publisher):
    keep = product_service.create_product(session, _create_payload(code="KEEP"))
    gone = product_service.create_product(session, _create_payload(code="GONE"))

    product_service.delete_product(session, gone.id)

    event, listing = publisher.events[-1]
    assert event == PRODUCTS_UPDATE
    assert [p["id"] for p in listing] == [str(keep.id)]


def test_delete_unknown_product(session, product_service):
    with pytest.raises(ProductNotFound):
        product_service.delete_product(session, uuid.uuid4())


def test_update_is_partial_and_not_published(session, product_service, publisher):
    product = product_service.create_product(session, _create_payload())
    publisher.events.clear()

    updated = product_service.update_product(
        session, product.id, ProductUpdate(price=30, stock=0)
    )

    assert updated.price == 30
    assert updated.stock == 0
    assert updated.title == "Desk lamp"
    assert updated.code == "LAMP-1"
    assert publisher.events == []


def test_update_to_taken_code_is_rejected(session, product_service):
    product_service.create_product(session, _create_payload(code="A"))
    b = product_service.create_product(session, _create_payload(code="B"))

    with pytest.raises(DuplicateProductCode):
        product_service.update_product(session, b.id, ProductUpdate(code="A"))

    assert product_service.get_product(session, b.id).code == "B"


def test_update_keeping_own_code_is_allowed(session, product_service):
    a = product_service.create_product(session, _create_payload(code="A"))

    updated = product_service.update_product(session, a.id, ProductUpdate(code="A", title="New"))

    assert updated.title == "New"


def test_update_unknown_product(session, product_service):
    with pytest.raises(ProductNotFound):
        product_service.update_product(session, uuid.uuid4(), ProductUpdate(price=1))


def test_update_rejects_fields_outside_allow_list():
    with pytest.raises(ValidationError):
        ProductUpdate(id=str(uuid.uuid4()))


def test_single_thumbnail_is_wrapped_in_a_list(session, product_service):
    product = product_service.create_product(
        session, _create_payload(thumbnails="front.png")
    )

    assert product.thumbnails == ["front.png"]


@pytest.mark.parametrize(
    "field,value",
    [
        ("title", "   "),
        ("code", ""),
        ("price", -1),
        ("stock", -5),
    ],
)
def test_create_payload_validation(field, value):
    with pytest.raises(ValidationError):
        _create_payload(**{field: value})


def test_create_payload_requires_every_field():
    with pytest.raises(ValidationError):
        ProductCreate(title="Only a title")
