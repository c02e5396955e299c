from urllib.parse import parse_qs, urlparse

import pytest

from app.core.errors import InvalidQuery
from app.schemas.product import ProductQuery
from app.services.catalog_query import build_page_link


def test_empty_catalog_returns_empty_first_page(session, query_service):
    page = query_service.list_products(session, ProductQuery(page=1, limit=10))

    assert page.items == []
    assert page.total_items == 0
    assert page.total_pages == 0
    assert page.has_next_page is False
    assert page.has_prev_page is False
    assert page.next_link is None
    assert page.prev_link is None


def test_first_page_of_five_with_limit_two(session, query_service, make_product):
    for _ in range(5):
        make_product()

    page = query_service.list_products(session, ProductQuery(page=1, limit=2))

    assert len(page.items) == 2
    assert page.total_pages == 3
    assert page.has_next_page is True
    assert page.has_prev_page is False
    assert page.next_page == 2
    assert page.prev_page is None


def test_last_page_is_partial(session, query_service, make_product):
    for _ in range(5):
        make_product()

    page = query_service.list_products(session, ProductQuery(page=3, limit=2))

    assert len(page.items) == 1
    assert page.has_next_page is False
    assert page.has_prev_page is True
    assert page.prev_page == 2
    assert page.next_page is None


def test_pages_do_not_overlap(session, query_service, make_product):
    for _ in range(5):
        make_product()

    seen = []
    for number in (1, 2, 3):
        page = query_service.list_products(session, ProductQuery(page=number, limit=2))
        seen.extend(item.id for item in page.items)

    assert len(seen) == 5
    assert len(set(seen)) == 5


def test_page_beyond_total_is_empty_not_an_error(session, query_service, make_product):
    make_product()

    page = query_service.list_products(session, ProductQuery(page=7, limit=10))

    assert page.items == []
    assert page.total_pages == 1
    assert page.page == 7
    assert page.has_next_page is False


@pytest.mark.parametrize("limit", [0, -3])
def test_non_positive_limit_is_rejected(session, query_service, limit):
    with pytest.raises(InvalidQuery):
        query_service.list_products(session, ProductQuery(page=1, limit=limit))


def test_page_zero_is_rejected(session, query_service):
    with pytest.raises(InvalidQuery):
        query_service.list_products(session, ProductQuery(page=0, limit=10))


def test_limit_above_maximum_is_rejected(session, query_service):
    with pytest.raises(InvalidQuery):
        query_service.list_products(session, ProductQuery(page=1, limit=101))


def test_category_filter_is_exact(session, query_service, make_product):
    make_product(category="books")
    make_product(category="books")
    make_product(category="Books")
    make_product(category="bookshelves")

    page = query_service.list_products(session, ProductQuery(category="books"))

    assert page.total_items == 2
    assert all(item.category == "books" for item in page.items)


def test_availability_is_stock_based(session, query_service, make_product):
    in_stock = make_product(stock=3, status=False)
    sold_out = make_product(stock=0, status=True)

    available = query_service.list_products(session, ProductQuery(available=True))
    unavailable = query_service.list_products(session, ProductQuery(available=False))

    assert [p.id for p in available.items] == [in_stock.id]
    assert [p.id for p in unavailable.items] == [sold_out.id]


def test_status_filter(session, query_service, make_product):
    make_product(status=True)
    hidden = make_product(status=False)

    page = query_service.list_products(session, ProductQuery(status=False))

    assert [p.id for p in page.items] == [hidden.id]


def test_text_query_matches_title_or_description_case_insensitively(
    session, query_service, make_product
):
    by_title = make_product(title="Red Kettle", description="Boils water")
    by_description = make_product(title="Teapot", description="Pairs with a red KETTLE")
    make_product(title="Mug", description="Holds coffee")

    page = query_service.list_products(session, ProductQuery(query="kettle"))

    assert {p.id for p in page.items} == {by_title.id, by_description.id}


def test_text_query_treats_wildcards_literally(session, query_service, make_product):
    make_product(title="100% cotton shirt")
    make_product(title="1000 thread sheets")

    page = query_service.list_products(session, ProductQuery(query="100%"))

    assert [p.title for p in page.items] == ["100% cotton shirt"]


def test_price_bounds_are_inclusive(session, query_service, make_product):
    make_product(price=5)
    make_product(price=10)
    make_product(price=20)
    make_product(price=25)

    page = query_service.list_products(session, ProductQuery(min_price=10, max_price=20))

    assert sorted(p.price for p in page.items) == [10, 20]


def test_inverted_price_bounds_are_rejected(session, query_service):
    with pytest.raises(InvalidQuery):
        query_service.list_products(session, ProductQuery(min_price=30, max_price=10))


def test_sort_by_price(session, query_service, make_product):
    make_product(price=30)
    make_product(price=10)
    make_product(price=20)

    asc = query_service.list_products(session, ProductQuery(sort="asc"))
    desc = query_service.list_products(session, ProductQuery(sort="DESC"))

    assert [p.price for p in asc.items] == [10, 20, 30]
    assert [p.price for p in desc.items] == [30, 20, 10]


def test_unknown_sort_keeps_natural_order(session, query_service, make_product):
    first = make_product(price=30)
    second = make_product(price=10)
    third = make_product(price=20)

    page = query_service.list_products(session, ProductQuery(sort="popularity"))

    assert [p.id for p in page.items] == [first.id, second.id, third.id]


def test_links_keep_filters_and_change_only_the_page(session, query_service, make_product):
    for _ in range(3):
        make_product(category="games", stock=2)

    query = ProductQuery(page=2, limit=1, category="games", available=True, sort="asc")
    page = query_service.list_products(session, query, base_path="/api/products")

    prev_url = urlparse(page.prev_link)
    next_url = urlparse(page.next_link)
    prev_params = parse_qs(prev_url.query)
    next_params = parse_qs(next_url.query)

    assert prev_url.path == next_url.path == "/api/products"
    assert prev_params["page"] == ["1"]
    assert next_params["page"] == ["3"]
    for params in (prev_params, next_params):
        assert params["limit"] == ["1"]
        assert params["category"] == ["games"]
        assert params["available"] == ["true"]
        assert params["sort"] == ["asc"]


def test_build_page_link_is_pure():
    query = ProductQuery(page=1, limit=5, query="lamp", min_price=2.5)

    first = build_page_link("/products", query, 4)
    second = build_page_link("/products", query, 4)

    assert first == second
    assert query.page == 1
    params = parse_qs(urlparse(first).query)
    assert params == {"limit": ["5"], "query": ["lamp"], "min_price": ["2.5"], "page": ["4"]}


def test_build_page_link_without_target_page():
    assert build_page_link("/products", ProductQuery(), None) is None


def test_unknown_sort_is_dropped_from_links():
    link = build_page_link("/products", ProductQuery(sort="random"), 2)

    assert "sort" not in parse_qs(urlparse(link).query)
