# app/services/catalog_query.py
"""
Catalog listing: filter predicates, paging and navigation links.

Rules:
  - available=True  -> stock > 0
  - available=False -> stock == 0
  - query           -> case-insensitive substring of title OR description
  - min/max price   -> inclusive bounds
  - sort            -> "asc"/"desc" by price; anything else keeps
                       creation order
  - page beyond the last page returns an empty slice, not an error
"""
import math
from typing import Any
from urllib.parse import urlencode

from sqlalchemy import or_
from sqlmodel import Session

from app.core.errors import InvalidQuery
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductPage, ProductQuery, ProductRead


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_conditions(query: ProductQuery) -> list[Any]:
    conditions: list[Any] = []

    if query.category is not None:
        conditions.append(Product.category == query.category)

    if query.available is True:
        conditions.append(Product.stock > 0)
    elif query.available is False:
        conditions.append(Product.stock == 0)

    if query.status is not None:
        conditions.append(Product.status == query.status)

    if query.query:
        pattern = f"%{_escape_like(query.query.strip())}%"
        conditions.append(
            or_(
                Product.title.ilike(pattern, escape="\\"),
                Product.description.ilike(pattern, escape="\\"),
            )
        )

    if query.min_price is not None:
        conditions.append(Product.price >= query.min_price)
    if query.max_price is not None:
        conditions.append(Product.price <= query.max_price)

    return conditions


def build_order_by(query: ProductQuery) -> list[Any]:
    order = query.sort_order()
    if order == "asc":
        return [Product.price.asc()]
    if order == "desc":
        return [Product.price.desc()]
    return []


def build_page_link(base_path: str, query: ProductQuery, page: int | None) -> str | None:
    """
    Link to `page` of the same listing: every active filter is kept and
    only the page number changes. None when there is no such page.
    """
    if page is None:
        return None
    params: dict[str, Any] = {}
    for key, value in query.link_params().items():
        # urlencode renders True as "True"; query strings use lowercase
        params[key] = str(value).lower() if isinstance(value, bool) else value
    params["page"] = page
    return f"{base_path}?{urlencode(params)}"


class CatalogQueryService:
    """
    Produces paginated, filtered and sorted pages of the catalog.
    """

    def __init__(self, repo: ProductRepository, max_limit: int | None = None):
        self.repo = repo
        self.max_limit = max_limit

    def validate(self, query: ProductQuery) -> None:
        if query.limit is None or query.limit <= 0:
            raise InvalidQuery("limit must be greater than 0", {"limit": query.limit})
        if self.max_limit is not None and query.limit > self.max_limit:
            raise InvalidQuery(
                f"limit must not exceed {self.max_limit}", {"limit": query.limit}
            )
        if query.page is None or query.page < 1:
            raise InvalidQuery("page must be 1 or greater", {"page": query.page})
        if (
            query.min_price is not None
            and query.max_price is not None
            and query.min_price > query.max_price
        ):
            raise InvalidQuery(
                "min_price must not exceed max_price",
                {"min_price": query.min_price, "max_price": query.max_price},
            )

    def list_products(
        self,
        session: Session,
        query: ProductQuery,
        base_path: str = "/products",
    ) -> ProductPage:
        self.validate(query)

        conditions = build_conditions(query)
        total = self.repo.count(session, conditions)
        total_pages = math.ceil(total / query.limit) if total else 0

        offset = (query.page - 1) * query.limit
        if query.page > total_pages:
            products = []
        else:
            products = self.repo.find(
                session,
                conditions,
                order_by=build_order_by(query),
                offset=offset,
                limit=query.limit,
            )

        has_prev = query.page > 1
        has_next = query.page < total_pages
        prev_page = query.page - 1 if has_prev else None
        next_page = query.page + 1 if has_next else None

        return ProductPage(
            items=[ProductRead.model_validate(p) for p in products],
            total_items=total,
            total_pages=total_pages,
            page=query.page,
            limit=query.limit,
            prev_page=prev_page,
            next_page=next_page,
            has_prev_page=has_prev,
            has_next_page=has_next,
            prev_link=build_page_link(base_path, query, prev_page),
            next_link=build_page_link(base_path, query, next_page),
        )
