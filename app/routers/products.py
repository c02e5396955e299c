# app/routers/products.py
import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    ProductCreate,
    ProductPage,
    ProductQuery,
    ProductRead,
    ProductUpdate,
)
from app.services.broadcaster import product_broadcaster
from app.services.catalog_query import CatalogQueryService
from app.services.product_service import ProductService

settings = get_settings()

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo, publisher=product_broadcaster)
query_service = CatalogQueryService(repo, max_limit=settings.MAX_PAGE_LIMIT)


@router.get("", response_model=ProductPage)
def list_products(
    request: Request,
    session: Session = Depends(get_session),
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
    category: str | None = None,
    available: bool | None = None,
    product_status: bool | None = Query(default=None, alias="status"),
    query: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    sort: str | None = None,
):
    """
    List products, paginated.

    - `available=true` keeps products with stock > 0, `false` the sold out ones.
    - `query` matches title or description, case-insensitive.
    - `sort=asc|desc` orders by price; other values are ignored.
    - `prev_link` / `next_link` keep every filter and only change `page`.
    """
    product_query = ProductQuery(
        page=page,
        limit=limit,
        category=category,
        available=available,
        status=product_status,
        query=query,
        min_price=min_price,
        max_price=max_price,
        sort=sort,
    )
    return query_service.list_products(session, product_query, base_path=request.url.path)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single product by id.
    """
    return service.get_product(session, product_id)


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a new product.

    Connected realtime clients receive the refreshed listing.
    """
    return service.create_product(session, payload)


@router.put("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product. Only the fields sent are changed.
    """
    return service.update_product(session, product_id, payload)


@router.delete("/{product_id}", status_code=status.HTTP_200_OK)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    """
    Delete a product.

    Carts that contain it keep their line; it renders with product = null.
    """
    service.delete_product(session, product_id)
    return {"status": "success", "message": "Product deleted successfully"}
