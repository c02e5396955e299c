# app/routers/cart.py
import uuid

from fastapi import APIRouter, Cookie, Depends, Response, status
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartItemAdd, CartItemUpdate, CartRead, CartReplace
from app.services.cart_service import CartService
from app.services.session_service import SessionCartBinder

settings = get_settings()

router = APIRouter(prefix="/carts", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)
binder = SessionCartBinder(cart_repo)


def get_session_cart_id(
    response: Response,
    session: Session = Depends(get_session),
    session_token: str | None = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
) -> uuid.UUID:
    """
    Resolve (or lazily create) the cart bound to the caller's session
    cookie. A new cookie is issued when the token changes.
    """
    token, cart_id = binder.resolve_cart(session, session_token)
    if token != session_token:
        response.set_cookie(
            key=settings.SESSION_COOKIE_NAME,
            value=token,
            max_age=settings.SESSION_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
        )
    return cart_id


def _quantity(payload: CartItemAdd | None) -> int:
    return payload.quantity if payload is not None else 1


# -------- Session cart --------


@router.get("/current", response_model=CartRead)
def get_current_cart(
    session: Session = Depends(get_session),
    cart_id: uuid.UUID = Depends(get_session_cart_id),
):
    """
    Get the cart bound to this browser session, creating it on first use.
    """
    return service.get_cart(session, cart_id)


@router.post("/current/products/{product_id}", response_model=CartRead)
def add_to_current_cart(
    product_id: uuid.UUID,
    payload: CartItemAdd | None = None,
    session: Session = Depends(get_session),
    cart_id: uuid.UUID = Depends(get_session_cart_id),
):
    """
    Add a product to the session cart (one unit unless `quantity` is sent).
    """
    return service.add_product(session, cart_id, product_id, _quantity(payload))


# -------- Carts by id --------


@router.post("", response_model=CartRead, status_code=status.HTTP_201_CREATED)
def create_cart(session: Session = Depends(get_session)):
    """
    Create a new, empty cart.
    """
    return service.create_cart(session)


@router.get("/{cart_id}", response_model=CartRead)
def get_cart(
    cart_id: uuid.UUID,
    populate: bool = True,
    session: Session = Depends(get_session),
):
    """
    Get a cart's lines. With `populate=false` the product data is not
    resolved.
    """
    return service.get_cart(session, cart_id, populate=populate)


@router.post("/{cart_id}/products/{product_id}", response_model=CartRead)
def add_to_cart(
    cart_id: uuid.UUID,
    product_id: uuid.UUID,
    payload: CartItemAdd | None = None,
    session: Session = Depends(get_session),
):
    """
    Add a product to the cart, or increase its quantity if already there.
    """
    return service.add_product(session, cart_id, product_id, _quantity(payload))


@router.put("/{cart_id}", response_model=CartRead)
def replace_cart_products(
    cart_id: uuid.UUID,
    payload: CartReplace,
    session: Session = Depends(get_session),
):
    """
    Replace every product in the cart. Nothing changes if any product is
    unknown.
    """
    return service.replace_products(session, cart_id, payload.products)


@router.put("/{cart_id}/products/{product_id}", response_model=CartRead)
def update_cart_item(
    cart_id: uuid.UUID,
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
):
    """
    Set the quantity of a product in the cart. 0 removes it.
    """
    return service.set_quantity(session, cart_id, product_id, payload.quantity)


@router.delete("/{cart_id}/products/{product_id}", response_model=CartRead)
def remove_cart_item(
    cart_id: uuid.UUID,
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Remove a product from the cart. Removing an absent product is fine.
    """
    return service.remove_product(session, cart_id, product_id)


@router.delete("/{cart_id}", response_model=CartRead)
def clear_cart(
    cart_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Clear the entire cart.

    Returns the empty cart.
    """
    return service.clear_cart(session, cart_id)
