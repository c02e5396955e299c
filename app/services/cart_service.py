# app/services/cart_service.py
import logging
import uuid
from typing import Iterable

from sqlmodel import Session

from app.core.errors import (
    CartNotFound,
    InvalidQuantity,
    ProductNotFound,
    ProductNotInCart,
)
from app.models.cart import Cart
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartLineIn, CartLineRead, CartRead
from app.schemas.product import ProductRead

logger = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate cart / product existence before any write
      - merge quantities (re-adding a product increments its line)
      - keep every stored quantity >= 1 (0 means "remove")
      - render carts with resolved product data and totals

    All validation happens before the first write, so a failed call never
    leaves a partially applied cart.
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    def _get_cart(self, session: Session, cart_id: uuid.UUID) -> Cart:
        cart = self.cart_repo.get_cart(session, cart_id)
        if not cart:
            raise CartNotFound(cart_id)
        return cart

    def _render(self, session: Session, cart: Cart, populate: bool = True) -> CartRead:
        items = self.cart_repo.list_items(session, cart.id)
        products = (
            self.product_repo.get_many(session, (i.product_id for i in items))
            if populate
            else {}
        )

        lines: list[CartLineRead] = []
        total_qty = 0
        total_price = 0.0

        for it in items:
            total_qty += it.quantity
            product = products.get(it.product_id)
            line_total = None
            if product is not None:
                line_total = product.price * it.quantity
                total_price += line_total

            lines.append(
                CartLineRead(
                    product_id=it.product_id,
                    quantity=it.quantity,
                    product=ProductRead.model_validate(product) if product else None,
                    line_total=line_total,
                )
            )

        return CartRead(
            id=cart.id,
            products=lines,
            total_quantity=total_qty,
            total_price=round(total_price, 2),
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )

    @staticmethod
    def _merge_lines(items: Iterable[CartLineIn]) -> list[tuple[uuid.UUID, int]]:
        """
        Collapse duplicate product ids by summing their quantities, keeping
        the position of the first occurrence.
        """
        merged: dict[uuid.UUID, int] = {}
        for item in items:
            if not _is_int(item.quantity) or item.quantity < 1:
                raise InvalidQuantity(item.quantity)
            merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
        return list(merged.items())

    # ---- public operations ----

    def create_cart(self, session: Session) -> CartRead:
        cart = self.cart_repo.create_cart(session)
        logger.info("Cart %s created", cart.id)
        return self._render(session, cart)

    def get_cart(
        self,
        session: Session,
        cart_id: uuid.UUID,
        populate: bool = True,
    ) -> CartRead:
        cart = self._get_cart(session, cart_id)
        return self._render(session, cart, populate=populate)

    def add_product(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int = 1,
    ) -> CartRead:
        """
        Add a product to the cart, or increase its quantity.

        Rules:
          - quantity must be a positive integer
          - product must exist
          - cart must exist
          - existing line => quantity += n, otherwise append a new line
        """
        if not _is_int(quantity) or quantity <= 0:
            raise InvalidQuantity(quantity)

        if self.product_repo.get_by_id(session, product_id) is None:
            raise ProductNotFound(product_id)

        cart = self._get_cart(session, cart_id)

        self.cart_repo.add_or_increment(session, cart, product_id, quantity)
        logger.info("Cart %s: +%d x product %s", cart_id, quantity, product_id)

        return self._render(session, cart)

    def set_quantity(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int,
    ) -> CartRead:
        """
        Set the quantity of a product already in the cart.

        0 removes the line; nothing is ever stored with quantity 0.
        """
        if not _is_int(quantity) or quantity < 0:
            raise InvalidQuantity(quantity, "Quantity must be zero or a positive integer")

        cart = self._get_cart(session, cart_id)

        if self.cart_repo.get_item(session, cart_id, product_id) is None:
            raise ProductNotInCart(cart_id, product_id)

        if quantity == 0:
            self.cart_repo.delete_item(session, cart, product_id)
            logger.info("Cart %s: product %s removed (quantity 0)", cart_id, product_id)
        else:
            rowcount = self.cart_repo.set_quantity(session, cart, product_id, quantity)
            if rowcount == 0:
                # line removed concurrently between the check and the update
                raise ProductNotInCart(cart_id, product_id)

        return self._render(session, cart)

    def replace_products(
        self,
        session: Session,
        cart_id: uuid.UUID,
        items: Iterable[CartLineIn],
    ) -> CartRead:
        """
        Replace the cart's whole product collection.

        All-or-nothing: every referenced product is resolved first and if any
        is missing the cart is left untouched.

        Not safe against a concurrent mutation of the same cart: this is a
        read-validate-write sequence, not a single conditional statement.
        """
        cart = self._get_cart(session, cart_id)
        lines = self._merge_lines(items)

        found = self.product_repo.get_many(session, (pid for pid, _ in lines))
        missing = [pid for pid, _ in lines if pid not in found]
        if missing:
            raise ProductNotFound(missing)

        self.cart_repo.replace_items(session, cart, lines)
        logger.info("Cart %s: replaced with %d line(s)", cart_id, len(lines))

        return self._render(session, cart)

    def remove_product(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartRead:
        """
        Remove a product from the cart. Removing an absent product is a
        no-op, not an error.
        """
        cart = self._get_cart(session, cart_id)
        removed = self.cart_repo.delete_item(session, cart, product_id)
        if removed:
            logger.info("Cart %s: product %s removed", cart_id, product_id)
        return self._render(session, cart)

    def clear_cart(self, session: Session, cart_id: uuid.UUID) -> CartRead:
        """
        Clear all items from the cart and return the empty cart.
        """
        cart = self._get_cart(session, cart_id)
        self.cart_repo.clear(session, cart)
        logger.info("Cart %s cleared", cart_id)
        return self._render(session, cart)
