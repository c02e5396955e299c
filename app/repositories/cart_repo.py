# app/repositories/cart_repo.py
import uuid
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.core.errors import PersistenceFailure
from app.database import commit_or_raise
from app.models.cart import Cart, CartItem, CartSession


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CartRepository:
    """
    Data access layer for carts, cart lines and session bindings.

    Single-line writes are single UPDATE/DELETE statements so two requests
    touching the same line cannot lose each other's update. Every write
    method commits its own unit of work.
    """

    # ----- Carts -----

    def create_cart(self, session: Session) -> Cart:
        cart = Cart()
        session.add(cart)
        commit_or_raise(session)
        session.refresh(cart)
        return cart

    def get_cart(self, session: Session, cart_id: uuid.UUID) -> Cart | None:
        return session.get(Cart, cart_id)

    # ----- Lines (reads) -----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.position, CartItem.id)
        )
        return list(session.exec(stmt).all())

    def get_item(
        self, session: Session, cart_id: uuid.UUID, product_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def _next_position(self, session: Session, cart_id: uuid.UUID) -> int:
        stmt = select(func.max(CartItem.position)).where(CartItem.cart_id == cart_id)
        current = session.exec(stmt).one()
        return 0 if current is None else int(current) + 1

    # ----- Lines (writes) -----

    def add_or_increment(
        self,
        session: Session,
        cart: Cart,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        """
        quantity = quantity + n for an existing line, otherwise append a new
        line at the end of the cart.
        """
        if self._increment(session, cart, product_id, quantity):
            return

        item = CartItem(
            cart_id=cart.id,
            product_id=product_id,
            quantity=quantity,
            position=self._next_position(session, cart.id),
        )
        session.add(item)
        cart.updated_at = _now()
        session.add(cart)
        try:
            session.commit()
        except IntegrityError as exc:
            # another request appended the same product first: merge into it
            session.rollback()
            if not self._increment(session, cart, product_id, quantity):
                raise PersistenceFailure("Could not add the product to the cart") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceFailure("Could not add the product to the cart") from exc

    def _increment(
        self,
        session: Session,
        cart: Cart,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        stmt = (
            update(CartItem)
            .where(CartItem.cart_id == cart.id, CartItem.product_id == product_id)
            .values(quantity=CartItem.quantity + quantity)
        )
        result = session.execute(stmt)
        if result.rowcount == 0:
            return False
        self._touch(session, cart)
        commit_or_raise(session)
        return True

    def set_quantity(
        self,
        session: Session,
        cart: Cart,
        product_id: uuid.UUID,
        quantity: int,
    ) -> int:
        """Set an existing line's quantity. Returns the number of rows hit."""
        stmt = (
            update(CartItem)
            .where(CartItem.cart_id == cart.id, CartItem.product_id == product_id)
            .values(quantity=quantity)
        )
        rowcount = session.execute(stmt).rowcount
        self._touch(session, cart)
        commit_or_raise(session)
        return rowcount

    def delete_item(
        self,
        session: Session,
        cart: Cart,
        product_id: uuid.UUID,
    ) -> int:
        stmt = delete(CartItem).where(
            CartItem.cart_id == cart.id, CartItem.product_id == product_id
        )
        rowcount = session.execute(stmt).rowcount
        if rowcount:
            self._touch(session, cart)
        commit_or_raise(session)
        return rowcount

    def clear(self, session: Session, cart: Cart) -> int:
        stmt = delete(CartItem).where(CartItem.cart_id == cart.id)
        rowcount = session.execute(stmt).rowcount
        self._touch(session, cart)
        commit_or_raise(session)
        return rowcount

    def replace_items(
        self,
        session: Session,
        cart: Cart,
        lines: Iterable[tuple[uuid.UUID, int]],
    ) -> None:
        """
        Swap the whole product collection in one transaction.

        Callers validate `lines` beforehand; this is a plain
        delete-then-insert with no re-check.
        """
        session.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        for position, (product_id, quantity) in enumerate(lines):
            session.add(
                CartItem(
                    cart_id=cart.id,
                    product_id=product_id,
                    quantity=quantity,
                    position=position,
                )
            )
        self._touch(session, cart)
        commit_or_raise(session)

    @staticmethod
    def _touch(session: Session, cart: Cart) -> None:
        cart.updated_at = _now()
        session.add(cart)

    # ----- Session bindings -----

    def get_binding(self, session: Session, token: str) -> CartSession | None:
        return session.get(CartSession, token)

    def bind_session(
        self,
        session: Session,
        token: str,
        cart_id: uuid.UUID,
    ) -> CartSession:
        binding = session.get(CartSession, token)
        if binding is None:
            binding = CartSession(session_token=token, cart_id=cart_id)
        else:
            binding.cart_id = cart_id
        session.add(binding)
        commit_or_raise(session)
        session.refresh(binding)
        return binding
