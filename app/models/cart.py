# app/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Cart(SQLModel, table=True):
    """
    Shopping cart. Line items live in `cart_items`.
    Carts are never deleted implicitly.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartItem(SQLModel, table=True):
    """
    One line of a cart.
    A cart cannot have 2 rows for the same product.

    product_id is intentionally NOT a foreign key: deleting a product
    leaves the line in place (it renders with product = null).
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    position: int = Field(
        default=0,
        ge=0,
        description="Insertion order within the cart",
    )


class CartSession(SQLModel, table=True):
    """
    Binding between an anonymous client session token and its cart.
    """

    __tablename__ = "cart_sessions"

    session_token: str = Field(
        primary_key=True,
        max_length=64,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
