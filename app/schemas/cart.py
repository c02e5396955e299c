# app/schemas/cart.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.schemas.product import ProductRead


class CartItemAdd(SQLModel):
    """
    Payload for adding to cart. Omitting the body adds one unit.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for setting the quantity of a cart line.
    0 removes the line.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(ge=0)


class CartLineIn(SQLModel):
    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class CartReplace(SQLModel):
    """
    Payload for replacing the whole product collection of a cart.
    """

    model_config = ConfigDict(extra="forbid")

    products: list[CartLineIn]


class CartLineRead(SQLModel):
    """
    Read model for a single cart line.
    `product` is None when not populated or when the product was deleted.
    """

    product_id: uuid.UUID
    quantity: int
    product: ProductRead | None = None
    line_total: float | None = None


class CartRead(SQLModel):
    """
    Full cart response model with totals.
    total_price only counts lines whose product could be resolved.
    """

    id: uuid.UUID
    products: list[CartLineRead]
    total_quantity: int
    total_price: float
    created_at: datetime
    updated_at: datetime
