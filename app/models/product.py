# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry.

    Identity:
      - id: system-generated UUID, never updatable
      - code: business natural key, unique across the catalog

    `stock` drives availability filtering; `status` is an independent
    publish flag (defaults to True).
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    title: str = Field(
        max_length=255,
        index=True,
        description="Display title",
    )

    description: str = Field(
        description="Long description shown on the product card",
    )

    code: str = Field(
        max_length=64,
        unique=True,
        index=True,
        description="Natural key (unique)",
    )

    price: float = Field(
        ge=0,
        index=True,
        description="Unit price",
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Units currently in stock",
    )

    category: str = Field(
        max_length=100,
        index=True,
        description="Filter dimension for the catalog listing",
    )

    status: bool = Field(
        default=True,
        index=True,
        description="Whether this product is published",
    )

    thumbnails: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Ordered image references",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC), also the natural listing order",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last modification timestamp (UTC)",
    )
