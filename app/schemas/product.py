# app/schemas/product.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def _coerce_thumbnails(v: Any) -> Any:
    """A single reference is accepted and wrapped into a list."""
    if v is None:
        return v
    if isinstance(v, str):
        return [v]
    return v


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    All text fields are required and stripped; `code` must be unique
    (checked by the service, not here).
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=255)
    description: str
    code: str = Field(max_length=64)
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    category: str = Field(max_length=100)
    status: bool = True
    thumbnails: list[str] = Field(default_factory=list)

    @field_validator("title", "description", "code", "category")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("thumbnails", mode="before")
    @classmethod
    def wrap_thumbnails(cls, v: Any) -> Any:
        return _coerce_thumbnails(v) or []


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.

    This is the allow-list of updatable fields: `id` is not here, and any
    unknown key is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    code: str | None = Field(default=None, max_length=64)
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, max_length=100)
    status: bool | None = None
    thumbnails: list[str] | None = None

    @field_validator("title", "description", "code", "category")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)

    @field_validator("thumbnails", mode="before")
    @classmethod
    def wrap_thumbnails(cls, v: Any) -> Any:
        return _coerce_thumbnails(v)


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    title: str
    description: str
    code: str
    price: float
    stock: int
    category: str
    status: bool
    thumbnails: list[str] = []
    created_at: datetime
    updated_at: datetime


SortOrder = Literal["asc", "desc"]


class ProductQuery(SQLModel):
    """
    Listing query: filters + pagination + sort.

    Bounds on page/limit are enforced by the query engine (InvalidQuery),
    not by pydantic, so that direct callers get the same error.
    `sort` is free text: anything other than asc/desc is ignored.
    """

    page: int = 1
    limit: int = 10
    category: str | None = None
    available: bool | None = None
    status: bool | None = None
    query: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    sort: str | None = None

    def sort_order(self) -> SortOrder | None:
        if self.sort is None:
            return None
        value = self.sort.strip().lower()
        if value in ("asc", "desc"):
            return value  # type: ignore[return-value]
        return None

    def link_params(self) -> dict[str, Any]:
        """Active query parameters, in a stable order, without `page`."""
        params: dict[str, Any] = {"limit": self.limit}
        for name in ("category", "available", "status", "query", "min_price", "max_price"):
            value = getattr(self, name)
            if value is not None:
                params[name] = value
        order = self.sort_order()
        if order is not None:
            params["sort"] = order
        return params


class ProductPage(SQLModel):
    """
    One page of the catalog listing with navigation metadata.
    """

    status: str = "success"
    items: list[ProductRead]
    total_items: int
    total_pages: int
    page: int
    limit: int
    prev_page: int | None = None
    next_page: int | None = None
    has_prev_page: bool
    has_next_page: bool
    prev_link: str | None = None
    next_link: str | None = None
