# app/core/errors.py
"""
Typed application errors.

Every error is an HTTPException so services can raise it directly (the
routers do not need to translate anything), and carries a `kind` so the
exception handlers in app.main can render a structured body:

    {"status": "error", "error": "<kind>", "message": "...", "detail": ...}

Taxonomy:
  - not_found   (404): cart, product, or product-within-cart missing
  - validation  (400): bad input, duplicate natural key, bad query
  - persistence (500): the store failed for reasons outside business rules
"""
from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    kind: str = "error"
    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, extra: Any = None):
        super().__init__(status_code=self.default_status, detail=message)
        self.message = message
        self.extra = extra

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": "error",
            "error": self.kind,
            "message": self.message,
        }
        if self.extra is not None:
            payload["detail"] = self.extra
        return payload


# ----- not found -----


class NotFound(AppError):
    kind = "not_found"
    default_status = status.HTTP_404_NOT_FOUND


class CartNotFound(NotFound):
    def __init__(self, cart_id: Any):
        super().__init__(f"Cart {cart_id} not found", {"cart_id": str(cart_id)})


class ProductNotFound(NotFound):
    def __init__(self, product_ids: Any):
        if isinstance(product_ids, (list, tuple, set)):
            ids = [str(p) for p in product_ids]
            message = f"Products not found: {', '.join(ids)}"
        else:
            ids = [str(product_ids)]
            message = f"Product {product_ids} not found"
        super().__init__(message, {"product_ids": ids})


class ProductNotInCart(NotFound):
    def __init__(self, cart_id: Any, product_id: Any):
        super().__init__(
            f"Product {product_id} is not in cart {cart_id}",
            {"cart_id": str(cart_id), "product_id": str(product_id)},
        )


# ----- validation -----


class ValidationFailed(AppError):
    kind = "validation"
    default_status = status.HTTP_400_BAD_REQUEST


class InvalidQuantity(ValidationFailed):
    def __init__(self, quantity: Any, message: str = "Quantity must be a positive integer"):
        super().__init__(message, {"quantity": quantity})


class InvalidQuery(ValidationFailed):
    pass


class DuplicateProductCode(ValidationFailed):
    def __init__(self, code: str):
        super().__init__(f"A product with code '{code}' already exists", {"code": code})


class InvalidIdentifier(ValidationFailed):
    def __init__(self, value: Any):
        super().__init__(f"Invalid identifier: {value!r}", {"id": str(value)})


# ----- persistence -----


class PersistenceFailure(AppError):
    kind = "persistence"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
