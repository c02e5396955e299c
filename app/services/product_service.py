# app/services/product_service.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlmodel import Session

from app.core.errors import DuplicateProductCode, ProductNotFound
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductRead, ProductUpdate
from app.services.broadcaster import PRODUCTS_UPDATE, CatalogPublisher

logger = logging.getLogger(__name__)


class ProductService:
    """
    Business logic for the catalog store.

    Responsibilities:
      - code (natural key) uniqueness on create and update
      - allow-listed partial updates (see ProductUpdate)
      - publishing the full listing after add/delete; updates are not
        published
    """

    def __init__(self, repo: ProductRepository, publisher: CatalogPublisher | None = None):
        self.repo = repo
        self.publisher = publisher

    # ----- Reads -----

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    def listing_payload(self, session: Session) -> list[dict[str, Any]]:
        """Full catalog as JSON-ready dicts, as pushed to observers."""
        return [
            ProductRead.model_validate(p).model_dump(mode="json")
            for p in self.repo.list_all(session)
        ]

    # ----- Writes -----

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        """
        Insert a product.

        Raises:
            DuplicateProductCode: if `code` is already used; the store is
            left unchanged.
        """
        if self.repo.get_by_code(session, payload.code) is not None:
            raise DuplicateProductCode(payload.code)

        product = Product(
            title=payload.title,
            description=payload.description,
            code=payload.code,
            price=payload.price,
            stock=payload.stock,
            category=payload.category,
            status=payload.status,
            thumbnails=list(payload.thumbnails),
        )
        created = self.repo.create(session, product)
        logger.info("Product %s created (code=%s)", created.id, created.code)

        self._publish_listing(session)
        return created

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update of a product.

        - Only fields present in the payload are touched.
        - If code is changed, enforce uniqueness.
        """
        product = self.get_product(session, product_id)
        changes = payload.model_dump(exclude_unset=True)

        # explicit nulls mean "not provided"
        changes = {k: v for k, v in changes.items() if v is not None}

        new_code = changes.get("code")
        if new_code is not None and new_code != product.code:
            other = self.repo.get_by_code(session, new_code)
            if other is not None and other.id != product.id:
                raise DuplicateProductCode(new_code)

        if "title" in changes:
            product.title = changes["title"]
        if "description" in changes:
            product.description = changes["description"]
        if "code" in changes:
            product.code = changes["code"]
        if "price" in changes:
            product.price = changes["price"]
        if "stock" in changes:
            product.stock = changes["stock"]
        if "category" in changes:
            product.category = changes["category"]
        if "status" in changes:
            product.status = changes["status"]
        if "thumbnails" in changes:
            product.thumbnails = list(changes["thumbnails"])

        product.updated_at = datetime.now(timezone.utc)
        return self.repo.update(session, product)

    def delete_product(self, session: Session, product_id: uuid.UUID) -> None:
        """
        Delete a product by id. Carts referencing it are left as they are.
        """
        product = self.get_product(session, product_id)
        self.repo.delete(session, product)
        logger.info("Product %s deleted", product_id)

        self._publish_listing(session)

    # ----- Helpers -----

    def _publish_listing(self, session: Session) -> None:
        if self.publisher is None:
            return
        # the write is already committed; a broken push must not fail it
        try:
            self.publisher.publish(PRODUCTS_UPDATE, self.listing_payload(session))
        except Exception:
            logger.exception("Could not publish the product listing")
