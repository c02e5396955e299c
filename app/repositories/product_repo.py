# app/repositories/product_repo.py
import uuid
from typing import Any, Iterable, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.core.errors import DuplicateProductCode, PersistenceFailure
from app.database import commit_or_raise
from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI routing, no business logic.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_code(self, session: Session, code: str) -> Product | None:
        stmt = select(Product).where(Product.code == code)
        return session.exec(stmt).first()

    def get_many(
        self,
        session: Session,
        product_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        """Resolve several ids in one query; missing ids are simply absent."""
        ids = list(set(product_ids))
        if not ids:
            return {}
        stmt = select(Product).where(Product.id.in_(ids))
        return {p.id: p for p in session.exec(stmt).all()}

    def list_all(self, session: Session) -> list[Product]:
        """Whole catalog in natural (creation) order."""
        stmt = select(Product).order_by(Product.created_at, Product.id)
        return list(session.exec(stmt).all())

    def count(self, session: Session, conditions: Sequence[Any] = ()) -> int:
        stmt = select(func.count()).select_from(Product)
        if conditions:
            stmt = stmt.where(*conditions)
        value = session.exec(stmt).one()
        return int(value or 0)

    def find(
        self,
        session: Session,
        conditions: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Product]:
        stmt = select(Product)
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = stmt.order_by(*order_by, Product.created_at, Product.id)
        stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(session.exec(stmt).all())

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        self._commit(session, product.code)
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        self._commit(session, product.code)
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        commit_or_raise(session)

    @staticmethod
    def _commit(session: Session, code: str) -> None:
        # unique index on `code` catches inserts racing past the service check
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateProductCode(code) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceFailure("Database rejected the product write") from exc
