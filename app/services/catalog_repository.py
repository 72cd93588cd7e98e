import logging
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.db import transaction
from app.models import Brand, Category, Product

from . import exceptions

logger = logging.getLogger(__name__)


class CatalogRepository:
    """Thin data access layer over a SQLAlchemy session for catalog records."""

    def __init__(self, db: Session):
        self.db = db

    def find_product(self, product_id: int) -> Optional[Product]:
        return (
            self.db.query(Product)
            .options(
                selectinload(Product.images),
                selectinload(Product.categories),
                selectinload(Product.brand),
            )
            .filter(Product.id == product_id)
            .first()
        )

    def find_brand(self, brand_id: int) -> Optional[Brand]:
        return self.db.get(Brand, brand_id)

    def find_all_categories_by_id(self, category_ids: Iterable[int]) -> list[Category]:
        ids = set(category_ids)
        if not ids:
            return []
        return list(self.db.scalars(select(Category).where(Category.id.in_(ids)).order_by(Category.id)))

    def list_products(self, *, active: Optional[bool] = None) -> list[Product]:
        query = self.db.query(Product).options(
            selectinload(Product.images),
            selectinload(Product.categories),
            selectinload(Product.brand),
        )
        if active is not None:
            query = query.filter(Product.active == active)
        return query.order_by(Product.id).all()

    def list_brands(self) -> list[Brand]:
        return self.db.query(Brand).order_by(Brand.name).all()

    def list_categories(self) -> list[Category]:
        return self.db.query(Category).order_by(Category.name).all()

    def save(self, *entities) -> None:
        """Persist the given entities and everything pending in one commit.

        The commit is the success point: a failed reload afterwards is logged and
        the caller still gets the committed entities back.
        """

        try:
            with transaction(self.db):
                self.db.add_all(entities)
        except SQLAlchemyError as exc:
            raise exceptions.PersistenceError(f"Failed to save catalog changes: {exc}") from exc
        for entity in entities:
            self.reload(entity)

    def reload(self, entity) -> bool:
        try:
            self.db.refresh(entity)
        except SQLAlchemyError as exc:
            logger.warning(
                "Committed %s %s but could not reload it: %s",
                type(entity).__name__,
                getattr(entity, "id", None),
                exc,
            )
            return False
        return True

    def set_active_flag(self, product_id: int, active: bool) -> None:
        try:
            with transaction(self.db):
                self.db.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(active=active)
                    .execution_options(synchronize_session="fetch")
                )
        except SQLAlchemyError as exc:
            raise exceptions.PersistenceError(f"Failed to update product {product_id}: {exc}") from exc
