from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.cache import cache, invalidate_cache
from app.core.config import get_settings
from app.core.locking import get_lock_redis, make_lock
from app.models import Brand, Category, Product, ProductImage

from . import exceptions
from .blob_store import LocalBlobStore
from .catalog_repository import CatalogRepository
from .image_reconciliation import reconcile_images

logger = logging.getLogger(__name__)
leak_logger = logging.getLogger("catalog.storage_leak")

PRODUCT_NAMESPACE = "products"

PRODUCT_FIELDS = ("name", "listed_price", "selling_price", "description", "stock", "active")


@dataclass(slots=True)
class ImageUpload:
    filename: Optional[str]
    content: bytes | BinaryIO


class ProductCatalogService:
    """Creates and updates products together with the image files they own.

    Image blobs and product rows live in different stores, so writes follow a
    fixed order: new blobs are stored first, the rows are committed in one
    transaction, and blobs of dropped images are deleted only after that
    commit succeeded. A failure at any point never removes a blob that a
    committed row still points at.
    """

    def __init__(self, db: Session, blob_store: LocalBlobStore):
        self.db = db
        self.repository = CatalogRepository(db)
        self.blob_store = blob_store

    # Reads

    def get_product(self, product_id: int) -> Product:
        return self._get_product(product_id)

    def list_products(self) -> list[Product]:
        return self.repository.list_products()

    @cache(namespace=PRODUCT_NAMESPACE, key_builder=lambda self: "active")
    def list_active_products(self) -> list[dict]:
        return [self._serialize_product(product) for product in self.repository.list_products(active=True)]

    def search_products(
        self,
        keyword: Optional[str] = None,
        category_ids: Optional[Iterable[int]] = None,
        brand_id: Optional[int] = None,
    ) -> list[Product]:
        wanted_categories = set(category_ids) if category_ids is not None else None

        def matches(product: Product) -> bool:
            if keyword is not None and keyword not in product.name and keyword not in (product.description or ""):
                return False
            if wanted_categories is not None and not any(
                category.id in wanted_categories for category in product.categories
            ):
                return False
            if brand_id is not None and product.brand_id != brand_id:
                return False
            return True

        return [product for product in self.repository.list_products() if matches(product)]

    # Brands and categories

    def list_brands(self) -> list[Brand]:
        return self.repository.list_brands()

    def create_brand(self, *, data: dict) -> Brand:
        brand = Brand(**data)
        self._save_unique(brand, "Brand")
        return brand

    def list_categories(self) -> list[Category]:
        return self.repository.list_categories()

    def create_category(self, *, data: dict) -> Category:
        category = Category(**data)
        self._save_unique(category, "Category")
        return category

    # Products

    def add_product(self, *, data: dict, new_images: Sequence[ImageUpload] = ()) -> Product:
        data = dict(data)
        brand = self._get_brand(data.pop("brand_id"))
        categories = self._get_categories(data.pop("category_ids", None) or [])

        product = Product(**{key: value for key, value in data.items() if key in PRODUCT_FIELDS})
        product.no_sold = 0
        product.brand = brand
        product.categories = categories

        stored_names = self._store_images(new_images)
        product.images = [
            ProductImage(image_path=name, position=position) for position, name in enumerate(stored_names)
        ]
        try:
            self.repository.save(product)
        except exceptions.PersistenceError:
            self._discard_blobs(stored_names)
            raise

        self._invalidate()
        logger.info("Product %s created with %d image(s)", product.id, len(stored_names))
        return product

    def update_product(
        self,
        *,
        product_id: int,
        data: dict,
        keep_image_ids: Optional[Iterable[int]] = None,
        new_images: Sequence[ImageUpload] = (),
    ) -> Product:
        settings = get_settings()
        lock = make_lock(
            f"catalog:product:{product_id}",
            redis_client=get_lock_redis(),
            ttl_seconds=settings.PRODUCT_LOCK_TTL_SECONDS,
            wait_timeout=settings.PRODUCT_LOCK_WAIT_SECONDS,
            log=logger,
        )
        with lock.hold() as acquired:
            if not acquired:
                raise exceptions.ConcurrentUpdateError(f"Product {product_id} is being updated by another request")
            return self._update_product(product_id, data, keep_image_ids, new_images)

    def _update_product(
        self,
        product_id: int,
        data: dict,
        keep_image_ids: Optional[Iterable[int]],
        new_images: Sequence[ImageUpload],
    ) -> Product:
        data = dict(data)
        product = self._get_product(product_id)
        brand = self._get_brand(data.pop("brand_id"))
        categories = self._get_categories(data.pop("category_ids", None) or [])

        stored_names = self._store_images(new_images)
        plan = reconcile_images(
            list(product.images),
            keep_image_ids,
            [ProductImage(image_path=name) for name in stored_names],
        )
        obsolete_names = [image.image_path for image in plan.to_delete]

        for key, value in data.items():
            if key in PRODUCT_FIELDS:
                setattr(product, key, value)
        product.brand = brand
        product.categories = categories
        product.images = plan.final_images
        for position, image in enumerate(product.images):
            image.position = position

        try:
            self.repository.save(product)
        except exceptions.PersistenceError:
            self._discard_blobs(stored_names)
            raise

        self._invalidate()
        logger.info(
            "Product %s updated: %d new image(s), %d kept, %d removed",
            product.id,
            len(stored_names),
            len(plan.final_images) - len(stored_names),
            len(obsolete_names),
        )
        self._delete_obsolete_blobs(product.id, obsolete_names)
        return product

    def deactivate_product(self, product_id: int) -> Product:
        return self._set_active(product_id, False)

    def activate_product(self, product_id: int) -> Product:
        return self._set_active(product_id, True)

    def _set_active(self, product_id: int, active: bool) -> Product:
        product = self._get_product(product_id)
        self.repository.set_active_flag(product_id, active)
        self.repository.reload(product)
        self._invalidate()
        logger.info("Product %s %s", product_id, "activated" if active else "deactivated")
        return product

    # Blob handling

    def _store_images(self, uploads: Sequence[ImageUpload]) -> list[str]:
        stored: list[str] = []
        for upload in uploads:
            try:
                stored.append(self.blob_store.store(upload.content, upload.filename))
            except exceptions.StorageWriteError:
                self._discard_blobs(stored)
                raise
        return stored

    def _discard_blobs(self, names: Sequence[str]) -> None:
        """Remove blobs written by a failed attempt; nothing references them."""

        if names:
            logger.warning("Discarding %d blob(s) written by a failed attempt", len(names))
        for name in names:
            try:
                self.blob_store.delete(name)
            except exceptions.StorageDeleteError as exc:
                leak_logger.error("Orphaned blob %s left behind after failed attempt: %s", name, exc)

    def _delete_obsolete_blobs(self, product_id: int, names: Sequence[str]) -> None:
        for name in names:
            try:
                self.blob_store.delete(name)
            except exceptions.StorageDeleteError as exc:
                leak_logger.error(
                    "Blob %s of product %s is no longer referenced but could not be deleted: %s",
                    name,
                    product_id,
                    exc,
                )

    # Lookups

    def _get_product(self, product_id: int) -> Product:
        product = self.repository.find_product(product_id)
        if not product:
            raise exceptions.ReferenceNotFound("product")
        return product

    def _get_brand(self, brand_id: int) -> Brand:
        brand = self.repository.find_brand(brand_id)
        if not brand:
            raise exceptions.ReferenceNotFound("brand")
        return brand

    def _get_categories(self, category_ids: Iterable[int]) -> list[Category]:
        requested = set(category_ids)
        categories = self.repository.find_all_categories_by_id(requested)
        if len(categories) != len(requested):
            found = {category.id for category in categories}
            raise exceptions.PartialReferenceResolution("categories", requested - found)
        return categories

    def _save_unique(self, entity, label: str) -> None:
        try:
            self.repository.save(entity)
        except exceptions.PersistenceError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exceptions.ConflictError(f"{label} already exists") from exc
            raise
        self._invalidate()

    @staticmethod
    def _invalidate() -> None:
        invalidate_cache(PRODUCT_NAMESPACE)

    @staticmethod
    def _serialize_product(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "listed_price": str(product.listed_price),
            "selling_price": str(product.selling_price),
            "description": product.description,
            "no_sold": product.no_sold,
            "stock": product.stock,
            "active": product.active,
            "brand": {"id": product.brand.id, "name": product.brand.name},
            "categories": [{"id": category.id, "name": category.name} for category in product.categories],
            "images": [
                {"id": image.id, "image_path": image.image_path, "position": image.position}
                for image in product.images
            ],
        }
