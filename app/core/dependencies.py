from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.db import get_db_session
from app.services import LocalBlobStore, ProductCatalogService


def get_db() -> Session:
    yield from get_db_session()


@lru_cache
def get_blob_store() -> LocalBlobStore:
    """Blob store rooted at the configured product image directory, resolved once."""

    store = LocalBlobStore(get_settings().product_image_root)
    store.ensure_root()
    return store


def get_catalog_service(
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
) -> ProductCatalogService:
    return ProductCatalogService(db, blob_store)
