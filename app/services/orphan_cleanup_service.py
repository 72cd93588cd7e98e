import logging
import time

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import ProductImage

from . import exceptions
from .blob_store import LocalBlobStore

logger = logging.getLogger(__name__)


class OrphanImageCleanupService:
    """Remove image blobs that no product image row references.

    Blobs younger than ``grace_seconds`` are skipped: an update that has
    stored its uploads but not yet committed must not lose them.
    """

    def __init__(self, db: Session, blob_store: LocalBlobStore, *, grace_seconds: int = 3600):
        self.db = db
        self.blob_store = blob_store
        self.grace_seconds = grace_seconds

    def find_orphans(self) -> list[str]:
        referenced = set(self.db.scalars(select(ProductImage.image_path)))
        candidates = self.blob_store.list_names(older_than=time.time() - self.grace_seconds)
        return [name for name in candidates if name not in referenced]

    def run(self, *, dry_run: bool = False) -> dict:
        orphans = self.find_orphans()
        if not orphans:
            return {"orphans_found": 0, "deleted_count": 0, "errors": []}
        logger.info("Found %d orphaned image blob(s)", len(orphans))
        if dry_run:
            return {"orphans_found": len(orphans), "deleted_count": 0, "errors": [], "orphans": orphans}

        deleted = 0
        errors: list[str] = []
        for name in orphans:
            try:
                self.blob_store.delete(name)
                deleted += 1
            except exceptions.StorageDeleteError as exc:
                logger.error("Failed to delete orphaned blob %s: %s", name, exc)
                errors.append(name)
        return {"orphans_found": len(orphans), "deleted_count": deleted, "errors": errors}
