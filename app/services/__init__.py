from .blob_store import LocalBlobStore
from .catalog_repository import CatalogRepository
from .catalog_service import ImageUpload, ProductCatalogService
from .image_reconciliation import ImageReconciliation, reconcile_images
from .orphan_cleanup_service import OrphanImageCleanupService

__all__ = [
    "CatalogRepository",
    "ImageReconciliation",
    "ImageUpload",
    "LocalBlobStore",
    "OrphanImageCleanupService",
    "ProductCatalogService",
    "reconcile_images",
]
