from .catalog import (
    BrandCreate,
    BrandRead,
    CategoryCreate,
    CategoryRead,
    ProductImageRead,
    ProductRead,
    ProductWrite,
    product_image_url,
)
from .common import HealthStatus

__all__ = [
    "BrandCreate",
    "BrandRead",
    "CategoryCreate",
    "CategoryRead",
    "HealthStatus",
    "ProductImageRead",
    "ProductRead",
    "ProductWrite",
    "product_image_url",
]
