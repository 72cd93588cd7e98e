from .base import Base
from .brand import Brand
from .category import Category, product_categories
from .product import Product
from .product_image import ProductImage

__all__ = [
    "Base",
    "Brand",
    "Category",
    "Product",
    "ProductImage",
    "product_categories",
]
