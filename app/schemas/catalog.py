from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.core.config import get_settings


def product_image_url(image_path: str) -> str:
    return f"{get_settings().API_V1_PREFIX}/files/product-images/{image_path}"


class BrandCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)


class BrandRead(BrandCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)


class CategoryRead(CategoryCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class ProductImageRead(BaseModel):
    id: int
    image_path: str
    position: int

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def url(self) -> str:
        return product_image_url(self.image_path)


class ProductWrite(BaseModel):
    """Product fields submitted on create and update."""

    name: str = Field(..., min_length=1, max_length=255)
    listed_price: Decimal = Field(..., ge=0)
    selling_price: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    stock: int = Field(default=0, ge=0)
    active: bool = True
    brand_id: int
    category_ids: list[int] = Field(default_factory=list)


class ProductRead(BaseModel):
    id: int
    name: str
    listed_price: Decimal
    selling_price: Decimal
    description: Optional[str] = None
    no_sold: int
    stock: int
    active: bool
    brand: BrandRead
    categories: list[CategoryRead]
    images: list[ProductImageRead]

    model_config = ConfigDict(from_attributes=True)
