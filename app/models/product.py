from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DECIMAL, Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .category import product_categories

if TYPE_CHECKING:  # pragma: no cover
    from .brand import Brand
    from .category import Category
    from .product_image import ProductImage


class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    listed_price: Mapped[Decimal] = mapped_column(DECIMAL(12, 2))
    # Not validated against listed_price.
    selling_price: Mapped[Decimal] = mapped_column(DECIMAL(12, 2))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    no_sold: Mapped[int] = mapped_column(Integer, default=0)
    stock: Mapped[int] = mapped_column(Integer, default=0)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey("brands.id"), index=True)

    brand: Mapped["Brand"] = relationship("Brand", back_populates="products")
    categories: Mapped[list["Category"]] = relationship(
        "Category", secondary=product_categories, back_populates="products"
    )
    images: Mapped[list["ProductImage"]] = relationship(
        "ProductImage",
        back_populates="product",
        order_by="ProductImage.position",
        cascade="all, delete-orphan",
    )
