"""
Product Domain Model

Represents catalog entities (products and categories) of the storefront.
This is the single source of truth for product data structure.
"""
import re
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from storefront.domain.i18n import Language, localized


class Category(BaseModel):
    """Product category (bilingual)"""

    id: str = Field(..., description="Category ID")
    name: str = Field(..., description="Category name (English)")
    name_ar: Optional[str] = Field(None, description="Category name (Arabic)")
    slug: Optional[str] = Field(None, description="URL slug")

    model_config = ConfigDict(from_attributes=True)

    def display_name(self, language: Language = Language.EN) -> Optional[str]:
        return localized(self.name, self.name_ar, language)


class Product(BaseModel):
    """
    Product domain model - represents a piece of furniture in the catalog

    Products are read-only for the storefront; they are created and edited
    through the admin product editor only.

    Fields:
        id: Product ID (uuid)
        name / name_ar: Bilingual product name
        slug: URL slug
        description / description_ar: Bilingual description (optional)
        price: Price in local currency
        images: Image URLs, first one is the cover
        category_id: Reference to category
        category: Joined category (optional, from select with categories(...))
        material / color (+ _ar): Bilingual attributes
        dimensions: Free text dimensions
        in_stock: Stock flag
        featured: Shown in "new arrivals"
    """

    id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Product name (English)")
    name_ar: str = Field("", description="Product name (Arabic)")
    slug: Optional[str] = Field(None, description="URL slug")
    description: Optional[str] = Field(None, description="Description (English)")
    description_ar: Optional[str] = Field(None, description="Description (Arabic)")
    price: Decimal = Field(..., description="Price", ge=0)
    images: List[str] = Field(default_factory=list, description="Image URLs")
    category_id: Optional[str] = Field(None, description="Category ID")
    category: Optional[Category] = Field(None, description="Joined category")
    material: Optional[str] = None
    material_ar: Optional[str] = None
    color: Optional[str] = None
    color_ar: Optional[str] = None
    dimensions: Optional[str] = None
    in_stock: bool = Field(True, description="Whether product is in stock")
    featured: bool = Field(False, description="Whether product is featured")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_record(cls, row: dict) -> "Product":
        """Build from a PostgREST row; the joined relation arrives as 'categories'"""
        data = dict(row)
        joined = data.pop("categories", None)
        if isinstance(joined, dict):
            data["category"] = joined
        if data.get("images") is None:
            data["images"] = []
        return cls(**data)

    @property
    def cover_image(self) -> str:
        return self.images[0] if self.images else ""

    def display_name(self, language: Language = Language.EN) -> str:
        return localized(self.name, self.name_ar, language)

    def to_dict(self, language: Language = Language.EN) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump(mode="json")
        data["price"] = float(self.price)
        data["display_name"] = self.display_name(language)
        return data


def generate_slug(name: str) -> str:
    """'Royal Oak Sofa!' -> 'royal-oak-sofa'"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class ProductCreate(BaseModel):
    """Schema for creating a product from the admin editor"""
    name: str = Field(..., min_length=1)
    name_ar: str = ""
    slug: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    images: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    in_stock: bool = True
    featured: bool = False
    material: Optional[str] = None
    material_ar: Optional[str] = None
    color: Optional[str] = None
    color_ar: Optional[str] = None
    dimensions: Optional[str] = None

    def to_record(self) -> dict:
        data = self.model_dump()
        data["price"] = float(self.price)
        data["slug"] = self.slug or generate_slug(self.name)
        # Empty optional text is stored as NULL
        for field in ["description", "description_ar", "material", "material_ar",
                      "color", "color_ar", "dimensions"]:
            if not data.get(field):
                data[field] = None
        return data


class ProductUpdate(BaseModel):
    """Schema for updating an existing product"""
    name: Optional[str] = None
    name_ar: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    images: Optional[List[str]] = None
    category_id: Optional[str] = None
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None
    material: Optional[str] = None
    material_ar: Optional[str] = None
    color: Optional[str] = None
    color_ar: Optional[str] = None
    dimensions: Optional[str] = None

    def to_record(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if data.get("price") is not None:
            data["price"] = float(data["price"])
        return data
