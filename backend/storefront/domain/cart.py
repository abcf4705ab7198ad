"""
Cart Domain Models

A CartItem is a snapshot of a product taken when it was added to the cart,
plus the quantity the customer wants.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from decimal import Decimal

from storefront.domain.i18n import Language, localized
from storefront.domain.product import Product


class CartItem(BaseModel):
    """
    Cart line

    Fields:
        id: Product ID (at most one line per product)
        name / name_ar: Bilingual product name at add time
        price: Unit price at add time
        image: Cover image URL
        category / category_ar: Bilingual category name
        quantity: Units, always >= 1 (a line reaching 0 is removed instead)
    """

    id: str = Field(..., min_length=1)
    name: str
    name_ar: str = ""
    price: Decimal = Field(..., ge=0)
    image: str = ""
    category: str = ""
    category_ar: str = ""
    quantity: int = Field(1, ge=1)

    model_config = ConfigDict(validate_assignment=True)

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        category = product.category
        return cls(
            id=product.id,
            name=product.name,
            name_ar=product.name_ar,
            price=product.price,
            image=product.cover_image,
            category=category.name if category else "",
            category_ar=(category.name_ar or "") if category else "",
            quantity=quantity,
        )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def display_name(self, language: Language = Language.EN) -> Optional[str]:
        return localized(self.name, self.name_ar, language)

    def to_dict(self, language: Language = Language.EN) -> dict:
        data = self.model_dump(mode="json")
        data["price"] = float(self.price)
        data["line_total"] = float(self.line_total)
        data["display_name"] = self.display_name(language)
        return data
