"""
Product Repository - Data Access Layer for the catalog

Handles all Supabase queries for products and categories and returns
Product / Category domain models.
"""
from decimal import Decimal
from typing import List, Optional, Tuple

from storefront.domain.product import Category, Product, ProductCreate, ProductUpdate
from storefront.repositories.base import SupabaseRepository

PRODUCTS_TABLE = "products"
CATEGORIES_TABLE = "categories"
PRODUCT_SELECT = "*, categories(id, name, name_ar, slug)"


class ProductRepository(SupabaseRepository):
    """
    Repository for Product data access

    Products are listed newest first, with their category joined.
    """

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """
        Find product by ID

        Args:
            product_id: Product ID

        Returns:
            Product or None if not found
        """
        response = self._execute(
            self.client.table(PRODUCTS_TABLE).select(PRODUCT_SELECT).eq("id", product_id).limit(1),
            f"fetching product {product_id}",
        )
        if not response.data:
            return None
        return Product.from_record(response.data[0])

    def find_all(
        self,
        category_slug: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        in_stock: Optional[bool] = None,
        featured: Optional[bool] = None,
        limit: int = 12,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Find products with filters

        Args:
            category_slug: Only products of this category
            min_price / max_price: Inclusive price range
            in_stock: Filter by stock flag
            featured: Filter by featured flag
            limit: Page size
            offset: Number of results to skip

        Returns:
            Tuple of (list of products, total count)
        """
        select = PRODUCT_SELECT
        if category_slug:
            # inner join so the category filter removes non-matching products
            select = "*, categories!inner(id, name, name_ar, slug)"

        query = self.client.table(PRODUCTS_TABLE).select(select, count="exact")

        if category_slug:
            query = query.eq("categories.slug", category_slug)
        if min_price is not None:
            query = query.gte("price", float(min_price))
        if max_price is not None:
            query = query.lte("price", float(max_price))
        if in_stock is not None:
            query = query.eq("in_stock", in_stock)
        if featured is not None:
            query = query.eq("featured", featured)

        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)
        response = self._execute(query, "listing products")

        products = [Product.from_record(row) for row in response.data or []]
        total = response.count if response.count is not None else len(products)
        return products, total

    def create(self, product: ProductCreate) -> Product:
        response = self._execute(
            self.client.table(PRODUCTS_TABLE).insert(product.to_record()),
            "creating product",
        )
        return Product.from_record(response.data[0])

    def update(self, product_id: str, changes: ProductUpdate) -> Optional[Product]:
        response = self._execute(
            self.client.table(PRODUCTS_TABLE).update(changes.to_record()).eq("id", product_id),
            f"updating product {product_id}",
        )
        if not response.data:
            return None
        return Product.from_record(response.data[0])

    def delete(self, product_id: str) -> bool:
        response = self._execute(
            self.client.table(PRODUCTS_TABLE).delete().eq("id", product_id),
            f"deleting product {product_id}",
        )
        return bool(response.data)

    def find_categories(self) -> List[Category]:
        response = self._execute(
            self.client.table(CATEGORIES_TABLE).select("id, name, name_ar, slug").order("name"),
            "listing categories",
        )
        return [Category(**row) for row in response.data or []]
