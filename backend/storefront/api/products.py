"""
Products API Endpoints
Public catalog: shop listing, product details and categories
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.api.deps import get_language, get_product_repository
from storefront.api.errors import to_http_exception
from storefront.core.exceptions import StorefrontError
from storefront.domain.i18n import Language
from storefront.repositories.product_repository import ProductRepository

router = APIRouter()
categories_router = APIRouter()


@router.get("/")
async def get_products(
    category: Optional[str] = Query(None, description="Filter by category slug"),
    min_price: Optional[Decimal] = Query(None, ge=0, description="Minimum price (inclusive)"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Maximum price (inclusive)"),
    in_stock: Optional[bool] = Query(None, description="Filter by stock flag"),
    featured: Optional[bool] = Query(None, description="Only featured products (new arrivals)"),
    limit: int = Query(12, ge=1, le=100),
    offset: int = Query(0, ge=0),
    repo: ProductRepository = Depends(get_product_repository),
    language: Language = Depends(get_language),
):
    """
    Get catalog products, newest first

    Returns a page of products with the total count for pagination
    """
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(status_code=400, detail="min_price must not exceed max_price")

    try:
        products, total = repo.find_all(
            category_slug=category,
            min_price=min_price,
            max_price=max_price,
            in_stock=in_stock,
            featured=featured,
            limit=limit,
            offset=offset
        )
    except StorefrontError as e:
        raise to_http_exception(e)

    return {
        "status": "success",
        "total": total,
        "limit": limit,
        "offset": offset,
        "count": len(products),
        "data": [product.to_dict(language) for product in products]
    }


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    repo: ProductRepository = Depends(get_product_repository),
    language: Language = Depends(get_language),
):
    """Get a single product with its category"""
    try:
        product = repo.find_by_id(product_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

    return {
        "status": "success",
        "data": product.to_dict(language)
    }


@categories_router.get("/")
async def get_categories(
    repo: ProductRepository = Depends(get_product_repository),
    language: Language = Depends(get_language),
):
    """List product categories"""
    try:
        categories = repo.find_categories()
    except StorefrontError as e:
        raise to_http_exception(e)

    return {
        "status": "success",
        "count": len(categories),
        "data": [
            {**category.model_dump(), "display_name": category.display_name(language)}
            for category in categories
        ]
    }
