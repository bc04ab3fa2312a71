"""
Products API Endpoints
Public catalog for the storefront

Author: TM3
Date: 2025-10-03
Updated: 2026-09-02 (storefront catalog: active products by slug and category)
"""
from fastapi import APIRouter, HTTPException, Query
from typing import Optional

from storefront.repositories.product_repository import ProductRepository
from storefront.api.errors import unexpected_error

router = APIRouter()


@router.get("")
async def get_products(
    category: Optional[str] = Query(None, description="Filter by category slug"),
    search: Optional[str] = Query(None, description="Search in name or SKU"),
    limit: int = Query(24, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    """
    Get active products with optional filters
    """
    try:
        repo = ProductRepository()
        products, total = repo.find_all(
            category=category,
            search=search,
            limit=limit,
            offset=offset
        )

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }

    except Exception:
        raise unexpected_error("fetching products")


@router.get("/{slug}")
async def get_product(slug: str):
    """Get one active product by slug"""
    try:
        product = ProductRepository().find_by_slug(slug)
    except Exception:
        raise unexpected_error("fetching product")

    if not product:
        raise HTTPException(status_code=404, detail=f"Product '{slug}' not found")

    return {
        "status": "success",
        "data": product.to_dict()
    }
