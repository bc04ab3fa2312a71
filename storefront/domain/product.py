"""
Product Domain Model

Represents a catalog product and stock adjustments in the storefront.

Author: TM3
Date: 2026-09-02
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal


class Product(BaseModel):
    """
    Product domain model - represents a product in our catalog

    Fields:
        id: Internal product ID (primary key)
        name: Product name
        slug: URL slug used by the storefront
        sku: Stock Keeping Unit (optional for made-to-order items)
        price: Regular price
        sale_price: Discounted price when on sale
        category_id / category_name: Catalog category
        image_url: Primary image public URL
        is_active: Whether product is visible in the storefront
    """

    # Primary identification
    id: int = Field(..., description="Internal product ID")
    name: str = Field(..., description="Product name")
    slug: str = Field(..., description="URL slug")
    sku: Optional[str] = Field(None, description="Stock Keeping Unit")

    # Details
    description: Optional[str] = Field(None, description="Product description")
    category_id: Optional[int] = Field(None, description="Category ID")
    category_name: Optional[str] = Field(None, description="Category name (from JOIN)")
    image_url: Optional[str] = Field(None, description="Primary image URL")

    # Pricing
    price: Decimal = Field(..., description="Regular price", ge=0)
    sale_price: Optional[Decimal] = Field(None, description="Sale price", ge=0)

    # Inventory (sum over variants)
    stock_quantity: int = Field(0, description="Available stock")

    # Metadata
    is_active: bool = Field(True, description="Whether product is active")
    is_featured: bool = Field(False, description="Shown on the home page")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @property
    def effective_price(self) -> Decimal:
        """Price the customer pays"""
        if self.sale_price is not None and self.sale_price < self.price:
            return self.sale_price
        return self.price

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    def to_dict(self) -> dict:
        """Convert to dictionary with computed fields"""
        data = self.model_dump()
        data['effective_price'] = float(self.effective_price)
        data['in_stock'] = self.in_stock

        for field in ['price', 'sale_price']:
            if data.get(field) is not None:
                data[field] = float(data[field])

        for field in ['created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()

        return data


class InventoryAdjustment(BaseModel):
    """Admin stock correction for one inventory row"""

    inventory_id: int = Field(..., description="inventory row ID")
    new_quantity: int = Field(..., ge=0, description="Quantity after the adjustment")
    reason: str = Field("Manual adjustment", min_length=1)
    notes: Optional[str] = None
