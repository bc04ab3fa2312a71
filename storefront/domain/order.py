"""
Order Domain Models

Represents checkout input and persisted orders in the storefront.
Amounts are rupees as Decimal; the gateway layer converts to paise.

Author: TM3
Date: 2026-09-02
"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


PAISA = Decimal("0.01")


class PaymentStatus:
    """payment_status values on orders"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


def _same_amount(a: Decimal, b: Decimal) -> bool:
    return a.quantize(PAISA) == b.quantize(PAISA)


class OrderItemInput(BaseModel):
    """Line item as submitted by the cart"""

    product_id: Optional[int] = Field(None, description="Product catalog ID")
    product_variant_id: Optional[int] = Field(None, description="Variant ID")
    product_name: str = Field(..., min_length=1, description="Product name at order time")
    product_sku: Optional[str] = Field(None, description="Product SKU")
    unit_price: Decimal = Field(..., ge=0, description="Price per unit")
    quantity: int = Field(..., ge=1, description="Quantity ordered")
    total_price: Decimal = Field(..., ge=0, description="unit_price x quantity")
    variant_size: Optional[str] = None
    variant_color: Optional[str] = None
    variant_material: Optional[str] = None

    @model_validator(mode="after")
    def check_line_total(self):
        if not _same_amount(self.unit_price * self.quantity, self.total_price):
            raise ValueError(
                f"total_price {self.total_price} does not match "
                f"unit_price x quantity for '{self.product_name}'"
            )
        return self


class AddressInput(BaseModel):
    """Delivery address"""

    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    address_line_1: str = Field(..., min_length=1)
    address_line_2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = "India"
    phone: Optional[str] = None


class BillingAddress(AddressInput):
    """Billing address; email identifies the checkout customer"""

    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class CreateOrderRequest(BaseModel):
    """
    Checkout payload

    Totals are re-checked here so a tampered cart cannot create an order
    whose total disagrees with its lines.
    """

    customer_id: Optional[str] = Field(None, description="Existing customer UUID")
    payment_method: str = Field(..., min_length=1, description="razorpay, cod, ...")
    subtotal: Decimal = Field(..., ge=0)
    shipping_amount: Decimal = Field(Decimal("0"), ge=0)
    total_amount: Decimal = Field(..., ge=0)
    billing: BillingAddress
    delivery: AddressInput
    items: List[OrderItemInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_totals(self):
        items_total = sum((item.total_price for item in self.items), Decimal("0"))
        if not _same_amount(items_total, self.subtotal):
            raise ValueError(f"subtotal {self.subtotal} does not match item total {items_total}")
        if not _same_amount(self.subtotal + self.shipping_amount, self.total_amount):
            raise ValueError("total_amount must equal subtotal + shipping_amount")
        return self


class OrderItem(BaseModel):
    """Persisted order line"""

    id: int = Field(..., description="Order item ID")
    order_id: str = Field(..., description="Parent order ID")
    product_id: Optional[int] = None
    product_variant_id: Optional[int] = None
    product_name: str
    product_sku: Optional[str] = None
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    total_price: Decimal = Field(..., ge=0)
    variant_size: Optional[str] = None
    variant_color: Optional[str] = None
    variant_material: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_service(self) -> bool:
        """Stitching/customisation lines are sold as variant_size Service or Custom"""
        if not self.variant_size:
            return False
        return self.variant_size.strip().lower() in ("service", "custom")

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump()
        for field in ['unit_price', 'total_price']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        return data


class Order(BaseModel):
    """
    Order domain model - a storefront order row plus its items

    Fields:
        id: Order UUID
        order_number: ORD-YYYYMMDD-NNNNNN
        status: fulfilment status (pending, confirmed, shipped, delivered, ...)
        payment_status: pending, paid or failed
        razorpay_order_id: gateway order created for this checkout
        razorpay_payment_id: gateway payment that paid the order
        delivered_at: set when the order is delivered; starts the return window
    """

    id: str = Field(..., description="Order UUID")
    order_number: str = Field(..., description="Order number")
    customer_id: Optional[str] = None

    # Financial information
    subtotal: Decimal = Field(Decimal("0"), ge=0)
    tax_amount: Decimal = Field(Decimal("0"), ge=0)
    shipping_amount: Decimal = Field(Decimal("0"), ge=0)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    total_amount: Decimal = Field(..., ge=0)

    # Status tracking
    status: str = "pending"
    payment_status: str = PaymentStatus.PENDING
    payment_method: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    payment_error: Optional[str] = None

    # Billing contact
    billing_first_name: Optional[str] = None
    billing_last_name: Optional[str] = None
    billing_email: Optional[str] = None
    billing_phone: Optional[str] = None

    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    items: List[OrderItem] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def item_count(self) -> int:
        """Total number of items in order"""
        return len(self.items)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def billing_name(self) -> str:
        return " ".join(p for p in [self.billing_first_name, self.billing_last_name] if p)

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns dict with all fields plus computed properties
        """
        data = self.model_dump()

        data['item_count'] = self.item_count
        data['is_paid'] = self.is_paid

        for field in ['subtotal', 'tax_amount', 'shipping_amount', 'discount_amount', 'total_amount']:
            if data.get(field) is not None:
                data[field] = float(data[field])

        for field in ['delivered_at', 'created_at', 'updated_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()

        data['items'] = [item.to_dict() for item in self.items]

        return data
