"""
Return and refund domain models

A return request is the customer's claim on a delivered order; refund
transactions are its gateway refunds (one per attempt).
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal

from .order import OrderItem


class RefundStatus:
    """razorpay_refund_transactions.status values"""
    PENDING = "pending"
    INITIATED = "initiated"
    PROCESSED = "processed"
    FAILED = "failed"

    # Any of these blocks a second refund for the same return
    OPEN = (PENDING, INITIATED, PROCESSED)


class ReturnStatus:
    """return_requests.status values touched by the backend"""
    PENDING_SHIPMENT = "pending_shipment"
    RECEIVED = "received"
    UNDER_INSPECTION = "under_inspection"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    REJECTED = "rejected"
    REFUND_INITIATED = "refund_initiated"
    REFUND_COMPLETED = "refund_completed"

    # Returns in these states no longer block a new return on the order
    CLOSED = (REFUND_COMPLETED, REJECTED)


class RefundTransaction(BaseModel):
    """One gateway refund attempt"""

    id: str
    return_request_id: str
    order_id: Optional[str] = None
    transaction_number: Optional[str] = None
    refund_amount: Decimal = Field(..., ge=0)
    razorpay_payment_id: str
    razorpay_refund_id: Optional[str] = None
    status: str = RefundStatus.PENDING
    razorpay_status: Optional[str] = None
    razorpay_speed: Optional[str] = None
    razorpay_response: Optional[Any] = None
    original_amount: Optional[Decimal] = None
    deduction_amount: Optional[Decimal] = None
    failure_reason: Optional[str] = None
    initiated_by: Optional[str] = None
    notes: Optional[str] = None
    initiated_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ['refund_amount', 'original_amount', 'deduction_amount']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        for field in ['initiated_at', 'processed_at', 'failed_at', 'created_at']:
            if isinstance(data.get(field), datetime):
                data[field] = data[field].isoformat()
        return data


class ReturnRequest(BaseModel):
    """
    Return request joined with the order's billing contact

    customer_* fields come from the order (billing_first_name, ...), which
    is where the storefront records who paid.
    """

    id: str
    return_number: Optional[str] = None
    order_id: str
    order_number: Optional[str] = None
    status: str
    original_order_amount: Optional[Decimal] = None
    final_refund_amount: Optional[Decimal] = None
    razorpay_refund_id: Optional[str] = None
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_email: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def customer_name(self) -> str:
        name = " ".join(p for p in [self.customer_first_name, self.customer_last_name] if p)
        return name or "Customer"


class ReturnEligibility(BaseModel):
    """Result of the return eligibility rules for one order"""

    is_eligible: bool
    reasons: List[str] = Field(default_factory=list)
    eligible_items: List[OrderItem] = Field(default_factory=list)
    ineligible_items: List[OrderItem] = Field(default_factory=list)
    days_remaining: int = 0

    def to_dict(self) -> dict:
        return {
            "is_eligible": self.is_eligible,
            "reasons": self.reasons,
            "eligible_items": [item.to_dict() for item in self.eligible_items],
            "ineligible_items": [item.to_dict() for item in self.ineligible_items],
            "days_remaining": self.days_remaining,
        }
