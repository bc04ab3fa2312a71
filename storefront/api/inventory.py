"""
Inventory API Endpoints
Admin stock adjustments and their history

Author: TM3
Date: 2025-10-03
Updated: 2026-09-02 (adjustments logged to inventory_history)
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from storefront.api.errors import unexpected_error
from storefront.core.auth import TokenUser, require_admin
from storefront.domain.product import InventoryAdjustment
from storefront.repositories.inventory_repository import InventoryRepository

router = APIRouter()


@router.post("/adjust")
async def adjust_inventory(request: InventoryAdjustment, user: TokenUser = Depends(require_admin)):
    """
    Set an inventory row to a new quantity

    The change and the admin who made it are written to inventory_history.
    """
    try:
        result = InventoryRepository().adjust(
            inventory_id=request.inventory_id,
            new_quantity=request.new_quantity,
            reason=request.reason,
            notes=request.notes,
            user_name=user.email or "Admin",
        )
    except Exception:
        raise unexpected_error("adjusting inventory")

    if result is None:
        raise HTTPException(status_code=404, detail=f"Inventory item {request.inventory_id} not found")

    return {
        "status": "success",
        "data": result
    }


@router.get("/history")
async def get_inventory_history(
    inventory_id: Optional[int] = Query(None),
    product_id: Optional[int] = Query(None),
    action_type: Optional[str] = Query(None, description="e.g. adjustment, sale, restock"),
    start_date: Optional[str] = Query(None, description="ISO date"),
    end_date: Optional[str] = Query(None, description="ISO date"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: TokenUser = Depends(require_admin)
):
    try:
        rows, total = InventoryRepository().list_history(
            inventory_id=inventory_id,
            product_id=product_id,
            action_type=action_type,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(rows),
            "data": rows
        }

    except Exception:
        raise unexpected_error("fetching inventory history")
