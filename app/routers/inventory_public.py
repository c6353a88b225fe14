from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_inventory_service
from app.schemas.inventory import (
    InventoryItemRead,
    InventorySessionRead,
    PublicInventoryRead,
    UpdateCountRequest,
    envelope,
)
from app.services.inventory_service import InventoryService

router = APIRouter(prefix="/public/inventory", tags=["Inventory Public"])


@router.get("/{token}/items")
def get_public_items(
    token: str,
    category_id: Optional[str] = Query(None, alias="categoryId"),
    service: InventoryService = Depends(get_inventory_service),
):
    result = service.get_public_inventory(token, category_id)
    return envelope(
        PublicInventoryRead(
            session=InventorySessionRead.model_validate(result["session"]),
            items=[InventoryItemRead.model_validate(item) for item in result["items"]],
        )
    )


@router.post("/{token}/count")
def update_public_count(
    token: str,
    payload: UpdateCountRequest,
    service: InventoryService = Depends(get_inventory_service),
):
    item = service.update_item_count_by_token(token, payload.item_id, payload.quantity)
    return envelope(InventoryItemRead.model_validate(item))


__all__ = ["router"]
