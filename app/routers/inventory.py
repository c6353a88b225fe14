from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.security import Actor
from app.dependencies import get_inventory_service, require_cost_center
from app.schemas.inventory import (
    ActiveInventoryRead,
    FinishInventoryResult,
    InventoryItemRead,
    InventorySessionRead,
    ShareTokenRead,
    StartInventoryRequest,
    UpdateCountRequest,
    envelope,
)
from app.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.post("")
def start_inventory(
    payload: StartInventoryRequest,
    actor: Actor = Depends(require_cost_center),
    service: InventoryService = Depends(get_inventory_service),
):
    if not actor.organization_id:
        raise HTTPException(status_code=400, detail="Organização não identificada.")
    session = service.start_inventory(
        actor.cost_center_id,
        actor.organization_id,
        actor.user_id,
        payload.notes,
    )
    return envelope(InventorySessionRead.model_validate(session))


@router.get("/active")
def get_active_inventory(
    actor: Actor = Depends(require_cost_center),
    service: InventoryService = Depends(get_inventory_service),
):
    active = service.get_active_inventory(actor.cost_center_id)
    if active is None:
        return envelope(None)
    session, item_count = active
    base = InventorySessionRead.model_validate(session).model_dump()
    return envelope(ActiveInventoryRead(**base, item_count=item_count))


@router.get("/history")
def get_history(
    actor: Actor = Depends(require_cost_center),
    service: InventoryService = Depends(get_inventory_service),
):
    sessions = service.get_history(actor.cost_center_id)
    return envelope([InventorySessionRead.model_validate(session) for session in sessions])


@router.get("/{session_id}")
def get_inventory_items(
    session_id: str,
    category_id: Optional[str] = Query(None, alias="categoryId"),
    actor: Actor = Depends(require_cost_center),
    service: InventoryService = Depends(get_inventory_service),
):
    service.get_session(session_id, actor.cost_center_id)
    items = service.get_inventory_items(session_id, category_id)
    return envelope([InventoryItemRead.model_validate(item) for item in items])


@router.post("/{session_id}/count")
def update_item_count(
    session_id: str,
    payload: UpdateCountRequest,
    actor: Actor = Depends(require_cost_center),
    service: InventoryService = Depends(get_inventory_service),
):
    service.get_session(session_id, actor.cost_center_id)
    item = service.update_item_count(payload.item_id, payload.quantity, session_id=session_id)
    return envelope(InventoryItemRead.model_validate(item))


@router.post("/{session_id}/finish")
def finish_inventory(
    session_id: str,
    actor: Actor = Depends(require_cost_center),
    service: InventoryService = Depends(get_inventory_service),
):
    service.get_session(session_id, actor.cost_center_id)
    result = service.finish_inventory(session_id, actor.user_id)
    return envelope(FinishInventoryResult(**result))


@router.post("/{session_id}/share")
def share_inventory(
    session_id: str,
    actor: Actor = Depends(require_cost_center),
    service: InventoryService = Depends(get_inventory_service),
):
    service.get_session(session_id, actor.cost_center_id)
    token = service.get_share_token(session_id)
    return envelope(ShareTokenRead(token=token))


__all__ = ["router"]
