from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.security import Actor, authenticate_request
from app.database.session import get_db
from app.services.inventory_service import InventoryService


def require_actor(
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
    authorization: Optional[str] = Header(None),
    user_id: Optional[str] = Header(None, alias="X-User-Id"),
    organization_id: Optional[str] = Header(None, alias="X-Organization-Id"),
    cost_center_id: Optional[str] = Header(None, alias="X-Cost-Center-Id"),
) -> Actor:
    return authenticate_request(
        api_key=api_key,
        authorization=authorization,
        user_id=user_id,
        organization_id=organization_id,
        cost_center_id=cost_center_id,
    )


def require_cost_center(actor: Actor = Depends(require_actor)) -> Actor:
    if not actor.cost_center_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="É necessário selecionar um Centro de Custo.",
        )
    return actor


def get_inventory_service(db: Session = Depends(get_db)) -> InventoryService:
    return InventoryService(db, settings=get_settings())


__all__ = ["get_db", "get_inventory_service", "require_actor", "require_cost_center"]
