from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class InventorySessionRead(CamelModel):
    id: str
    cost_center_id: str
    status: str
    share_token: Optional[str] = None
    created_by: str
    notes: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    precision: Optional[float] = None
    items_count: int = 0
    items_correct: int = 0


class ActiveInventoryRead(InventorySessionRead):
    item_count: int = 0


class ProductProjection(CamelModel):
    name: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    image_url: Optional[str] = None
    base_unit: Optional[str] = None


class InventoryItemRead(CamelModel):
    id: str
    inventory_session_id: str
    product_id: str
    product_name: str
    category_name: str
    unit: Optional[str] = None
    cost_per_unit: float
    expected_quantity: float
    counted_quantity: Optional[float] = None
    difference: float
    is_correct: bool
    counted_at: Optional[datetime] = None
    product: Optional[ProductProjection] = None


class StartInventoryRequest(CamelModel):
    notes: Optional[str] = None


class UpdateCountRequest(CamelModel):
    model_config = ConfigDict(allow_inf_nan=False)

    item_id: str
    quantity: float


class DriftWarning(CamelModel):
    item_id: str
    product_id: str
    product_name: str
    expected_quantity: float
    current_stock: float
    counted_quantity: float


class FinishInventoryResult(CamelModel):
    success: bool
    precision: float
    items_count: int
    adjustments: int = 0
    drift_warnings: List[DriftWarning] = Field(default_factory=list)


class ShareTokenRead(CamelModel):
    token: str


class PublicInventoryRead(CamelModel):
    session: InventorySessionRead
    items: List[InventoryItemRead]


class StockAccuracyRead(CamelModel):
    cost_center_id: str
    value: float
    period_start: datetime
    period_end: datetime
    indicator_value: Optional[float] = None
    target_value: Optional[float] = None


def envelope(data) -> dict:
    """Successful response body; ``data`` may be a schema, list or None."""
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json")
    elif isinstance(data, list):
        data = [
            entry.model_dump(by_alias=True, mode="json") if isinstance(entry, BaseModel) else entry
            for entry in data
        ]
    return {"success": True, "data": data}
