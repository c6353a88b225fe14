import importlib

from app.models.indicator import Indicator, IndicatorResult
from app.models.inventory import InventoryItem, InventorySession
from app.models.organization import CostCenter, Organization
from app.models.product import Category, Product
from app.models.stock_movement import StockMovement


def import_all_models() -> None:
    for module_name in (
        "app.models.indicator",
        "app.models.inventory",
        "app.models.organization",
        "app.models.product",
        "app.models.stock_movement",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Category",
    "CostCenter",
    "Indicator",
    "IndicatorResult",
    "InventoryItem",
    "InventorySession",
    "Organization",
    "Product",
    "StockMovement",
    "import_all_models",
]
