from app.services.indicator_service import calculate_stock_accuracy, record_stock_accuracy
from app.services.inventory_service import InventoryService

__all__ = [
    "InventoryService",
    "calculate_stock_accuracy",
    "record_stock_accuracy",
]
