COUNT_TOLERANCE = 0.001

SESSION_OPEN = "OPEN"
SESSION_COMPLETED = "COMPLETED"
SESSION_CANCELLED = "CANCELLED"
SESSION_STATUSES = (SESSION_OPEN, SESSION_COMPLETED, SESSION_CANCELLED)

MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_TYPES = (
    "PURCHASE",
    "SALE",
    "USAGE",
    "LOSS",
    "PRODUCTION_IN",
    "PRODUCTION_OUT",
    MOVEMENT_ADJUSTMENT,
)
REFERENCE_INVENTORY = "INVENTORY"

DEFAULT_CATEGORY_NAME = "Sem Categoria"
DEFAULT_UNIT = "un"

STOCK_ACCURACY_INDICATOR_NAME = "Precisão de Estoque"
