from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.dates import month_window, utcnow
from app.core.security import Actor
from app.dependencies import get_db, require_cost_center
from app.schemas.inventory import StockAccuracyRead, envelope
from app.services.indicator_service import calculate_stock_accuracy, find_stock_accuracy_indicator

router = APIRouter(prefix="/indicators", tags=["Indicators"])


@router.get("/stock-accuracy")
def get_stock_accuracy(
    actor: Actor = Depends(require_cost_center),
    db: Session = Depends(get_db),
):
    now = utcnow()
    period_start, period_end = month_window(now)
    indicator = find_stock_accuracy_indicator(
        db, actor.cost_center_id, get_settings().STOCK_ACCURACY_INDICATOR_KEY
    )
    return envelope(
        StockAccuracyRead(
            cost_center_id=actor.cost_center_id,
            value=calculate_stock_accuracy(db, actor.cost_center_id, now),
            period_start=period_start,
            period_end=period_end,
            indicator_value=indicator.current_value if indicator else None,
            target_value=indicator.target_value if indicator else None,
        )
    )


__all__ = ["router"]
