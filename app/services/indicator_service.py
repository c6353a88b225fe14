import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.constants import SESSION_COMPLETED, STOCK_ACCURACY_INDICATOR_NAME
from app.core.dates import month_window, utcnow
from app.models.indicator import Indicator, IndicatorResult
from app.models.inventory import InventorySession

logger = logging.getLogger(__name__)


def find_stock_accuracy_indicator(db: Session, cost_center_id: str, key: str) -> Optional[Indicator]:
    return (
        db.execute(
            select(Indicator).where(
                Indicator.cost_center_id == cost_center_id,
                Indicator.key == key,
            )
        )
        .scalars()
        .first()
    )


def ensure_stock_accuracy_indicator(
    db: Session,
    cost_center_id: str,
    key: str,
    *,
    target_value: Optional[float] = None,
) -> Indicator:
    indicator = find_stock_accuracy_indicator(db, cost_center_id, key)
    if indicator is None:
        indicator = Indicator(
            cost_center_id=cost_center_id,
            key=key,
            name=STOCK_ACCURACY_INDICATOR_NAME,
            target_value=target_value,
        )
        db.add(indicator)
        db.flush()
    return indicator


def monthly_stock_accuracy(db: Session, cost_center_id: str, now: datetime) -> list[float]:
    """Precision of every session completed in the calendar month of ``now``."""
    start, end = month_window(now)
    values = (
        db.execute(
            select(InventorySession.precision).where(
                InventorySession.cost_center_id == cost_center_id,
                InventorySession.status == SESSION_COMPLETED,
                InventorySession.end_date >= start,
                InventorySession.end_date <= end,
            )
        )
        .scalars()
        .all()
    )
    return [float(value) for value in values if value is not None]


def average(values: list[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def record_stock_accuracy(
    db: Session,
    cost_center_id: str,
    fallback_precision: float,
    *,
    key: str,
    now: Optional[datetime] = None,
) -> Optional[float]:
    """Refresh the stock accuracy indicator with the month-to-date average.

    Runs inside the caller's transaction. Returns the new value, or None when
    the cost center has no such indicator.
    """
    indicator = find_stock_accuracy_indicator(db, cost_center_id, key)
    if indicator is None:
        logger.info("No stock accuracy indicator for cost center %s; skipping.", cost_center_id)
        return None

    if now is None:
        now = utcnow()

    value = average(monthly_stock_accuracy(db, cost_center_id, now))
    if value is None:
        value = fallback_precision

    db.add(
        IndicatorResult(
            indicator_id=indicator.id,
            value=value,
            target_snapshot=indicator.target_value,
            date=now,
        )
    )
    indicator.current_value = value
    indicator.updated_at = now
    return value


def calculate_stock_accuracy(db: Session, cost_center_id: str, now: Optional[datetime] = None) -> float:
    if now is None:
        now = utcnow()
    value = average(monthly_stock_accuracy(db, cost_center_id, now))
    return value if value is not None else 0.0


__all__ = [
    "average",
    "calculate_stock_accuracy",
    "ensure_stock_accuracy_indicator",
    "find_stock_accuracy_indicator",
    "monthly_stock_accuracy",
    "record_stock_accuracy",
]
