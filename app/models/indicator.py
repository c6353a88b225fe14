from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, String, UniqueConstraint

from app.database.base import Base
from app.models._ids import new_id


class Indicator(Base):
    __tablename__ = "indicators"

    id = Column(String(36), primary_key=True, default=new_id)
    cost_center_id = Column(String(36), ForeignKey("cost_centers.id"), nullable=False)

    key = Column(String(40), nullable=False)
    name = Column(String, nullable=False)
    target_value = Column(Float)
    current_value = Column(Float)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("cost_center_id", "key", name="uq_indicators_cost_center_key"),
    )


class IndicatorResult(Base):
    __tablename__ = "indicator_results"

    id = Column(String(36), primary_key=True, default=new_id)
    indicator_id = Column(String(36), ForeignKey("indicators.id"), nullable=False)

    value = Column(Float, nullable=False)
    target_snapshot = Column(Float)
    date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_indicator_results_indicator_date", "indicator_id", "date"),
    )


__all__ = ["Indicator", "IndicatorResult"]
