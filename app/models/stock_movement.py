from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Index, String, Text

from app.core.constants import MOVEMENT_TYPES
from app.database.base import Base
from app.models._ids import new_id


class StockMovement(Base):
    """Append-only stock ledger entry."""

    __tablename__ = "stock_movements"

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)

    type = Column(String(30), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    total_cost = Column(Float, nullable=False, default=0)
    stock_before = Column(Float, nullable=False)
    stock_after = Column(Float, nullable=False)

    reference_type = Column(String(30))
    reference_id = Column(String(36))
    user_id = Column(String(36), nullable=False)
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint(
            "type IN ({})".format(", ".join("'{}'".format(value) for value in MOVEMENT_TYPES)),
            name="ck_stock_movements_type",
        ),
        Index("idx_stock_movements_reference", "reference_type", "reference_id"),
        Index("idx_stock_movements_product_created", "product_id", "created_at"),
    )


__all__ = ["StockMovement"]
