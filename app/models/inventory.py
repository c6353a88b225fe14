from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)

from app.core.constants import SESSION_OPEN, SESSION_STATUSES
from app.database.base import Base
from app.models._ids import new_id

_OPEN_ONLY = text("status = '{}'".format(SESSION_OPEN))
_KNOWN_STATUS = "status IN ({})".format(", ".join("'{}'".format(value) for value in SESSION_STATUSES))


class InventorySession(Base):
    __tablename__ = "inventory_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    cost_center_id = Column(String(36), ForeignKey("cost_centers.id"), nullable=False)

    status = Column(String(20), nullable=False, default=SESSION_OPEN)
    share_token = Column(String(64))
    created_by = Column(String(36), nullable=False)
    notes = Column(Text)

    start_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    end_date = Column(DateTime(timezone=True))

    precision = Column(Float)
    items_count = Column(Integer, nullable=False, default=0)
    items_correct = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(_KNOWN_STATUS, name="ck_inventory_sessions_status"),
        # At most one OPEN session per cost center, enforced by the database.
        Index(
            "uq_inventory_sessions_open_cost_center",
            "cost_center_id",
            unique=True,
            sqlite_where=_OPEN_ONLY,
            postgresql_where=_OPEN_ONLY,
        ),
        Index("uq_inventory_sessions_share_token", "share_token", unique=True),
        Index("idx_inventory_sessions_history", "cost_center_id", "status", "end_date"),
    )


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(String(36), primary_key=True, default=new_id)
    inventory_session_id = Column(String(36), ForeignKey("inventory_sessions.id"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)

    # Snapshot taken at session start.
    product_name = Column(String, nullable=False)
    category_name = Column(String, nullable=False)
    unit = Column(String)
    cost_per_unit = Column(Float, nullable=False, default=0)
    expected_quantity = Column(Float, nullable=False)

    counted_quantity = Column(Float)
    difference = Column(Float, nullable=False, default=0)
    is_correct = Column(Boolean, nullable=False, default=False)
    counted_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_inventory_items_session_name", "inventory_session_id", "product_name"),
    )


__all__ = ["InventoryItem", "InventorySession"]
