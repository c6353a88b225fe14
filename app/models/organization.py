from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String

from app.database.base import Base
from app.models._ids import new_id


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class CostCenter(Base):
    __tablename__ = "cost_centers"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    name = Column(String, nullable=False)

    __table_args__ = (
        Index("idx_cost_centers_organization", "organization_id"),
    )


__all__ = ["CostCenter", "Organization"]
