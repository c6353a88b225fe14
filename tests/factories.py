from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.database.base import Base
from app.database.engine import build_engine
from app.models import (
    Category,
    CostCenter,
    Indicator,
    Organization,
    Product,
    import_all_models,
)


def make_sessionmaker(url="sqlite:///:memory:"):
    import_all_models()
    engine = build_engine(url)
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def seed_cost_center(db, name="Cozinha"):
    organization = Organization(name="Org " + name)
    db.add(organization)
    db.flush()
    cost_center = CostCenter(organization_id=organization.id, name=name)
    db.add(cost_center)
    db.commit()
    return organization, cost_center


def add_category(db, organization, name):
    category = Category(organization_id=organization.id, name=name)
    db.add(category)
    db.commit()
    return category


def add_product(
    db,
    organization,
    name,
    stock,
    *,
    category=None,
    avg_cost=None,
    is_active=True,
    unit="un",
):
    product = Product(
        organization_id=organization.id,
        category_id=category.id if category else None,
        name=name,
        base_unit=unit,
        avg_cost=avg_cost,
        current_stock=stock,
        is_active=is_active,
    )
    db.add(product)
    db.commit()
    return product


def add_accuracy_indicator(db, cost_center, *, target=95.0, key="STOCK_ACCURACY"):
    indicator = Indicator(
        cost_center_id=cost_center.id,
        key=key,
        name="Precisão de Estoque",
        target_value=target,
    )
    db.add(indicator)
    db.commit()
    return indicator
