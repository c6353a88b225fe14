import argparse

from sqlalchemy import delete, select

from app.config import get_settings
from app.core.logging import setup_logging
from app.database import Base, SessionLocal, engine
from app.models import (
    Category,
    CostCenter,
    Indicator,
    IndicatorResult,
    InventoryItem,
    InventorySession,
    Organization,
    Product,
    StockMovement,
    import_all_models,
)
from app.services.indicator_service import ensure_stock_accuracy_indicator


def parse_args():
    parser = argparse.ArgumentParser(description="Seed a sample restaurant with products to count.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding.",
    )
    parser.add_argument(
        "--accuracy-target",
        type=float,
        default=95.0,
        help="Target value for the stock accuracy indicator.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    settings = get_settings()

    import_all_models()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if args.reset:
            for model in (
                IndicatorResult,
                Indicator,
                StockMovement,
                InventoryItem,
                InventorySession,
                Product,
                Category,
                CostCenter,
                Organization,
            ):
                db.execute(delete(model))
            db.commit()

        has_org = db.execute(select(Organization.id).limit(1)).first()
        if has_org:
            print("Seed skipped: organizations already exist.")
            return

        organization = Organization(name="Moby Dick Restaurante")
        db.add(organization)
        db.flush()

        cost_center = CostCenter(organization_id=organization.id, name="Cozinha Central")
        db.add(cost_center)
        db.flush()

        proteins = Category(organization_id=organization.id, name="Proteínas")
        produce = Category(organization_id=organization.id, name="Hortifruti")
        db.add_all([proteins, produce])
        db.flush()

        db.add_all(
            [
                Product(
                    organization_id=organization.id,
                    category_id=proteins.id,
                    name="Filé de Salmão",
                    base_unit="kg",
                    avg_cost=89.9,
                    current_stock=12.5,
                ),
                Product(
                    organization_id=organization.id,
                    category_id=proteins.id,
                    name="Camarão Cinza",
                    base_unit="kg",
                    avg_cost=64.0,
                    current_stock=8.0,
                ),
                Product(
                    organization_id=organization.id,
                    category_id=produce.id,
                    name="Limão Taiti",
                    base_unit="kg",
                    avg_cost=6.5,
                    current_stock=4.2,
                ),
                Product(
                    organization_id=organization.id,
                    name="Guardanapo",
                    base_unit="un",
                    avg_cost=0.05,
                    current_stock=1500,
                ),
            ]
        )
        ensure_stock_accuracy_indicator(
            db,
            cost_center.id,
            settings.STOCK_ACCURACY_INDICATOR_KEY,
            target_value=args.accuracy_target,
        )
        db.commit()
        print(
            "Seed data created: organization {} / cost center {}.".format(
                organization.id, cost_center.id
            )
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
