import logging
import math
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.core.constants import (
    COUNT_TOLERANCE,
    DEFAULT_CATEGORY_NAME,
    DEFAULT_UNIT,
    MOVEMENT_ADJUSTMENT,
    REFERENCE_INVENTORY,
    SESSION_COMPLETED,
    SESSION_OPEN,
)
from app.core.dates import utcnow
from app.core.errors import (
    ConflictError,
    InvalidLinkError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.database.transaction import transaction_budget
from app.models.inventory import InventoryItem, InventorySession
from app.models.product import Category, Product
from app.models.stock_movement import StockMovement
from app.services.indicator_service import record_stock_accuracy

logger = logging.getLogger(__name__)

# Differences are stored rounded so that float noise (10.001 - 10) does not
# move a value across the tolerance boundary.
QUANTITY_DECIMALS = 9

ACTIVE_SESSION_EXISTS = "Já existe um inventário em andamento."
SESSION_NOT_FOUND = "Inventário não encontrado"
SESSION_CLOSED = "Inventário já finalizado ou cancelado"
ITEM_NOT_FOUND = "Item não encontrado"
PRODUCT_NOT_FOUND = "Produto não encontrado"
INVALID_LINK = "Link inválido ou inventário finalizado"

_OPEN_SESSION_INDEX = "uq_inventory_sessions_open_cost_center"


def evaluate_count(expected_quantity: float, counted_quantity: float) -> tuple[float, bool]:
    difference = round(counted_quantity - expected_quantity, QUANTITY_DECIMALS)
    return difference, abs(difference) < COUNT_TOLERANCE


def needs_adjustment(difference: Optional[float]) -> bool:
    return abs(difference or 0) > COUNT_TOLERANCE


def calculate_precision(items) -> tuple[int, int, float]:
    """Return (counted, correct, precision %) for a session's items.

    Uncounted items stay out of the denominator; nothing counted yields 0.
    """
    counted = [item for item in items if item.counted_quantity is not None]
    correct = [item for item in counted if item.is_correct]
    if not counted:
        return 0, 0, 0.0
    return len(counted), len(correct), len(correct) / len(counted) * 100


def format_quantity(value: float) -> str:
    """Plain decimal text with every significant digit kept (-1234.5678, -1, 0.001)."""
    text = format(Decimal(repr(float(value))).normalize(), "f")
    return "0" if text == "-0" else text


def adjustment_notes(difference: float) -> str:
    return "Ajuste de Inventário (Diferença: {})".format(format_quantity(difference))


def build_snapshot_item(session_id: str, product: Product, category_name: Optional[str]) -> InventoryItem:
    return InventoryItem(
        inventory_session_id=session_id,
        product_id=product.id,
        product_name=product.name,
        category_name=category_name or DEFAULT_CATEGORY_NAME,
        unit=product.base_unit,
        cost_per_unit=product.avg_cost or 0,
        expected_quantity=product.current_stock,
        counted_quantity=None,
        difference=0,
        is_correct=False,
    )


def _is_open_session_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return _OPEN_SESSION_INDEX in message or "inventory_sessions.cost_center_id" in message


def _item_payload(row) -> dict:
    item = row.InventoryItem
    return {
        "id": item.id,
        "inventory_session_id": item.inventory_session_id,
        "product_id": item.product_id,
        "product_name": item.product_name,
        "category_name": item.category_name,
        "unit": item.unit,
        "cost_per_unit": item.cost_per_unit,
        "expected_quantity": item.expected_quantity,
        "counted_quantity": item.counted_quantity,
        "difference": item.difference,
        "is_correct": item.is_correct,
        "counted_at": item.counted_at,
        "product": {
            "name": row.name,
            "category_id": row.category_id,
            "category_name": row.live_category_name,
            "image_url": row.image_url,
            "base_unit": row.base_unit,
        },
    }


class InventoryService:
    """Counting sessions for a cost center and their reconciliation into stock."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _find_open_session(self, cost_center_id: str) -> Optional[InventorySession]:
        return (
            self.db.execute(
                select(InventorySession).where(
                    InventorySession.cost_center_id == cost_center_id,
                    InventorySession.status == SESSION_OPEN,
                )
            )
            .scalars()
            .first()
        )

    def start_inventory(
        self,
        cost_center_id: str,
        organization_id: str,
        user_id: str,
        notes: Optional[str] = None,
    ) -> InventorySession:
        if self._find_open_session(cost_center_id) is not None:
            logger.warning("Inventory already open for cost center %s.", cost_center_id)
            raise ConflictError(ACTIVE_SESSION_EXISTS)

        session = InventorySession(
            cost_center_id=cost_center_id,
            status=SESSION_OPEN,
            created_by=user_id,
            notes=notes,
            start_date=utcnow(),
        )
        self.db.add(session)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            if _is_open_session_violation(exc):
                logger.warning("Concurrent inventory start for cost center %s.", cost_center_id)
                raise ConflictError(ACTIVE_SESSION_EXISTS) from exc
            raise

        rows = self.db.execute(
            select(Product, Category.name.label("category_name"))
            .outerjoin(Category, Category.id == Product.category_id)
            .where(
                Product.organization_id == organization_id,
                Product.is_active.is_(True),
            )
        ).all()
        items = [build_snapshot_item(session.id, row.Product, row.category_name) for row in rows]
        if items:
            self.db.add_all(items)

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if _is_open_session_violation(exc):
                raise ConflictError(ACTIVE_SESSION_EXISTS) from exc
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            "Inventory %s started for cost center %s with %d items.",
            session.id,
            cost_center_id,
            len(items),
        )
        return session

    def get_session(self, session_id: str, cost_center_id: Optional[str] = None) -> InventorySession:
        """Load a session, optionally requiring it to belong to ``cost_center_id``."""
        session = self.db.get(InventorySession, session_id)
        if session is None or (cost_center_id is not None and session.cost_center_id != cost_center_id):
            raise NotFoundError(SESSION_NOT_FOUND)
        return session

    def get_active_inventory(self, cost_center_id: str) -> Optional[tuple[InventorySession, int]]:
        session = self._find_open_session(cost_center_id)
        if session is None:
            return None
        item_count = self.db.execute(
            select(func.count(InventoryItem.id)).where(
                InventoryItem.inventory_session_id == session.id
            )
        ).scalar_one()
        return session, int(item_count)

    def get_history(self, cost_center_id: str) -> list[InventorySession]:
        return list(
            self.db.execute(
                select(InventorySession)
                .where(
                    InventorySession.cost_center_id == cost_center_id,
                    InventorySession.status == SESSION_COMPLETED,
                )
                .order_by(InventorySession.end_date.desc())
                .limit(self.settings.INVENTORY_HISTORY_LIMIT)
            )
            .scalars()
            .all()
        )

    # ------------------------------------------------------------------
    # Share links
    # ------------------------------------------------------------------

    def get_share_token(self, session_id: str) -> str:
        session = self.db.get(InventorySession, session_id)
        if session is None:
            raise NotFoundError(SESSION_NOT_FOUND)
        if session.share_token:
            return session.share_token

        session.share_token = secrets.token_urlsafe(32)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info("Share link issued for inventory %s.", session_id)
        return session.share_token

    def get_session_by_token(self, token: str) -> InventorySession:
        session = None
        if token:
            session = (
                self.db.execute(
                    select(InventorySession).where(InventorySession.share_token == token)
                )
                .scalars()
                .first()
            )
        if session is None or session.status != SESSION_OPEN:
            logger.warning("Rejected inventory share link.")
            raise InvalidLinkError(INVALID_LINK)
        return session

    def get_public_inventory(self, token: str, category_id: Optional[str] = None) -> dict:
        session = self.get_session_by_token(token)
        return {
            "session": session,
            "items": self.get_inventory_items(session.id, category_id),
        }

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------

    def get_inventory_items(self, session_id: str, category_id: Optional[str] = None) -> list[dict]:
        stmt = (
            select(
                InventoryItem,
                Product.name.label("name"),
                Product.category_id.label("category_id"),
                Category.name.label("live_category_name"),
                Product.image_url.label("image_url"),
                Product.base_unit.label("base_unit"),
            )
            .join(Product, Product.id == InventoryItem.product_id)
            .outerjoin(Category, Category.id == Product.category_id)
            .where(InventoryItem.inventory_session_id == session_id)
            .order_by(InventoryItem.product_name.asc(), InventoryItem.id.asc())
        )
        if category_id:
            stmt = stmt.where(Product.category_id == category_id)
        return [_item_payload(row) for row in self.db.execute(stmt).all()]

    def _validate_count(self, counted_quantity) -> float:
        try:
            value = float(counted_quantity)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Quantidade inválida.") from exc
        if not math.isfinite(value):
            raise ValidationError("Quantidade inválida.")
        if value < 0 and not self.settings.INVENTORY_ALLOW_NEGATIVE_COUNTS:
            raise ValidationError("A quantidade contada não pode ser negativa.")
        return value

    def update_item_count(
        self,
        item_id: str,
        counted_quantity: float,
        *,
        session_id: Optional[str] = None,
    ) -> InventoryItem:
        """Record a count for one item; the last submission wins.

        When ``session_id`` is given the item must belong to that session.
        """
        item = self.db.get(InventoryItem, item_id)
        if item is None or (session_id is not None and item.inventory_session_id != session_id):
            raise NotFoundError(ITEM_NOT_FOUND)

        value = self._validate_count(counted_quantity)

        session = self.db.get(InventorySession, item.inventory_session_id)
        if session is None or session.status != SESSION_OPEN:
            raise InvalidStateError(SESSION_CLOSED)

        item.counted_quantity = value
        item.difference, item.is_correct = evaluate_count(item.expected_quantity, value)
        item.counted_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return item

    def update_item_count_by_token(self, token: str, item_id: str, counted_quantity: float) -> InventoryItem:
        session = self.get_session_by_token(token)
        return self.update_item_count(item_id, counted_quantity, session_id=session.id)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def finish_inventory(self, session_id: str, user_id: str, *, now: Optional[datetime] = None) -> dict:
        session = self.db.get(InventorySession, session_id)
        if session is None:
            raise NotFoundError(SESSION_NOT_FOUND)
        if session.status != SESSION_OPEN:
            raise InvalidStateError(SESSION_CLOSED)

        items = list(
            self.db.execute(
                select(InventoryItem).where(InventoryItem.inventory_session_id == session_id)
            )
            .scalars()
            .all()
        )
        valid_count, correct_count, precision = calculate_precision(items)
        adjustments = [
            item
            for item in items
            if item.counted_quantity is not None and needs_adjustment(item.difference)
        ]
        if now is None:
            now = utcnow()

        drift_warnings = []
        indicator_value = None
        with transaction_budget(
            self.db,
            max_wait_seconds=self.settings.INVENTORY_TX_MAX_WAIT_SECONDS,
            timeout_seconds=self.settings.INVENTORY_TX_TIMEOUT_SECONDS,
        ) as budget:
            locked = (
                self.db.execute(
                    select(InventorySession)
                    .where(InventorySession.id == session_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                .scalars()
                .one()
            )
            if locked.status != SESSION_OPEN:
                raise InvalidStateError(SESSION_CLOSED)

            products = {}
            product_ids = [item.product_id for item in adjustments]
            if product_ids:
                products = {
                    product.id: product
                    for product in self.db.execute(
                        select(Product)
                        .where(Product.id.in_(product_ids))
                        .with_for_update()
                        .execution_options(populate_existing=True)
                    ).scalars()
                }

            for item in adjustments:
                budget.check()
                product = products.get(item.product_id)
                if product is None:
                    raise NotFoundError(PRODUCT_NOT_FOUND)

                live_stock = product.current_stock or 0
                if abs(live_stock - item.expected_quantity) > COUNT_TOLERANCE:
                    drift_warnings.append(
                        {
                            "item_id": item.id,
                            "product_id": item.product_id,
                            "product_name": item.product_name,
                            "expected_quantity": item.expected_quantity,
                            "current_stock": live_stock,
                            "counted_quantity": item.counted_quantity,
                        }
                    )

                # The count wins over whatever the stock drifted to meanwhile.
                product.current_stock = item.counted_quantity
                quantity = abs(item.difference)
                self.db.add(
                    StockMovement(
                        product_id=item.product_id,
                        type=MOVEMENT_ADJUSTMENT,
                        quantity=quantity,
                        unit=item.unit or DEFAULT_UNIT,
                        total_cost=quantity * (item.cost_per_unit or 0),
                        stock_before=item.expected_quantity,
                        stock_after=item.counted_quantity,
                        reference_type=REFERENCE_INVENTORY,
                        reference_id=session_id,
                        user_id=user_id,
                        notes=adjustment_notes(item.difference),
                        created_at=now,
                    )
                )

            locked.status = SESSION_COMPLETED
            locked.end_date = now
            locked.precision = precision
            locked.items_count = valid_count
            locked.items_correct = correct_count
            self.db.flush()

            indicator_value = record_stock_accuracy(
                self.db,
                locked.cost_center_id,
                precision,
                key=self.settings.STOCK_ACCURACY_INDICATOR_KEY,
                now=now,
            )

        for warning in drift_warnings:
            logger.warning(
                "Stock for product %s moved from %s to %s during inventory %s; count %s overwrites it.",
                warning["product_id"],
                format_quantity(warning["expected_quantity"]),
                format_quantity(warning["current_stock"]),
                session_id,
                format_quantity(warning["counted_quantity"]),
            )
        logger.info(
            "Inventory %s finished: precision %.2f%% over %d counted items, %d adjustments, indicator %s.",
            session_id,
            precision,
            valid_count,
            len(adjustments),
            "updated" if indicator_value is not None else "skipped",
        )
        return {
            "success": True,
            "precision": precision,
            "items_count": valid_count,
            "adjustments": len(adjustments),
            "drift_warnings": drift_warnings,
        }


__all__ = [
    "InventoryService",
    "adjustment_notes",
    "build_snapshot_item",
    "calculate_precision",
    "evaluate_count",
    "needs_adjustment",
]
