import unittest
from datetime import datetime, timezone

from sqlalchemy import select

from app.core.dates import month_window
from app.models.indicator import Indicator, IndicatorResult
from app.services.indicator_service import (
    calculate_stock_accuracy,
    ensure_stock_accuracy_indicator,
    record_stock_accuracy,
)
from app.services.inventory_service import InventoryService
from tests.factories import (
    add_accuracy_indicator,
    add_product,
    make_sessionmaker,
    make_settings,
    seed_cost_center,
)


def _at(month, day, year=2026):
    return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


class MonthWindowTest(unittest.TestCase):
    def test_window_spans_calendar_month(self):
        start, end = month_window(datetime(2026, 10, 16, 9, 30, tzinfo=timezone.utc))
        self.assertEqual(start, datetime(2026, 10, 1, tzinfo=timezone.utc))
        self.assertEqual(end, datetime(2026, 10, 31, 23, 59, 59, 999999, tzinfo=timezone.utc))

    def test_december_rolls_into_next_year(self):
        start, end = month_window(datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc))
        self.assertEqual(start, datetime(2026, 12, 1, tzinfo=timezone.utc))
        self.assertEqual(end, datetime(2026, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc))


class StockAccuracyTest(unittest.TestCase):
    def setUp(self):
        self.engine, Session = make_sessionmaker()
        self.db = Session()
        self.org, self.cost_center = seed_cost_center(self.db)
        self.service = InventoryService(self.db, settings=make_settings())
        self.product = add_product(self.db, self.org, "Arroz", 10)
        self.other = add_product(self.db, self.org, "Feijão", 10)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def run_session(self, correct, wrong, now):
        """Count ``correct`` items right and ``wrong`` items off by one, then finish."""
        session = self.service.start_inventory(self.cost_center.id, self.org.id, "user-1")
        items = self.service.get_inventory_items(session.id)
        for item in items[:correct]:
            self.service.update_item_count(item["id"], item["expected_quantity"])
        for item in items[correct:correct + wrong]:
            self.service.update_item_count(item["id"], item["expected_quantity"] + 1)
        return self.service.finish_inventory(session.id, "user-1", now=now)

    def results(self, indicator):
        return [
            result.value
            for result in self.db.execute(
                select(IndicatorResult)
                .where(IndicatorResult.indicator_id == indicator.id)
                .order_by(IndicatorResult.date.asc())
            ).scalars()
        ]

    def test_monthly_average_over_completed_sessions(self):
        indicator = add_accuracy_indicator(self.db, self.cost_center, target=95.0)
        # Four products so that three of four right gives 75%.
        for name in ("Sal", "Óleo"):
            add_product(self.db, self.org, name, 1)

        first = self.run_session(correct=3, wrong=1, now=_at(10, 5))
        second = self.run_session(correct=4, wrong=0, now=_at(10, 10))

        self.assertEqual(first["precision"], 75.0)
        self.assertEqual(second["precision"], 100.0)
        self.assertEqual(self.results(indicator), [75.0, 87.5])

        self.db.expire_all()
        refreshed = self.db.get(Indicator, indicator.id)
        self.assertEqual(refreshed.current_value, 87.5)
        latest = self.db.execute(
            select(IndicatorResult).where(IndicatorResult.indicator_id == indicator.id)
            .order_by(IndicatorResult.date.desc())
        ).scalars().first()
        self.assertEqual(latest.target_snapshot, 95.0)

    def test_previous_month_is_excluded(self):
        indicator = add_accuracy_indicator(self.db, self.cost_center)
        self.run_session(correct=0, wrong=2, now=_at(9, 28))
        self.run_session(correct=2, wrong=0, now=_at(10, 2))
        self.assertEqual(self.results(indicator), [0.0, 100.0])

    def test_missing_indicator_is_skipped(self):
        result = self.run_session(correct=1, wrong=1, now=_at(10, 5))
        self.assertTrue(result["success"])
        self.assertEqual(self.db.execute(select(IndicatorResult)).scalars().all(), [])

    def test_indicator_is_matched_by_key(self):
        add_accuracy_indicator(self.db, self.cost_center, key="SOMETHING_ELSE")
        self.run_session(correct=1, wrong=1, now=_at(10, 5))
        self.assertEqual(self.db.execute(select(IndicatorResult)).scalars().all(), [])

    def test_fallback_to_given_precision(self):
        indicator = add_accuracy_indicator(self.db, self.cost_center)
        value = record_stock_accuracy(
            self.db, self.cost_center.id, 42.0, key="STOCK_ACCURACY", now=_at(10, 5)
        )
        self.db.commit()
        self.assertEqual(value, 42.0)
        self.assertEqual(self.results(indicator), [42.0])

    def test_calculate_stock_accuracy(self):
        self.assertEqual(calculate_stock_accuracy(self.db, self.cost_center.id, _at(10, 5)), 0.0)
        self.run_session(correct=1, wrong=1, now=_at(10, 5))
        self.run_session(correct=2, wrong=0, now=_at(10, 6))
        self.assertEqual(calculate_stock_accuracy(self.db, self.cost_center.id, _at(10, 20)), 75.0)
        self.assertEqual(calculate_stock_accuracy(self.db, self.cost_center.id, _at(11, 1)), 0.0)

    def test_ensure_indicator_is_idempotent(self):
        first = ensure_stock_accuracy_indicator(self.db, self.cost_center.id, "STOCK_ACCURACY", target_value=90.0)
        second = ensure_stock_accuracy_indicator(self.db, self.cost_center.id, "STOCK_ACCURACY")
        self.db.commit()
        self.assertEqual(first.id, second.id)
        self.assertEqual(second.target_value, 90.0)
        self.assertEqual(second.name, "Precisão de Estoque")


if __name__ == "__main__":
    unittest.main()
