import sqlite3
import unittest

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import NotFoundError, TransactionTimeoutError
from app.database.transaction import TransactionBudget, is_lock_timeout, transaction_budget
from app.models.inventory import InventorySession
from app.models.organization import CostCenter, Organization
from tests.factories import make_sessionmaker


class TransactionBudgetTest(unittest.TestCase):
    def setUp(self):
        self.engine, Session = make_sessionmaker()
        self.db = Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def names(self):
        return [org.name for org in self.db.execute(select(Organization)).scalars()]

    def test_budget_check(self):
        TransactionBudget(60).check()
        with self.assertRaises(TransactionTimeoutError):
            TransactionBudget(-1).check()

    def test_commits_on_success(self):
        with transaction_budget(self.db, max_wait_seconds=1, timeout_seconds=30):
            self.db.add(Organization(name="Kept"))
        self.db.rollback()
        self.assertEqual(self.names(), ["Kept"])

    def test_rolls_back_on_business_error(self):
        with self.assertRaises(NotFoundError):
            with transaction_budget(self.db, max_wait_seconds=1, timeout_seconds=30):
                self.db.add(Organization(name="Dropped"))
                self.db.flush()
                raise NotFoundError("missing")
        self.assertEqual(self.names(), [])

    def test_rolls_back_when_budget_runs_out(self):
        with self.assertRaises(TransactionTimeoutError):
            with transaction_budget(self.db, max_wait_seconds=1, timeout_seconds=-1):
                self.db.add(Organization(name="Late"))
        self.assertEqual(self.names(), [])

    def test_lock_errors_are_recognised(self):
        locked = OperationalError("UPDATE products", {}, sqlite3.OperationalError("database is locked"))
        self.assertTrue(is_lock_timeout(locked))

        pg_error = Exception("canceling statement due to lock timeout")
        pg_error.pgcode = "55P03"
        self.assertTrue(is_lock_timeout(OperationalError("UPDATE products", {}, pg_error)))

        other = OperationalError("SELECT 1", {}, sqlite3.OperationalError("no such table: products"))
        self.assertFalse(is_lock_timeout(other))

    def test_unknown_statuses_are_rejected(self):
        organization = Organization(name="Org")
        self.db.add(organization)
        self.db.flush()
        cost_center = CostCenter(organization_id=organization.id, name="Cozinha")
        self.db.add(cost_center)
        self.db.flush()
        self.db.add(InventorySession(cost_center_id=cost_center.id, status="PAUSED", created_by="u"))
        with self.assertRaises(IntegrityError):
            self.db.flush()
        self.db.rollback()


if __name__ == "__main__":
    unittest.main()
