import unittest

from sqlalchemy import inspect

from ecolife.db import MIGRATIONS, MigrationRunner, build_engine
from ecolife.db.migrations import table_names

ALL_TABLES = {
    "schema_migrations",
    "tbl_bike_networks",
    "tbl_bike_stations",
    "tbl_routing_sessions",
    "tbl_carbon_savings",
    "eco_tip_cache",
}


class TestMigrationRunner(unittest.TestCase):
    def setUp(self):
        self.engine = build_engine("sqlite://")
        self.runner = MigrationRunner(self.engine)

    def tearDown(self):
        self.engine.dispose()

    def test_upgrade_creates_every_table_once(self):
        self.assertEqual(self.runner.upgrade(), len(MIGRATIONS))
        self.assertEqual(set(table_names(self.engine)), ALL_TABLES)
        # second run is a no-op
        self.assertEqual(self.runner.upgrade(), 0)

    def test_status_reports_pending_then_applied(self):
        before = self.runner.status()
        self.assertEqual(before["applied"], 0)
        self.assertEqual(before["pending"], [m.version for m in MIGRATIONS])
        self.assertIsNone(before["latest"])

        self.runner.upgrade()

        after = self.runner.status()
        self.assertEqual(after["applied"], len(MIGRATIONS))
        self.assertEqual(after["pending"], [])
        self.assertEqual(after["latest"], MIGRATIONS[-1].version)

    def test_downgrade_reverts_newest_first(self):
        self.runner.upgrade()

        reverted = self.runner.downgrade(1)

        self.assertEqual(reverted, [MIGRATIONS[-1].version])
        self.assertNotIn("eco_tip_cache", table_names(self.engine))
        self.assertIn("tbl_bike_stations", table_names(self.engine))

        self.runner.downgrade(len(MIGRATIONS))
        self.assertEqual(table_names(self.engine), ["schema_migrations"])

    def test_eco_tip_index_is_not_unique(self):
        self.runner.upgrade()
        indexes = {ix["name"]: ix for ix in inspect(self.engine).get_indexes("eco_tip_cache")}
        self.assertIn("IDX_eco_tip_cache_age_date", indexes)
        self.assertFalse(indexes["IDX_eco_tip_cache_age_date"]["unique"])

    def test_station_foreign_key_cascades(self):
        self.runner.upgrade()
        fks = inspect(self.engine).get_foreign_keys("tbl_bike_stations")
        self.assertEqual(len(fks), 1)
        self.assertEqual(fks[0]["referred_table"], "tbl_bike_networks")
        self.assertEqual(fks[0]["options"].get("ondelete"), "CASCADE")


if __name__ == "__main__":
    unittest.main()
