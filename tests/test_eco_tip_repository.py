import datetime as dt
import unittest

from ecolife.db import MigrationRunner, build_engine
from ecolife.domain import EcoTipCache
from ecolife.repositories import InMemoryEcoTipCacheRepository, SqlEcoTipCacheRepository

KST = dt.timezone(dt.timedelta(hours=9))


def _entry(age, day, content="Turn off lights", **kwargs):
    return EcoTipCache.create(user_age=age, tip_date=day, tip_content=content, **kwargs)


class EcoTipRepositoryContract:
    """Behaviour every EcoTipCacheRepository must share; mixed into TestCase subclasses."""

    def make_repository(self):
        raise NotImplementedError

    def setUp(self):
        self.repo = self.make_repository()

    def test_find_returns_saved_content(self):
        self.repo.save(_entry(25, dt.date(2024, 1, 15)))
        found = self.repo.find_by_age_and_date(25, dt.date(2024, 1, 15))
        self.assertIsNotNone(found)
        self.assertEqual(found.tip_content, "Turn off lights")
        self.assertEqual(found.category, "daily_tip")

    def test_other_age_is_a_miss(self):
        self.repo.save(_entry(25, dt.date(2024, 1, 15)))
        self.assertIsNone(self.repo.find_by_age_and_date(26, dt.date(2024, 1, 15)))

    def test_other_day_is_a_miss(self):
        self.repo.save(_entry(25, dt.date(2024, 1, 15)))
        self.assertIsNone(self.repo.find_by_age_and_date(25, dt.date(2024, 1, 16)))

    def test_lookup_ignores_time_of_day_and_offset(self):
        self.repo.save(_entry(30, dt.datetime(2024, 1, 15, 0, 30, tzinfo=KST)))
        for probe in (
            dt.date(2024, 1, 15),
            dt.datetime(2024, 1, 15, 23, 59, 59),
            dt.datetime(2024, 1, 15, 8, 0, tzinfo=KST),
            "2024-01-15",
        ):
            with self.subTest(probe=probe):
                self.assertIsNotNone(self.repo.find_by_age_and_date(30, probe))

    def test_delete_old_entries_is_strictly_before(self):
        for day in (12, 13, 14, 15):
            self.repo.save(_entry(25, dt.date(2024, 1, day), content=f"tip {day}"))

        deleted = self.repo.delete_old_entries(dt.date(2024, 1, 14))

        self.assertEqual(deleted, 2)
        self.assertIsNone(self.repo.find_by_age_and_date(25, dt.date(2024, 1, 12)))
        self.assertIsNone(self.repo.find_by_age_and_date(25, dt.date(2024, 1, 13)))
        self.assertEqual(self.repo.find_by_age_and_date(25, dt.date(2024, 1, 14)).tip_content, "tip 14")
        self.assertEqual(self.repo.find_by_age_and_date(25, dt.date(2024, 1, 15)).tip_content, "tip 15")

    def test_delete_with_nothing_old_returns_zero(self):
        self.repo.save(_entry(25, dt.date(2024, 1, 15)))
        self.assertEqual(self.repo.delete_old_entries(dt.date(2024, 1, 1)), 0)


class TestSqlEcoTipCacheRepository(EcoTipRepositoryContract, unittest.TestCase):
    def make_repository(self):
        self.engine = build_engine("sqlite://")
        MigrationRunner(self.engine).upgrade()
        return SqlEcoTipCacheRepository(self.engine)

    def tearDown(self):
        self.engine.dispose()

    def test_save_round_trips_custom_category(self):
        saved = self.repo.save(_entry(40, dt.date(2024, 2, 1), category="weekly"))
        found = self.repo.find_by_age_and_date(40, dt.date(2024, 2, 1))
        self.assertEqual(found.id, saved.id)
        self.assertEqual(found.category, "weekly")

    def test_created_at_comes_back_as_utc(self):
        saved = self.repo.save(
            EcoTipCache.reconstitute(
                id="kst-entry",
                user_age=25,
                tip_date=dt.date(2024, 1, 15),
                tip_content="Turn off lights",
                category="daily_tip",
                created_at=dt.datetime(2024, 1, 15, 9, 0, tzinfo=KST),
            )
        )
        found = self.repo.find_by_age_and_date(25, dt.date(2024, 1, 15))
        expected = dt.datetime(2024, 1, 15, 0, 0, tzinfo=dt.timezone.utc)
        self.assertEqual(found.created_at.utcoffset(), dt.timedelta(0))
        self.assertEqual(found.created_at, expected)
        self.assertEqual(saved.created_at, expected)

    def test_duplicates_resolve_to_earliest_created(self):
        first = EcoTipCache.reconstitute(
            id="b-first",
            user_age=25,
            tip_date=dt.date(2024, 1, 15),
            tip_content="first",
            category="daily_tip",
            created_at=dt.datetime(2024, 1, 15, 1, 0, tzinfo=dt.timezone.utc),
        )
        second = EcoTipCache.reconstitute(
            id="a-second",
            user_age=25,
            tip_date=dt.date(2024, 1, 15),
            tip_content="second",
            category="daily_tip",
            created_at=dt.datetime(2024, 1, 15, 2, 0, tzinfo=dt.timezone.utc),
        )
        self.repo.save(second)
        self.repo.save(first)
        self.assertEqual(self.repo.find_by_age_and_date(25, dt.date(2024, 1, 15)).tip_content, "first")


class TestInMemoryEcoTipCacheRepository(EcoTipRepositoryContract, unittest.TestCase):
    def make_repository(self):
        return InMemoryEcoTipCacheRepository()

    def test_first_write_wins(self):
        self.repo.save(_entry(25, dt.date(2024, 1, 15), content="first"))
        stored = self.repo.save(_entry(25, dt.date(2024, 1, 15), content="second"))
        self.assertEqual(stored.tip_content, "first")
        self.assertEqual(self.repo.size(), 1)

    def test_clear(self):
        self.repo.save(_entry(25, dt.date(2024, 1, 15)))
        self.repo.save(_entry(60, dt.date(2024, 1, 15)))
        self.assertEqual(self.repo.size(), 2)
        self.repo.clear()
        self.assertEqual(self.repo.size(), 0)


if __name__ == "__main__":
    unittest.main()
