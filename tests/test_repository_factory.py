import unittest

from ecolife.db import build_engine
from ecolife.repositories import (
    InMemoryEcoTipCacheRepository,
    SqlBikeNetworkRepository,
    SqlEcoTipCacheRepository,
    build_bike_network_repository,
    build_database_engine,
    build_eco_tip_repository,
)
from ecolife.repositories.factory import DEFAULT_STORE_NAME


class DummySettings:
    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)
        self.eco_tip_store = getattr(self, "eco_tip_store", DEFAULT_STORE_NAME)
        self.database_url = getattr(self, "database_url", "sqlite://")


class TestRepositoryFactory(unittest.TestCase):
    def test_memory_store(self):
        repo = build_eco_tip_repository(DummySettings(eco_tip_store="memory"))
        self.assertIsInstance(repo, InMemoryEcoTipCacheRepository)

    def test_sql_store_uses_given_engine(self):
        engine = build_engine("sqlite://")
        self.addCleanup(engine.dispose)
        repo = build_eco_tip_repository(DummySettings(eco_tip_store="sql"), engine=engine)
        self.assertIsInstance(repo, SqlEcoTipCacheRepository)
        self.assertIs(repo.engine, engine)

    def test_sql_store_builds_engine_from_url(self):
        repo = build_eco_tip_repository(DummySettings(eco_tip_store="SQL", database_url="sqlite://"))
        self.addCleanup(repo.engine.dispose)
        self.assertEqual(repo.engine.dialect.name, "sqlite")

    def test_unknown_store_raises(self):
        with self.assertRaises(ValueError):
            build_eco_tip_repository(DummySettings(eco_tip_store="mongo"))

    def test_missing_database_url_raises(self):
        with self.assertRaises(ValueError):
            build_database_engine(DummySettings(database_url=""))

    def test_bike_repository_is_sql(self):
        engine = build_engine("sqlite://")
        self.addCleanup(engine.dispose)
        self.assertIsInstance(build_bike_network_repository(DummySettings(), engine=engine), SqlBikeNetworkRepository)


if __name__ == "__main__":
    unittest.main()
