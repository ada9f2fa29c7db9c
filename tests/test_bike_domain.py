import unittest

from ecolife.domain import BikeNetwork, BikeStation


def _station(**overrides) -> BikeStation:
    fields = dict(
        network_id="net-1",
        external_id="st-1",
        name="Central",
        latitude=37.5665,
        longitude=126.978,
        free_bikes=3,
        empty_slots=7,
        total_slots=10,
    )
    fields.update(overrides)
    return BikeStation.create(**fields)


class TestBikeStation(unittest.TestCase):
    def test_create_applies_defaults(self):
        station = _station()
        self.assertFalse(station.has_payment_terminal)
        self.assertEqual(station.altitude, 0)
        self.assertFalse(station.is_virtual)
        self.assertTrue(station.is_renting)
        self.assertTrue(station.is_returning)
        self.assertEqual(station.payment_methods, ())

    def test_explicit_false_flags_are_kept(self):
        station = _station(is_renting=False, is_returning=False)
        self.assertFalse(station.is_renting)
        self.assertFalse(station.is_returning)

    def test_availability(self):
        self.assertTrue(_station(free_bikes=1).is_available())
        self.assertFalse(_station(free_bikes=0).is_available())
        self.assertTrue(_station(empty_slots=1).has_empty_slots())
        self.assertFalse(_station(empty_slots=0).has_empty_slots())

    def test_occupancy_rate(self):
        self.assertAlmostEqual(_station(total_slots=10, empty_slots=7).occupancy_rate(), 30.0)
        self.assertEqual(_station(total_slots=0, empty_slots=0).occupancy_rate(), 0)

    def test_update_availability_moves_fields_together(self):
        station = _station()
        before = station.last_updated
        station.update_availability(0, 10)
        self.assertEqual(station.free_bikes, 0)
        self.assertEqual(station.empty_slots, 10)
        self.assertGreaterEqual(station.last_updated, before)
        self.assertEqual(station.last_updated, station.updated_at)
        self.assertEqual(station.total_slots, 10)

    def test_payment_methods_are_copied(self):
        methods = ["key", "creditcard"]
        station = _station(payment_methods=methods)
        methods.append("cash")
        self.assertEqual(station.payment_methods, ("key", "creditcard"))


class TestBikeNetwork(unittest.TestCase):
    def test_create_and_touch(self):
        companies = ["Seoul Metropolitan Government"]
        network = BikeNetwork.create(
            external_id="seoul-bike",
            name="Ttareungyi",
            latitude=37.5665,
            longitude=126.978,
            city="Seoul",
            country="KR",
            companies=companies,
        )
        companies.append("other")
        self.assertEqual(network.companies, ("Seoul Metropolitan Government",))
        self.assertFalse(network.ebikes)

        before = network.updated_at
        network.touch()
        self.assertGreaterEqual(network.updated_at, before)


if __name__ == "__main__":
    unittest.main()
