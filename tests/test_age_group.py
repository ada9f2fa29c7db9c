import unittest

from ecolife.domain import AGE_GROUPS, age_group_for


class TestAgeGroups(unittest.TestCase):
    def test_bracket_boundaries_are_inclusive(self):
        cases = {
            10: "teen",
            18: "teen",
            19: "young adult",
            29: "young adult",
            30: "middle-aged adult",
            49: "middle-aged adult",
            50: "senior",
            90: "senior",
        }
        for age, expected in cases.items():
            with self.subTest(age=age):
                self.assertEqual(age_group_for(age).name, expected)

    def test_every_group_has_fallback_and_focus(self):
        for group in AGE_GROUPS:
            self.assertTrue(group.fallback_tip)
            self.assertTrue(group.guidance().startswith("\n- "))

    def test_young_adult_fallback(self):
        self.assertIn("Walk or bike for trips under 2km", age_group_for(25).fallback_tip)


if __name__ == "__main__":
    unittest.main()
