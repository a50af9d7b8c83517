import unittest

from core.errors import InvalidInput, OutOfRangeAmbient
from core.models import ConductorMaterial, InsulationRating, ProtectionType
from standards.nec_tables import NEC_TABLES, TEMP_CORRECTION_FACTORS


class TestReferenceTables(unittest.TestCase):
    def test_ampacity_non_decreasing_with_size(self):
        for material in ConductorMaterial:
            catalog = NEC_TABLES.catalog(material)
            for rating in InsulationRating:
                values = [e.ampacity(rating) for e in catalog]
                self.assertEqual(values, sorted(values), f"{material.value} {rating.value}C")
            # Larger conductors: more copper, less resistance
            areas = [e.area_cmil for e in catalog]
            self.assertEqual(areas, sorted(areas))
            ohms = [e.resistance for e in catalog]
            self.assertEqual(ohms, sorted(ohms, reverse=True))

    def test_positions_match_catalog_order(self):
        for material in ConductorMaterial:
            for i, entry in enumerate(NEC_TABLES.catalog(material)):
                self.assertEqual(entry.position, i)

    def test_310_16_spot_values(self):
        # NEC Table 310.16 copper: 12 AWG = 20/25/30A
        cu12 = NEC_TABLES.find("12", ConductorMaterial.COPPER)
        self.assertEqual((cu12.ampacity_60, cu12.ampacity_75, cu12.ampacity_90), (20, 25, 30))
        al_4_0 = NEC_TABLES.find("4/0", ConductorMaterial.ALUMINUM)
        self.assertEqual(al_4_0.ampacity(InsulationRating.TEMP_75), 180)
        self.assertEqual(NEC_TABLES.find("#6", ConductorMaterial.COPPER).size, "6")

    def test_find_unknown_size(self):
        # No 14 AWG aluminum in Table 310.16
        with self.assertRaises(InvalidInput):
            NEC_TABLES.find("14", ConductorMaterial.ALUMINUM)
        with self.assertRaises(InvalidInput):
            NEC_TABLES.find("13", ConductorMaterial.COPPER)

    def test_next_larger(self):
        cu = NEC_TABLES.catalog(ConductorMaterial.COPPER)
        self.assertEqual(NEC_TABLES.next_larger(cu[0]).size, "12")
        self.assertIsNone(NEC_TABLES.next_larger(cu[-1]))

    def test_breaker_ratings_strictly_increasing(self):
        ratings = NEC_TABLES.breaker_ratings
        self.assertTrue(all(a < b for a, b in zip(ratings, ratings[1:])))
        self.assertEqual(ratings[0], 15)
        self.assertEqual(ratings[-1], 6000)

    def test_temp_correction_reference_ambient(self):
        for rating in (60, 75, 90):
            self.assertEqual(NEC_TABLES.get_temp_correction(30, rating), 1.0)

    def test_temp_correction_monotonic(self):
        for rating in (60, 75, 90):
            factors = [f[rating] for _, f in TEMP_CORRECTION_FACTORS if f[rating] is not None]
            self.assertEqual(factors, sorted(factors, reverse=True))
            self.assertTrue(all(0 < f <= 1.3 for f in factors))

    def test_temp_correction_bands(self):
        # 36-40C band, 90C column
        self.assertEqual(NEC_TABLES.get_temp_correction(40, 90), 0.91)
        self.assertEqual(NEC_TABLES.get_temp_correction(40.5, 90), 0.87)
        self.assertEqual(NEC_TABLES.get_temp_correction(0, 75), 1.20)

    def test_temp_correction_below_freezing(self):
        # First row is "10 or less": winter ambients use it
        self.assertEqual(NEC_TABLES.get_temp_correction(-5, 75), 1.20)
        self.assertEqual(NEC_TABLES.get_temp_correction(-40, 60), 1.29)

    def test_temp_correction_out_of_range(self):
        with self.assertRaises(OutOfRangeAmbient):
            NEC_TABLES.get_temp_correction(86, 90)
        # 60C insulation is not permitted above 55C ambient
        with self.assertRaises(OutOfRangeAmbient) as ctx:
            NEC_TABLES.get_temp_correction(58, 60)
        self.assertEqual(ctx.exception.ambient_temp, 58)
        self.assertEqual(ctx.exception.temp_rating, 60)

    def test_grouping_factors(self):
        self.assertEqual(NEC_TABLES.get_grouping_factor(3), 1.0)
        self.assertEqual(NEC_TABLES.get_grouping_factor(4), 0.80)
        self.assertEqual(NEC_TABLES.get_grouping_factor(9), 0.70)
        self.assertEqual(NEC_TABLES.get_grouping_factor(41), 0.35)
        factors = [NEC_TABLES.get_grouping_factor(n) for n in range(1, 60)]
        self.assertEqual(factors, sorted(factors, reverse=True))
        with self.assertRaises(InvalidInput):
            NEC_TABLES.get_grouping_factor(0)

    def test_small_conductor_limits(self):
        cu = ConductorMaterial.COPPER
        self.assertEqual(NEC_TABLES.small_conductor_limit(NEC_TABLES.find("14", cu)), 15)
        self.assertEqual(NEC_TABLES.small_conductor_limit(NEC_TABLES.find("12", cu)), 20)
        self.assertEqual(NEC_TABLES.small_conductor_limit(NEC_TABLES.find("10", cu)), 30)
        self.assertIsNone(NEC_TABLES.small_conductor_limit(NEC_TABLES.find("8", cu)))
        al10 = NEC_TABLES.find("10", ConductorMaterial.ALUMINUM)
        self.assertEqual(NEC_TABLES.small_conductor_limit(al10), 25)

    def test_250_122(self):
        self.assertEqual(NEC_TABLES.grounding_conductor(20, ConductorMaterial.COPPER), "12")
        self.assertEqual(NEC_TABLES.grounding_conductor(60, ConductorMaterial.COPPER), "10")
        self.assertEqual(NEC_TABLES.grounding_conductor(100, ConductorMaterial.ALUMINUM), "6")
        self.assertEqual(NEC_TABLES.grounding_conductor(200, ConductorMaterial.COPPER), "6")
        with self.assertRaises(InvalidInput):
            NEC_TABLES.grounding_conductor(6500, ConductorMaterial.COPPER)

    def test_250_66(self):
        cu = ConductorMaterial.COPPER
        self.assertEqual(NEC_TABLES.grounding_electrode_conductor(NEC_TABLES.find("2", cu)), "8")
        self.assertEqual(NEC_TABLES.grounding_electrode_conductor(NEC_TABLES.find("2/0", cu)), "4")
        self.assertEqual(NEC_TABLES.grounding_electrode_conductor(NEC_TABLES.find("2000", cu)), "3/0")
        al = NEC_TABLES.find("4/0", ConductorMaterial.ALUMINUM)
        self.assertEqual(NEC_TABLES.grounding_electrode_conductor(al), "2")

    def test_motor_protection_percent(self):
        self.assertEqual(NEC_TABLES.motor_protection_percent(ProtectionType.INVERSE_TIME, 50), (250, 400))
        # 430.52(C)(1) Exc. 2(c)
        self.assertEqual(NEC_TABLES.motor_protection_percent(ProtectionType.INVERSE_TIME, 150), (250, 300))
        self.assertEqual(NEC_TABLES.motor_protection_percent(ProtectionType.TIME_DELAY_FUSE, 150), (175, 225))

    def test_motor_flc(self):
        self.assertEqual(NEC_TABLES.motor_flc(10, 460, 3), 14.0)
        self.assertEqual(NEC_TABLES.motor_flc(1, 115, 1), 16.0)
        with self.assertRaises(InvalidInput):
            NEC_TABLES.motor_flc(12, 460, 3)
        with self.assertRaises(InvalidInput):
            NEC_TABLES.motor_flc(10, 460, 1)


if __name__ == '__main__':
    unittest.main()
