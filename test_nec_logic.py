import math
import unittest

from core.errors import (
    DeviceExceedsConductorAmpacity, InvalidInput, NoConductorFits, NoStandardDeviceFits, OutOfRangeAmbient,
)
from core.models import (
    ApplianceLoad, Circuit, ConductorMaterial, InsulationRating, LoadClassification, MandatoryCircuit,
    ProtectionType,
)
from standards.nec_logic import NECLogic
from standards.nec_tables import NEC_TABLES

CU = ConductorMaterial.COPPER
AL = ConductorMaterial.ALUMINUM
T75 = InsulationRating.TEMP_75
T90 = InsulationRating.TEMP_90


def cu(size):
    return NEC_TABLES.find(size, CU)


class TestDerating(unittest.TestCase):
    def test_derate_temperature_and_bundling(self):
        # 12 AWG @90C = 30A; 40C -> 0.91; 6 conductors -> 0.80
        self.assertAlmostEqual(NECLogic.derate(30, 40, T90, 6), 30 * 0.91 * 0.80)

    def test_derate_is_pure(self):
        first = NECLogic.derate(65, 45, T75, 4)
        second = NECLogic.derate(65, 45, T75, 4)
        self.assertEqual(first, second)
        self.assertEqual(first, 65 * 0.82 * 0.80)

    def test_derate_accepts_int_rating(self):
        self.assertEqual(NECLogic.derate(25, 30, 75, 3), 25)

    def test_derate_below_freezing(self):
        # Outdoor winter run: "10 or less" row, 75C column = 1.20
        self.assertAlmostEqual(NECLogic.derate(20, -5, 75, 3), 24.0)

    def test_derate_out_of_range(self):
        with self.assertRaises(OutOfRangeAmbient):
            NECLogic.derate(25, 72, T75, 3)
        with self.assertRaises(InvalidInput):
            NECLogic.derate(25, 30, T75, 0)


class TestConductorSelection(unittest.TestCase):
    def test_smallest_conductor_meeting_requirement(self):
        sel = NECLogic.select_conductor(20, CU, T75, 30, 3)
        self.assertEqual(sel.size, "14")
        self.assertEqual(sel.derated_ampacity, 20)
        sel = NECLogic.select_conductor(20.5, CU, T75, 30, 3)
        self.assertEqual(sel.size, "12")

    def test_round_trip_selection(self):
        # Asking for exactly an entry's derated ampacity gives that entry back
        for entry in NEC_TABLES.catalog(CU):
            required = NECLogic.derate(entry.ampacity(T90), 40, T90, 6)
            sel = NECLogic.select_conductor(required, CU, T90, 40, 6)
            self.assertEqual(sel.conductor, entry)

    def test_derated_selection_is_larger(self):
        # 28.4A at 30C fits 10 AWG (35A); at 55C 10 AWG drops to 35 * 0.67 = 23.45A
        cool = NECLogic.select_conductor(28.4, CU, T75, 30, 3)
        hot = NECLogic.select_conductor(28.4, CU, T75, 55, 3)
        self.assertEqual(cool.size, "10")
        self.assertGreater(hot.conductor.position, cool.conductor.position)
        self.assertGreaterEqual(hot.derated_ampacity, 28.4)

    def test_minimum_size(self):
        sel = NECLogic.select_conductor(10, CU, T75, 30, 3, minimum_size="8")
        self.assertEqual(sel.size, "8")

    def test_no_conductor_fits_is_not_clamped(self):
        with self.assertRaises(NoConductorFits) as ctx:
            NECLogic.select_conductor(700, CU, T75, 30, 3)
        self.assertEqual(ctx.exception.largest_size, "2000")
        self.assertEqual(ctx.exception.largest_ampacity, 665)
        with self.assertRaises(NoConductorFits):
            NECLogic.select_conductor(300, CU, T75, 30, 40)

    def test_rejects_non_positive_requirement(self):
        with self.assertRaises(InvalidInput):
            NECLogic.select_conductor(0, CU, T75, 30, 3)


class TestVoltageDrop(unittest.TestCase):
    def test_single_phase_reference_case(self):
        # 12 AWG, 20A, 50 ft, 120V: 2 * 50 * 20 * 1.588 / 1000 = 3.176V -> 2.65%
        volts, pct = NECLogic.calculate_voltage_drop(cu("12"), 50, 20, 120, 1)
        self.assertAlmostEqual(volts, 3.176, places=3)
        self.assertAlmostEqual(pct, 2.65, delta=0.01)

    def test_three_phase_uses_sqrt3(self):
        volts, _ = NECLogic.calculate_voltage_drop(cu("2"), 200, 100, 480, 3)
        self.assertAlmostEqual(volts, math.sqrt(3) * 200 * 100 * 0.156 / 1000)

    def test_compliant_run_is_not_upsized(self):
        circuit = Circuit(voltage=120, phase_count=1, length=50, current=20)
        vd = NECLogic.check_and_upsize(cu("12"), circuit)
        self.assertTrue(vd.compliant)
        self.assertIsNone(vd.upsized_from)
        self.assertEqual(vd.conductor.size, "12")
        self.assertAlmostEqual(vd.voltage_at_load, 120 - vd.drop_volts)

    def test_upsizes_until_compliant(self):
        # 12 AWG -> 5.29%, 10 AWG -> 3.33%, 8 AWG -> 2.09%
        circuit = Circuit(voltage=120, phase_count=1, length=100, current=20)
        vd = NECLogic.check_and_upsize(cu("12"), circuit)
        self.assertEqual(vd.conductor.size, "8")
        self.assertEqual(vd.upsized_from.size, "12")
        self.assertTrue(vd.compliant)
        self.assertLessEqual(vd.drop_percent, 3.0)

    def test_circuit_limit_overrides_config(self):
        circuit = Circuit(voltage=120, phase_count=1, length=100, current=20, max_voltage_drop=4.0)
        vd = NECLogic.check_and_upsize(cu("12"), circuit)
        self.assertEqual(vd.conductor.size, "10")

    def test_exhausted_catalog_returns_largest_flagged(self):
        circuit = Circuit(voltage=120, phase_count=1, length=5000, current=500)
        with self.assertLogs("standards.nec_logic", level="WARNING"):
            vd = NECLogic.check_and_upsize(cu("900"), circuit)
        self.assertEqual(vd.conductor.size, "2000")
        self.assertFalse(vd.compliant)

    def test_rating_text(self):
        circuit = Circuit(voltage=120, phase_count=1, length=50, current=20)
        self.assertTrue(NECLogic.check_and_upsize(cu("12"), circuit).rating.startswith("Good"))


class TestDemandAggregation(unittest.TestCase):
    def test_demand_factor_brackets(self):
        # First 10 kVA at 100%, remainder at 40%
        self.assertAlmostEqual(NECLogic.apply_demand_factors(12000), 10800)
        self.assertAlmostEqual(NECLogic.apply_demand_factors(8000), 8000)
        self.assertAlmostEqual(NECLogic.apply_demand_factors(10000), 10000)

    def test_dwelling_aggregate(self):
        loads = [
            ApplianceLoad("Range", watts=8000),
            ApplianceLoad("Dryer", watts=5000),
            ApplianceLoad("AC", watts=4200, is_motor=True),
        ]
        res = NECLogic.aggregate(loads, floor_area=2500)
        # 7500 lighting + 3000 + 1500 + 17200 appliances
        self.assertEqual(res.general_lighting, 7500)
        self.assertAlmostEqual(res.connected_load, 29200)
        self.assertAlmostEqual(res.demand_load, 10000 + 19200 * 0.4)
        self.assertAlmostEqual(res.motor_addition, 1050)
        self.assertAlmostEqual(res.demand_va, 18730)
        self.assertAlmostEqual(res.demand_current, 18730 / 240)
        self.assertIn("430.24", res.reference_notes)

    def test_lighting_minimum(self):
        res = NECLogic.aggregate([], floor_area=500)
        self.assertEqual(res.general_lighting, 3000)
        self.assertEqual(res.connected_load, 7500)
        self.assertEqual(res.motor_addition, 0)

    def test_mandatory_circuits_not_double_counted(self):
        base = NECLogic.aggregate([ApplianceLoad("Dryer", watts=5000)], floor_area=2000)
        tagged = NECLogic.aggregate([
            ApplianceLoad("Dryer", watts=5000),
            ApplianceLoad("Kitchen counter", watts=1500, mandatory_circuit=MandatoryCircuit.SMALL_APPLIANCE),
            ApplianceLoad("Washer", watts=1200, mandatory_circuit=MandatoryCircuit.LAUNDRY),
        ], floor_area=2000)
        self.assertEqual(base.connected_load, tagged.connected_load)

    def test_largest_motor_is_a_unit(self):
        loads = [
            ApplianceLoad("Fans", watts=500, is_motor=True, quantity=4),
            ApplianceLoad("Well pump", watts=1200, is_motor=True),
        ]
        res = NECLogic.aggregate(loads, floor_area=1000)
        self.assertEqual(res.largest_motor, 1200)
        self.assertEqual(res.appliance_load, 3200)

    def test_continuous_and_amp_rated_loads(self):
        loads = [ApplianceLoad("Heater", amps=20, voltage=240, is_continuous=True)]
        res = NECLogic.aggregate(loads, floor_area=1000)
        self.assertEqual(res.appliance_load, 4800)
        self.assertEqual(res.continuous_load, 4800)

    def test_three_phase_current(self):
        res = NECLogic.aggregate([], floor_area=1000, voltage=208, phase_count=3)
        self.assertAlmostEqual(res.demand_current, res.demand_va / (208 * math.sqrt(3)))

    def test_three_phase_amp_rated_load(self):
        # 20A at 208V three-phase = 20 * 208 * sqrt(3) VA
        res = NECLogic.aggregate([ApplianceLoad("Chiller", amps=20)], floor_area=0, voltage=208, phase_count=3)
        self.assertAlmostEqual(res.appliance_load, 20 * 208 * math.sqrt(3))
        self.assertAlmostEqual(res.appliance_load, 7205.33, places=2)

    def test_load_without_rating(self):
        with self.assertRaises(InvalidInput):
            NECLogic.aggregate([ApplianceLoad("Mystery")], floor_area=1000)

    def test_invalid_loads(self):
        with self.assertRaises(InvalidInput):
            NECLogic.aggregate([ApplianceLoad("X", watts=100, quantity=0)], floor_area=1000)
        with self.assertRaises(InvalidInput):
            NECLogic.aggregate([ApplianceLoad("X", watts=-100)], floor_area=1000)
        with self.assertRaises(InvalidInput):
            NECLogic.aggregate([], floor_area=-1)
        with self.assertRaises(InvalidInput):
            NECLogic.aggregate([], floor_area=1000, phase_count=2)


class TestProtectiveDevice(unittest.TestCase):
    def test_round_to_standard(self):
        self.assertEqual(NECLogic.round_to_standard(56.25), 60)
        self.assertEqual(NECLogic.round_to_standard(60), 60)
        self.assertEqual(NECLogic.round_to_standard(41, ceiling=42), 40)
        with self.assertRaises(NoStandardDeviceFits):
            NECLogic.round_to_standard(6001)

    def test_ceiling_below_smallest_rating(self):
        with self.assertLogs("standards.nec_logic", level="WARNING"):
            self.assertEqual(NECLogic.round_to_standard(10, ceiling=12), 15)

    def test_continuous_load(self):
        # 45A * 1.25 = 56.25 -> 60A
        self.assertEqual(NECLogic.select_device(45, LoadClassification.CONTINUOUS), 60)

    def test_general_load(self):
        self.assertEqual(NECLogic.select_device(45, LoadClassification.GENERAL), 45)

    def test_motor_inverse_time(self):
        # 27A * 250% = 67.5 -> 70A, inside the 400% ceiling
        rating = NECLogic.select_device(27, LoadClassification.MOTOR, ProtectionType.INVERSE_TIME)
        self.assertEqual(rating, 70)

    def test_motor_time_delay_fuse(self):
        # 27A * 175% = 47.25 -> 50A
        self.assertEqual(NECLogic.select_device(27, LoadClassification.MOTOR, ProtectionType.TIME_DELAY_FUSE), 50)

    def test_motor_large_flc_ceiling(self):
        # 321A * 250% = 802.5 -> 1000A, above the 300% ceiling (963A) -> 800A
        rating = NECLogic.select_device(321, LoadClassification.MOTOR, ProtectionType.INVERSE_TIME)
        self.assertEqual(rating, 800)

    def test_motor_requires_protection_type(self):
        with self.assertRaises(InvalidInput):
            NECLogic.select_device(27, LoadClassification.MOTOR)

    def test_motor_skips_conductor_cross_check(self):
        rating = NECLogic.select_device(
            27, LoadClassification.MOTOR, ProtectionType.INVERSE_TIME, conductor_ampacity=35, conductor=cu("10")
        )
        self.assertEqual(rating, 70)

    def test_small_conductor_cap(self):
        # 12 AWG copper: 25A ampacity, 20A maximum protection
        self.assertEqual(NECLogic.max_device_for_conductor(25, cu("12")), 20)
        self.assertEqual(NECLogic.select_device(20, LoadClassification.GENERAL, conductor_ampacity=25, conductor=cu("12")), 20)
        with self.assertRaises(DeviceExceedsConductorAmpacity) as ctx:
            NECLogic.select_device(22, LoadClassification.GENERAL, conductor_ampacity=25, conductor=cu("12"))
        self.assertEqual(ctx.exception.device_rating, 25)
        self.assertEqual(ctx.exception.max_permitted, 20)
        self.assertEqual(ctx.exception.conductor_size, "12")

    def test_next_size_up(self):
        # 6 AWG = 65A, not a standard rating -> 70A permitted
        self.assertEqual(NECLogic.max_device_for_conductor(65, cu("6")), 70)
        self.assertEqual(NECLogic.select_device(68, LoadClassification.GENERAL, conductor_ampacity=65, conductor=cu("6")), 70)

    def test_no_next_size_up_above_800(self):
        self.assertEqual(NECLogic.max_device_for_conductor(850), 800)
        with self.assertRaises(DeviceExceedsConductorAmpacity):
            NECLogic.select_device(850, LoadClassification.GENERAL, conductor_ampacity=850)


class TestGroundingConductor(unittest.TestCase):
    def test_table_lookup(self):
        self.assertEqual(NECLogic.select_grounding_conductor(20, CU), "12")
        self.assertEqual(NECLogic.select_grounding_conductor(100, AL), "6")

    def test_proportional_upsizing(self):
        # Phase upsized 12 -> 8 AWG for voltage drop: EGC grows by the same area ratio
        self.assertEqual(NECLogic.select_grounding_conductor(20, CU, cu("8"), cu("12")), "8")
        self.assertEqual(NECLogic.select_grounding_conductor(20, CU, cu("10"), cu("12")), "10")

    def test_never_larger_than_phase_conductor(self):
        self.assertEqual(NECLogic.select_grounding_conductor(15, CU, cu("10"), cu("14")), "10")
        self.assertEqual(NECLogic.select_grounding_conductor(20, CU, cu("12"), cu("14")), "12")
        # Motor circuit: 70A breaker on 10 AWG conductors
        self.assertEqual(NECLogic.select_grounding_conductor(70, CU, cu("10"), cu("10")), "10")

    def test_no_upsizing_without_voltage_drop(self):
        self.assertEqual(NECLogic.select_grounding_conductor(60, CU, cu("6"), cu("6")), "10")


if __name__ == '__main__':
    unittest.main()
