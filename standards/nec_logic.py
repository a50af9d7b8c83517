import logging
import math
from typing import Iterable, Optional, Tuple, Union

from core.components import ConductorEntry, ConductorSelection, VoltageDropResult
from core.config import DEFAULT_CONFIG, SizingConfig
from core.errors import (
    DeviceExceedsConductorAmpacity, InvalidInput, NoConductorFits, NoStandardDeviceFits,
)
from core.models import (
    ApplianceLoad, Circuit, ConductorMaterial, DemandLoadResult, InsulationRating,
    LoadClassification, ProtectionType,
)
from standards.nec_tables import NEC_TABLES, NEXT_SIZE_UP_LIMIT, ReferenceTables

logger = logging.getLogger(__name__)

RatingLike = Union[InsulationRating, int]

# Absorbs float noise such as 45 * 1.25 landing a hair above a standard rating
_ROUNDING_DIGITS = 6


def _require_positive(field: str, value: float):
    if value is None or not value > 0:
        raise InvalidInput(field, value)


def _require_phase(phase_count: int):
    if phase_count not in (1, 3):
        raise InvalidInput("phase_count", phase_count, "must be 1 or 3")


def validate_circuit(circuit: Circuit):
    """Reject a circuit before any table lookup."""
    _require_positive("current", circuit.current)
    _require_positive("voltage", circuit.voltage)
    _require_positive("length", circuit.length)
    _require_phase(circuit.phase_count)
    if circuit.conductor_count < 1:
        raise InvalidInput("conductor_count", circuit.conductor_count, "must be a positive integer")
    if circuit.load_classification == LoadClassification.MOTOR and circuit.protection_type is None:
        raise InvalidInput("protection_type", None, "required for motor loads")


class NECLogic:
    @staticmethod
    def derate(
        base_ampacity: float,
        ambient_temp: float,
        temp_rating: RatingLike,
        conductor_count: int,
        tables: ReferenceTables = NEC_TABLES,
    ) -> float:
        # Temperature Correction: NEC 310.15(B)(1)
        # Grouping Adjustment: NEC 310.15(C)(1)
        if base_ampacity < 0:
            raise InvalidInput("base_ampacity", base_ampacity, "cannot be negative")
        rating = InsulationRating(temp_rating)
        f_temp = tables.get_temp_correction(ambient_temp, rating.value)
        f_group = tables.get_grouping_factor(conductor_count)
        return base_ampacity * f_temp * f_group

    @staticmethod
    def conductor_ampacity(
        entry: ConductorEntry,
        temp_rating: RatingLike,
        ambient_temp: float,
        conductor_count: int,
        tables: ReferenceTables = NEC_TABLES,
    ) -> ConductorSelection:
        rating = InsulationRating(temp_rating)
        return ConductorSelection(
            conductor=entry,
            derated_ampacity=NECLogic.derate(entry.ampacity(rating), ambient_temp, rating, conductor_count, tables),
            temp_factor=tables.get_temp_correction(ambient_temp, rating.value),
            bundling_factor=tables.get_grouping_factor(conductor_count),
        )

    @staticmethod
    def select_conductor(
        required_ampacity: float,
        material: ConductorMaterial,
        temp_rating: RatingLike,
        ambient_temp: float,
        conductor_count: int,
        minimum_size: Optional[str] = None,
        tables: ReferenceTables = NEC_TABLES,
    ) -> ConductorSelection:
        """
        Smallest cataloged conductor whose derated ampacity covers the requirement.

        The catalog is walked from the smallest size up, so ties on derated
        ampacity always resolve to the physically smaller conductor.
        ``minimum_size`` lets a caller restart the walk at a larger size after a
        protection check rejected the previous pick.
        """
        _require_positive("required_ampacity", required_ampacity)
        catalog = tables.catalog(material)
        start = tables.find(minimum_size, material).position if minimum_size else 0

        candidate = None
        for entry in catalog[start:]:
            candidate = NECLogic.conductor_ampacity(entry, temp_rating, ambient_temp, conductor_count, tables)
            if candidate.derated_ampacity >= required_ampacity:
                logger.debug(
                    "Selected %s for %.2fA (derated %.2fA)",
                    entry.label, required_ampacity, candidate.derated_ampacity,
                )
                return candidate

        largest = candidate or NECLogic.conductor_ampacity(catalog[-1], temp_rating, ambient_temp, conductor_count, tables)
        raise NoConductorFits(required_ampacity, largest.conductor.size, largest.derated_ampacity)

    @staticmethod
    def calculate_voltage_drop(
        conductor: ConductorEntry,
        length: float,
        current: float,
        voltage: float,
        phase_count: int,
    ) -> Tuple[float, float]:
        """Returns (volts, percent). Single phase / DC uses the 2x loop; three phase uses sqrt(3)."""
        k = math.sqrt(3) if phase_count == 3 else 2.0
        vd_volts = (k * length * current * conductor.resistance) / 1000.0
        vd_percent = (vd_volts / voltage) * 100.0
        return vd_volts, vd_percent

    @staticmethod
    def check_and_upsize(
        conductor: ConductorEntry,
        circuit: Circuit,
        config: SizingConfig = DEFAULT_CONFIG,
        tables: ReferenceTables = NEC_TABLES,
    ) -> VoltageDropResult:
        validate_circuit(circuit)
        limit = circuit.max_voltage_drop if circuit.max_voltage_drop is not None else config.max_branch_voltage_drop

        original = conductor
        vd_volts, vd_percent = NECLogic.calculate_voltage_drop(
            conductor, circuit.length, circuit.current, circuit.voltage, circuit.phase_count
        )
        while vd_percent > limit:
            larger = tables.next_larger(conductor)
            if larger is None:
                # Catalog exhausted: largest size, flagged non-compliant
                logger.warning(
                    "Voltage drop %.2f%% exceeds %.1f%% even on %s", vd_percent, limit, conductor.label
                )
                break
            conductor = larger
            vd_volts, vd_percent = NECLogic.calculate_voltage_drop(
                conductor, circuit.length, circuit.current, circuit.voltage, circuit.phase_count
            )

        if conductor is not original:
            logger.debug("Upsized %s -> %s for voltage drop", original.label, conductor.label)

        return VoltageDropResult(
            conductor=conductor,
            drop_volts=vd_volts,
            drop_percent=vd_percent,
            voltage_at_load=circuit.voltage - vd_volts,
            compliant=vd_percent <= limit,
            upsized_from=original if conductor is not original else None,
        )

    @staticmethod
    def apply_demand_factors(connected_va: float, config: SizingConfig = DEFAULT_CONFIG) -> float:
        # NEC 220.82(B): first 10 kVA at 100%, remainder at 40%.
        # Two brackets; the reduced factor never touches the first tier.
        first_tier = min(connected_va, config.demand_first_tier_va)
        remainder = max(connected_va - config.demand_first_tier_va, 0.0)
        return first_tier + remainder * config.demand_remainder_factor

    @staticmethod
    def aggregate(
        loads: Iterable[ApplianceLoad],
        floor_area: float,
        voltage: float = 240.0,
        phase_count: int = 1,
        config: SizingConfig = DEFAULT_CONFIG,
    ) -> DemandLoadResult:
        if floor_area is None or floor_area < 0:
            raise InvalidInput("floor_area", floor_area, "cannot be negative")
        _require_positive("voltage", voltage)
        _require_phase(phase_count)

        # General lighting NEC 220.12, with a fixed floor
        general_lighting = max(floor_area * config.lighting_va_per_sqft, config.lighting_minimum_va)

        # NEC 220.52(A)/(B): counted once, whether or not an appliance entry repeats them
        small_appliance = config.small_appliance_va
        laundry = config.laundry_va

        appliance_load = 0.0
        continuous_load = 0.0
        largest_motor = 0.0
        ref_parts = ["NEC 220.82"]

        for load in loads:
            if load.quantity < 1:
                raise InvalidInput("quantity", load.quantity, f"{load.name}: must be a positive integer")
            unit_va = load.unit_volt_amperes(voltage, phase_count)
            if unit_va < 0:
                raise InvalidInput("watts", unit_va, f"{load.name}: cannot be negative")
            if load.mandatory_circuit is not None:
                logger.debug("%s is covered by the fixed %s allowance", load.name, load.mandatory_circuit.value)
                continue

            line_va = unit_va * load.quantity
            appliance_load += line_va
            if load.is_continuous:
                continuous_load += line_va
            # Largest motor UNIT, not the line total
            if load.is_motor and unit_va > largest_motor:
                largest_motor = unit_va

        connected_load = general_lighting + small_appliance + laundry + appliance_load
        demand_load = NECLogic.apply_demand_factors(connected_load, config)

        motor_addition = largest_motor * config.largest_motor_factor
        if motor_addition > 0:
            ref_parts.append("NEC 430.24 (25% Largest Motor)")

        demand_va = demand_load + motor_addition
        divisor = voltage * (math.sqrt(3) if phase_count == 3 else 1.0)

        return DemandLoadResult(
            general_lighting=general_lighting,
            small_appliance=small_appliance,
            laundry=laundry,
            appliance_load=appliance_load,
            continuous_load=continuous_load,
            connected_load=connected_load,
            demand_load=demand_load,
            largest_motor=largest_motor,
            motor_addition=motor_addition,
            demand_va=demand_va,
            demand_current=demand_va / divisor,
            reference_notes=" + ".join(ref_parts),
        )

    @staticmethod
    def round_to_standard(
        value: float,
        ceiling: Optional[float] = None,
        ratings: Tuple[int, ...] = NEC_TABLES.breaker_ratings,
    ) -> int:
        """
        Round up to the next standard rating (NEC 240.6(A)).

        With a ceiling, a round-up that lands above it falls back to the largest
        standard rating at or below the ceiling.
        """
        value = round(value, _ROUNDING_DIGITS)
        selected = next((r for r in ratings if r >= value), None)
        if selected is None:
            raise NoStandardDeviceFits(value, ratings[-1])

        if ceiling is not None and selected > ceiling:
            below = [r for r in ratings if r <= round(ceiling, _ROUNDING_DIGITS)]
            if below:
                return below[-1]
            # Nothing manufacturable under the ceiling; the smallest rating is the floor
            logger.warning("No standard rating at or below %.2fA, using %dA", ceiling, ratings[0])
            return ratings[0]
        return selected

    @staticmethod
    def max_device_for_conductor(
        conductor_ampacity: float,
        conductor: Optional[ConductorEntry] = None,
        tables: ReferenceTables = NEC_TABLES,
    ) -> int:
        ratings = tables.breaker_ratings
        ampacity = round(conductor_ampacity, _ROUNDING_DIGITS)

        at_or_below = [r for r in ratings if r <= ampacity]
        max_allowed = at_or_below[-1] if at_or_below else 0
        if max_allowed != ampacity:
            # NEC 240.4(B): ampacity is not a standard size, next higher one is permitted
            above = next((r for r in ratings if r > ampacity), None)
            if above is not None and above <= NEXT_SIZE_UP_LIMIT:
                max_allowed = above

        if conductor is not None:
            # NEC 240.4(D): small conductors are capped regardless of ampacity
            limit = tables.small_conductor_limit(conductor)
            if limit is not None:
                max_allowed = min(max_allowed, limit)
        return max_allowed

    @staticmethod
    def select_device(
        required_current: float,
        classification: LoadClassification,
        protection_type: Optional[ProtectionType] = None,
        conductor_ampacity: Optional[float] = None,
        conductor: Optional[ConductorEntry] = None,
        config: SizingConfig = DEFAULT_CONFIG,
        tables: ReferenceTables = NEC_TABLES,
    ) -> int:
        _require_positive("required_current", required_current)
        classification = LoadClassification(classification)

        if classification == LoadClassification.MOTOR:
            if protection_type is None:
                raise InvalidInput("protection_type", None, "required for motor loads")
            standard_pct, ceiling_pct = tables.motor_protection_percent(ProtectionType(protection_type), required_current)
            # NEC 430.52(C)(1) Exc. 1 next size up, bounded by the Exc. 2 ceiling
            rating = NECLogic.round_to_standard(
                required_current * standard_pct / 100.0,
                ceiling=required_current * ceiling_pct / 100.0,
                ratings=tables.breaker_ratings,
            )
            logger.debug("Motor FLC %.2fA @ %d%% -> %dA", required_current, standard_pct, rating)
            # Motor branch conductors are protected by the overload relay, NEC 240.4(G)
            return rating

        required_rating = required_current
        if classification == LoadClassification.CONTINUOUS:
            # NEC 210.20(A) & 215.3: 125% of continuous load
            required_rating = required_current * config.continuous_factor
        rating = NECLogic.round_to_standard(required_rating, ratings=tables.breaker_ratings)

        if conductor_ampacity is not None or conductor is not None:
            ampacity = conductor_ampacity if conductor_ampacity is not None else float(tables.breaker_ratings[-1])
            max_allowed = NECLogic.max_device_for_conductor(ampacity, conductor, tables)
            if rating > max_allowed:
                size = conductor.size if conductor is not None else "conductor"
                raise DeviceExceedsConductorAmpacity(rating, max_allowed, size, ampacity)
        return rating

    @staticmethod
    def select_grounding_conductor(
        device_rating: float,
        material: ConductorMaterial,
        phase_conductor: Optional[ConductorEntry] = None,
        ampacity_conductor: Optional[ConductorEntry] = None,
        tables: ReferenceTables = NEC_TABLES,
    ) -> str:
        # NEC Table 250.122 - Based on Rating or Setting of Overcurrent Device
        size = tables.grounding_conductor(device_rating, material)
        if phase_conductor is None:
            return size
        base = tables.find(size, material)
        # NEC 250.122(A): not required to be larger than the circuit conductors
        if base.position >= phase_conductor.position:
            return phase_conductor.size
        if ampacity_conductor is None or phase_conductor.area_cmil <= ampacity_conductor.area_cmil:
            return size

        # NEC 250.122(B): phase conductors upsized for voltage drop, EGC increases proportionally
        required_cmil = base.area_cmil * phase_conductor.area_cmil / ampacity_conductor.area_cmil
        for entry in tables.catalog(material)[base.position:]:
            if entry.area_cmil >= required_cmil or entry.position >= phase_conductor.position:
                # Never larger than the circuit conductors themselves
                return min(entry, phase_conductor, key=lambda e: e.position).size
        return phase_conductor.size
