"""
Branch circuit calculators.

Each function maps one appliance vocabulary (EV charger, hot tub, motor...)
onto a ``Circuit`` and runs it through the engine. Presets mirror common
nameplate values.
"""
import logging
import math
from dataclasses import dataclass, fields
from typing import Dict, Optional

from core.components import (
    ConductorSelection, MotorCircuitResult, SizingResult, SubpanelResult, VoltageDropResult,
)
from core.config import SizingConfig
from core.errors import DeviceExceedsConductorAmpacity, InvalidInput
from core.models import Circuit, ConductorMaterial, InsulationRating, LoadClassification, ProtectionType
from standards.nec import NECCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplianceHookup:
    name: str
    amps: float  # load current
    voltage: float = 240.0


EV_CHARGER_PRESETS = (
    ApplianceHookup("Level 1 (Standard Outlet)", 12, 120),
    ApplianceHookup("Level 2 - 16A", 16),
    ApplianceHookup("Level 2 - 24A", 24),
    ApplianceHookup("Level 2 - 32A", 32),
    ApplianceHookup("Level 2 - 40A", 40),
    ApplianceHookup("Level 2 - 48A", 48),
    ApplianceHookup("Level 2 - 50A", 50),
    ApplianceHookup("Level 2 - 60A", 60),
    ApplianceHookup("Level 2 - 80A (Commercial)", 80),
)

# Heater load current; the 125% continuous rule lands on the nameplate breaker
HOT_TUB_PRESETS = (
    ApplianceHookup("Small (2-3 person)", 24),
    ApplianceHookup("Medium (4-5 person)", 32),
    ApplianceHookup("Large (6+ person)", 40),
    ApplianceHookup("Extra Large (8+ person)", 48),
)

HIGH_POWER_CHARGER_AMPS = 48
LONG_RUN_FEET = 100

SUBPANEL_RATINGS = (60, 100, 125, 150, 200)
# Headroom over the calculated load when recommending a subpanel
SUBPANEL_MARGIN = 1.25
LONG_FEEDER_FEET = 150


def _engine(engine: Optional[NECCalculator]) -> NECCalculator:
    return engine if engine is not None else NECCalculator()


def _extend(result: SizingResult, result_cls, **extra):
    values = {f.name: getattr(result, f.name) for f in fields(result)}
    values.update(extra)
    return result_cls(**values)


def size_with_retry(circuit: Circuit, engine: Optional[NECCalculator] = None) -> SizingResult:
    """
    Sizes a circuit, stepping the conductor up one size each time the
    protective device would not protect it (NEC 240.4(D) small conductor caps).
    """
    engine = _engine(engine)
    minimum_size = None
    while True:
        try:
            return engine.size_circuit(circuit, minimum_size)
        except DeviceExceedsConductorAmpacity as exc:
            current = engine.tables.find(exc.conductor_size, circuit.material)
            larger = engine.tables.next_larger(current)
            if larger is None:
                raise
            logger.info("%s; retrying with %s", exc, larger.label)
            minimum_size = larger.size


def wire_size(
    current: float,
    voltage: float,
    length: float,
    phase_count: int = 1,
    continuous: bool = False,
    material: ConductorMaterial = ConductorMaterial.COPPER,
    temp_rating: InsulationRating = InsulationRating.TEMP_75,
    ambient_temp: float = 30.0,
    conductor_count: int = 3,
    max_voltage_drop: Optional[float] = None,
    engine: Optional[NECCalculator] = None,
) -> SizingResult:
    circuit = Circuit(
        voltage=voltage, phase_count=phase_count, length=length, current=current,
        ambient_temp=ambient_temp, material=material, temp_rating=temp_rating,
        conductor_count=conductor_count,
        load_classification=LoadClassification.CONTINUOUS if continuous else LoadClassification.GENERAL,
        max_voltage_drop=max_voltage_drop,
    )
    return size_with_retry(circuit, engine)


def ev_charger(
    charger_amps: float,
    length: float,
    voltage: float = 240.0,
    material: ConductorMaterial = ConductorMaterial.COPPER,
    ambient_temp: float = 30.0,
    engine: Optional[NECCalculator] = None,
) -> SizingResult:
    # NEC 625.41: EV supply equipment is a continuous load
    circuit = Circuit(
        voltage=voltage, phase_count=1, length=length, current=charger_amps,
        ambient_temp=ambient_temp, material=material,
        load_classification=LoadClassification.CONTINUOUS,
    )
    result = size_with_retry(circuit, engine)

    notes = []
    if material == ConductorMaterial.ALUMINUM:
        notes.append("Use aluminum-rated terminals and anti-oxidant compound")
    if length > LONG_RUN_FEET:
        notes.append("Consider installing a subpanel closer to the charger for long runs")
    if charger_amps >= HIGH_POWER_CHARGER_AMPS:
        notes.append("High-power chargers may require electrical service upgrade")
    result.warnings = result.warnings + notes
    result.reference_notes = f"NEC 625.41 | {result.reference_notes}"
    return result


def hot_tub(
    heater_amps: float,
    length: float,
    voltage: float = 240.0,
    material: ConductorMaterial = ConductorMaterial.COPPER,
    ambient_temp: float = 30.0,
    engine: Optional[NECCalculator] = None,
) -> SizingResult:
    circuit = Circuit(
        voltage=voltage, phase_count=1, length=length, current=heater_amps,
        ambient_temp=ambient_temp, material=material,
        load_classification=LoadClassification.CONTINUOUS,
    )
    result = size_with_retry(circuit, engine)

    notes = [
        "GFCI protection required (NEC 680.44)",
        "Disconnect required within sight (NEC 680.13)",
        "Bonding wire required (NEC 680.26)",
    ]
    if material == ConductorMaterial.ALUMINUM:
        notes.append("Use AL-rated terminals")
    result.warnings = notes + result.warnings
    result.reference_notes = f"NEC 680.42 | {result.reference_notes}"
    return result


def motor_circuit(
    horsepower: float,
    voltage: int,
    length: float,
    phase_count: int = 3,
    protection_type: ProtectionType = ProtectionType.INVERSE_TIME,
    material: ConductorMaterial = ConductorMaterial.COPPER,
    temp_rating: InsulationRating = InsulationRating.TEMP_75,
    ambient_temp: float = 30.0,
    conductor_count: int = 3,
    nameplate_current: Optional[float] = None,
    service_factor: float = 1.0,
    engine: Optional[NECCalculator] = None,
) -> MotorCircuitResult:
    """
    Motor branch circuit: conductors and short-circuit protection from the
    table FLC, overloads from the nameplate current (the FLC when none is
    given) and the minimum disconnect rating.
    """
    engine = _engine(engine)
    if nameplate_current is not None and not nameplate_current > 0:
        raise InvalidInput("nameplate_current", nameplate_current)
    flc = engine.motor_full_load_current(horsepower, voltage, phase_count)
    circuit = Circuit(
        voltage=voltage, phase_count=phase_count, length=length, current=flc,
        ambient_temp=ambient_temp, material=material, temp_rating=temp_rating,
        conductor_count=conductor_count,
        load_classification=LoadClassification.MOTOR, protection_type=protection_type,
    )
    result = engine.size_circuit(circuit)

    config = engine.config
    if service_factor >= 1.15:
        overload_factor = config.motor_overload_factor_high_sf
    else:
        overload_factor = config.motor_overload_factor
    overload = (nameplate_current or flc) * overload_factor
    disconnect = math.ceil(round(flc * config.motor_disconnect_factor, 6))

    table = "430.250" if phase_count == 3 else "430.248"
    return _extend(
        result, MotorCircuitResult,
        full_load_current=flc,
        overload_rating=overload,
        disconnect_rating=disconnect,
        reference_notes=(
            f"NEC {table} (FLC {flc}A) | NEC 430.22 | {result.reference_notes} | "
            f"Overload: NEC 430.32 ({overload_factor:.0%}) | Disconnect: NEC 430.110"
        ),
    )


def subpanel_feeder(
    panel_rating: int,
    length: float,
    calculated_load: Optional[float] = None,
    voltage: float = 240.0,
    material: ConductorMaterial = ConductorMaterial.COPPER,
    temp_rating: InsulationRating = InsulationRating.TEMP_75,
    ambient_temp: float = 30.0,
    engine: Optional[NECCalculator] = None,
) -> SubpanelResult:
    """
    Feeder to a garage or outbuilding subpanel (NEC 215, 225).

    The feeder carries the larger of the panel rating and the calculated load
    and is checked against the 5% feeder voltage drop budget unless an engine
    with its own config is passed in.
    """
    if panel_rating is None or not panel_rating > 0:
        raise InvalidInput("panel_rating", panel_rating)
    if calculated_load is not None and calculated_load < 0:
        raise InvalidInput("calculated_load", calculated_load, "cannot be negative")
    engine = engine if engine is not None else NECCalculator(config=SizingConfig.feeder())

    circuit = Circuit(
        voltage=voltage, phase_count=1, length=length, current=max(panel_rating, calculated_load or 0.0),
        ambient_temp=ambient_temp, material=material, temp_rating=temp_rating,
    )
    result = size_with_retry(circuit, engine)

    notes = []
    recommended = None
    if calculated_load:
        required = calculated_load * SUBPANEL_MARGIN
        recommended = next((r for r in SUBPANEL_RATINGS if r >= required), SUBPANEL_RATINGS[-1])
        if panel_rating < recommended:
            notes.append(f"Consider a {recommended}A subpanel for the calculated {calculated_load:.1f}A load")
    if length > LONG_FEEDER_FEET:
        notes.append("Long feeder runs may require larger conductors for voltage drop")
    notes += [
        "Install main disconnect at subpanel per NEC 225.31",
        "Subpanel requires separate grounding electrode per NEC 250.32",
        "Separate neutral and ground in subpanel",
    ]
    return _extend(
        result, SubpanelResult,
        panel_rating=panel_rating,
        calculated_load=calculated_load,
        recommended_rating=recommended,
        warnings=result.warnings + notes,
        reference_notes=f"NEC 215.2 | {result.reference_notes}",
    )


def ampacity_lookup(
    size: str,
    temp_rating: InsulationRating = InsulationRating.TEMP_75,
    ambient_temp: float = 30.0,
    conductor_count: int = 3,
    engine: Optional[NECCalculator] = None,
) -> Dict[ConductorMaterial, Optional[ConductorSelection]]:
    """Derated ampacity of one wire size in both metals. None where a metal has no such size."""
    engine = _engine(engine)
    out = {}
    for material in ConductorMaterial:
        try:
            out[material] = engine.conductor_ampacity(size, material, temp_rating, ambient_temp, conductor_count)
        except InvalidInput as exc:
            if exc.field != "size":
                raise
            out[material] = None
    if all(v is None for v in out.values()):
        raise InvalidInput("size", size, "not a cataloged conductor size")
    return out


def voltage_drop_report(
    size: str,
    current: float,
    voltage: float,
    length: float,
    phase_count: int = 1,
    material: ConductorMaterial = ConductorMaterial.COPPER,
    engine: Optional[NECCalculator] = None,
) -> VoltageDropResult:
    circuit = Circuit(voltage=voltage, phase_count=phase_count, length=length, current=current, material=material)
    return _engine(engine).voltage_drop(size, circuit)
