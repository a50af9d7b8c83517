import math
from typing import Optional, Tuple

from core.errors import InvalidInput


def convert_power_unit(val: float, unit: str, voltage: float, phases: int, pf: float = 1.0) -> Tuple[float, Optional[float]]:
    """
    Converts input value to (Watts, Amps_Override).
    Returns (calculated_watts, override_amps)
    """
    unit = unit.strip().upper()

    # 1. Power Units
    if unit == "W":
        return (val, None)
    if unit == "KW":
        return (val * 1000.0, None)
    if unit == "HP":
        return (val * 746.0, None)

    # 2. Current Units
    if unit == "A":
        factor = math.sqrt(3) if phases == 3 else 1.0
        watts = val * voltage * factor * pf
        return (watts, val)

    # 3. Apparent power
    if unit == "VA":
        return (val * pf, None)
    if unit == "KVA":
        return (val * 1000.0 * pf, None)

    raise InvalidInput("unit", unit, "expected W, kW, HP, A, VA or kVA")


def current_from_watts(watts: float, voltage: float, phases: int, pf: float = 1.0) -> float:
    if voltage <= 0:
        raise InvalidInput("voltage", voltage)
    factor = math.sqrt(3) if phases == 3 else 1.0
    return watts / (voltage * factor * pf)


def convert_length_unit(val: float, unit: str) -> float:
    """Returns length in feet."""
    unit = unit.strip().lower()
    if unit in ["ft", "feet", "foot"]:
        return val
    if unit in ["m", "meter", "meters"]:
        return val / 0.3048
    if unit in ["yd", "yard", "yards"]:
        return val * 3.0
    raise InvalidInput("unit", unit, "expected ft, m or yd")


def fahrenheit_to_celsius(temp_f: float) -> float:
    return (temp_f - 32.0) * 5.0 / 9.0
