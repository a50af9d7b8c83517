import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.errors import InvalidInput


class ConductorMaterial(Enum):
    COPPER = "copper"
    ALUMINUM = "aluminum"


class InsulationRating(Enum):
    TEMP_60 = 60
    TEMP_75 = 75
    TEMP_90 = 90


class LoadClassification(Enum):
    GENERAL = "general"
    CONTINUOUS = "continuous"
    MOTOR = "motor"


class ProtectionType(Enum):
    """Motor branch-circuit short-circuit and ground-fault devices, NEC Table 430.52."""
    INVERSE_TIME = "inverse_time"
    INSTANTANEOUS_TRIP = "instantaneous_trip"
    TIME_DELAY_FUSE = "time_delay_fuse"
    NON_TIME_DELAY_FUSE = "non_time_delay_fuse"


class MandatoryCircuit(Enum):
    SMALL_APPLIANCE = "small_appliance"
    LAUNDRY = "laundry"


def _coerce(enum_cls, field: str, value):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInput(field, value, f"not a valid {enum_cls.__name__}") from None


@dataclass(frozen=True)
class Circuit:
    voltage: float
    phase_count: int  # 1 or 3
    length: float  # one-way, feet
    current: float  # nameplate / calculated amps
    ambient_temp: float = 30.0  # degrees C
    material: ConductorMaterial = ConductorMaterial.COPPER
    temp_rating: InsulationRating = InsulationRating.TEMP_75
    conductor_count: int = 3  # current-carrying conductors in the raceway
    load_classification: LoadClassification = LoadClassification.GENERAL
    protection_type: Optional[ProtectionType] = None  # motor loads only
    max_voltage_drop: Optional[float] = None  # percent, overrides config

    def __post_init__(self):
        # Accept raw values ("copper", 90, "continuous"...) as well as members
        object.__setattr__(self, "material", _coerce(ConductorMaterial, "material", self.material))
        object.__setattr__(self, "temp_rating", _coerce(InsulationRating, "temp_rating", self.temp_rating))
        object.__setattr__(
            self, "load_classification",
            _coerce(LoadClassification, "load_classification", self.load_classification),
        )
        if self.protection_type is not None:
            object.__setattr__(
                self, "protection_type", _coerce(ProtectionType, "protection_type", self.protection_type)
            )


@dataclass(frozen=True)
class ApplianceLoad:
    name: str
    watts: Optional[float] = None
    amps: Optional[float] = None
    voltage: Optional[float] = None  # used with amps; defaults to the service voltage
    is_motor: bool = False
    is_continuous: bool = False
    quantity: int = 1
    mandatory_circuit: Optional[MandatoryCircuit] = None

    def unit_volt_amperes(self, default_voltage: float, phase_count: int = 1) -> float:
        if self.watts is not None:
            return self.watts
        if self.amps is not None:
            volts = self.voltage or default_voltage
            return self.amps * volts * (math.sqrt(3) if phase_count == 3 else 1.0)
        raise InvalidInput("watts", None, f"{self.name}: give watts or amps")


@dataclass(frozen=True)
class DemandLoadResult:
    general_lighting: float
    small_appliance: float
    laundry: float
    appliance_load: float
    continuous_load: float
    connected_load: float
    demand_load: float
    largest_motor: float
    motor_addition: float
    demand_va: float
    demand_current: float
    reference_notes: str = ""
