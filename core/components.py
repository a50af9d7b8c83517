from dataclasses import dataclass, field
from typing import List, Optional

from core.models import Circuit, ConductorMaterial, InsulationRating


@dataclass(frozen=True)
class ConductorEntry:
    size: str  # AWG or kcmil label
    material: ConductorMaterial
    ampacity_60: int
    ampacity_75: int
    ampacity_90: int
    resistance: float  # ohms per 1000 ft, one conductor
    area_cmil: int
    position: int  # ordinal within its material catalog, smallest = 0

    def ampacity(self, rating: InsulationRating) -> int:
        if rating == InsulationRating.TEMP_60:
            return self.ampacity_60
        if rating == InsulationRating.TEMP_75:
            return self.ampacity_75
        return self.ampacity_90

    @property
    def is_kcmil(self) -> bool:
        return "/" not in self.size and int(self.size) >= 250

    @property
    def label(self) -> str:
        unit = "kcmil" if self.is_kcmil else "AWG"
        return f"{self.size} {unit} {self.material.value}"


@dataclass(frozen=True)
class ConductorSelection:
    conductor: ConductorEntry
    derated_ampacity: float
    temp_factor: float
    bundling_factor: float

    @property
    def size(self) -> str:
        return self.conductor.size


@dataclass(frozen=True)
class VoltageDropResult:
    conductor: ConductorEntry
    drop_volts: float
    drop_percent: float
    voltage_at_load: float
    compliant: bool
    upsized_from: Optional[ConductorEntry] = None

    @property
    def rating(self) -> str:
        if self.drop_percent <= 2.0:
            return "Excellent - well within NEC recommendations"
        if self.drop_percent <= 3.0:
            return "Good - meets NEC 3% recommendation"
        if self.drop_percent <= 5.0:
            return "Marginal - exceeds 3% but within 5% limit"
        return "Poor - consider upsizing wire"


@dataclass
class SizingResult:
    conductor: ConductorEntry
    conductor_ampacity: float
    required_ampacity: float
    device_rating: int
    voltage_drop_volts: float
    voltage_drop_percent: float
    compliant: bool
    grounding_conductor: str
    warnings: List[str] = field(default_factory=list)
    reference_notes: str = ""
    circuit: Optional[Circuit] = None  # the request this result answers

    @property
    def size(self) -> str:
        return self.conductor.size


@dataclass
class MotorCircuitResult(SizingResult):
    full_load_current: float = 0.0
    overload_rating: float = 0.0  # NEC 430.32(A)(1), amps
    disconnect_rating: int = 0  # NEC 430.110(A), minimum amps


@dataclass
class SubpanelResult(SizingResult):
    panel_rating: int = 0
    calculated_load: Optional[float] = None
    recommended_rating: Optional[int] = None


@dataclass
class ServiceResult:
    demand_current: float
    design_current: float
    service_rating: int
    conductor: ConductorEntry
    conductor_ampacity: float
    grounding_conductor: str
    utilization_percent: float
    voltage_drop_percent: Optional[float]  # None when no run length was given
    upgrade_required: bool = False
    warnings: List[str] = field(default_factory=list)
    reference_notes: str = ""
