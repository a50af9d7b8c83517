from abc import ABC, abstractmethod
from typing import Iterable, Optional

from core.components import ConductorEntry, ConductorSelection, SizingResult, VoltageDropResult
from core.config import SizingConfig
from core.models import (
    ApplianceLoad, Circuit, ConductorMaterial, DemandLoadResult, InsulationRating,
    LoadClassification, ProtectionType,
)


class SizingEngine(ABC):
    config: SizingConfig

    @abstractmethod
    def derate(self, base_ampacity: float, ambient_temp: float, temp_rating: InsulationRating,
               conductor_count: int) -> float:
        """Applies temperature correction and bundling adjustment. Returns derated amps, unrounded."""
        pass

    @abstractmethod
    def select_conductor(self, required_ampacity: float, material: ConductorMaterial,
                         temp_rating: InsulationRating, ambient_temp: float, conductor_count: int,
                         minimum_size: Optional[str] = None) -> ConductorSelection:
        """Smallest standard conductor whose derated ampacity meets the requirement."""
        pass

    @abstractmethod
    def check_and_upsize(self, conductor: ConductorEntry, circuit: Circuit) -> VoltageDropResult:
        """Upsizes until voltage drop is within the threshold or the catalog runs out."""
        pass

    @abstractmethod
    def aggregate(self, loads: Iterable[ApplianceLoad], floor_area: float, voltage: float = 240.0,
                  phase_count: int = 1) -> DemandLoadResult:
        """Combines appliance loads into a single demand. Returns VA breakdown and demand current."""
        pass

    @abstractmethod
    def select_device(self, required_current: float, classification: LoadClassification,
                      protection_type: Optional[ProtectionType] = None,
                      conductor_ampacity: Optional[float] = None,
                      conductor: Optional[ConductorEntry] = None) -> int:
        """Standard breaker/fuse rating for the load. Returns amps."""
        pass

    @abstractmethod
    def select_grounding_conductor(self, device_rating: float, material: ConductorMaterial,
                                   phase_conductor: Optional[ConductorEntry] = None,
                                   ampacity_conductor: Optional[ConductorEntry] = None) -> str:
        """Equipment grounding conductor size for the protective device."""
        pass

    @abstractmethod
    def validate(self, circuit: Circuit):
        """Raises InvalidInput before any lookup."""
        pass

    def required_ampacity(self, circuit: Circuit) -> float:
        if circuit.load_classification == LoadClassification.CONTINUOUS:
            return circuit.current * self.config.continuous_factor
        if circuit.load_classification == LoadClassification.MOTOR:
            return circuit.current * self.config.motor_conductor_factor
        return circuit.current

    def size_circuit(self, circuit: Circuit, minimum_size: Optional[str] = None) -> SizingResult:
        """Performs the full calculation for a circuit: conductor, voltage drop, device, grounding."""
        self.validate(circuit)
        required = self.required_ampacity(circuit)

        selection = self.select_conductor(
            required, circuit.material, circuit.temp_rating, circuit.ambient_temp,
            circuit.conductor_count, minimum_size,
        )
        vd = self.check_and_upsize(selection.conductor, circuit)
        final = selection
        if vd.upsized_from is not None:
            final = self.select_conductor(
                required, circuit.material, circuit.temp_rating, circuit.ambient_temp,
                circuit.conductor_count, vd.conductor.size,
            )

        device = self.select_device(
            circuit.current, circuit.load_classification, circuit.protection_type,
            final.derated_ampacity, final.conductor,
        )
        ground = self.select_grounding_conductor(device, circuit.material, final.conductor, selection.conductor)

        warnings = self.warnings_for(final.conductor, vd)

        ref_parts = [
            f"NEC 310.16 ({circuit.temp_rating.value}°C)",
            f"Derating: {final.temp_factor * final.bundling_factor:.2f} "
            f"(Temp {final.temp_factor} * Grp {final.bundling_factor})",
            f"OCPD: {self.device_reference(circuit)}",
        ]
        if vd.upsized_from is not None:
            ref_parts.append(f"Upsized from {vd.upsized_from.size} for voltage drop")

        return SizingResult(
            conductor=final.conductor,
            conductor_ampacity=final.derated_ampacity,
            required_ampacity=required,
            device_rating=device,
            voltage_drop_volts=vd.drop_volts,
            voltage_drop_percent=vd.drop_percent,
            compliant=vd.compliant,
            grounding_conductor=ground,
            warnings=warnings,
            reference_notes=" | ".join(ref_parts),
            circuit=circuit,
        )

    def warnings_for(self, conductor: ConductorEntry, vd: VoltageDropResult) -> list:
        limit = self.config.max_branch_voltage_drop
        warnings = []
        if vd.drop_percent > self.config.max_total_voltage_drop:
            warnings.append(
                f"Voltage drop {vd.drop_percent:.2f}% exceeds {self.config.max_total_voltage_drop:g}% - consider parallel conductors"
            )
        elif vd.drop_percent > limit:
            warnings.append(f"Voltage drop {vd.drop_percent:.2f}% exceeds the {limit:g}% recommended maximum")
        if conductor.material == ConductorMaterial.ALUMINUM and not conductor.is_kcmil \
                and "/" not in conductor.size and int(conductor.size) > 8:
            warnings.append("Small aluminum conductors not recommended - consider copper")
        return warnings

    def device_reference(self, circuit: Circuit) -> str:
        if circuit.load_classification == LoadClassification.MOTOR:
            return f"NEC 430.52 ({circuit.protection_type.value})"
        if circuit.load_classification == LoadClassification.CONTINUOUS:
            return "NEC 240.6(A) & 210.20(A) (125% Continuous)"
        return "NEC 240.6(A)"
