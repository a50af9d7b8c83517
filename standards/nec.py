import logging
from typing import Iterable, Optional

from core.calculator import SizingEngine
from core.components import ConductorEntry, ConductorSelection, ServiceResult, VoltageDropResult
from core.config import DEFAULT_CONFIG, SizingConfig
from core.errors import InvalidInput, NoStandardDeviceFits
from core.models import ApplianceLoad, Circuit, ConductorMaterial, DemandLoadResult, InsulationRating
from standards.nec_logic import NECLogic, validate_circuit
from standards.nec_tables import NEC_TABLES, ReferenceTables

logger = logging.getLogger(__name__)

# NEC 310.12(A) applies to 120/240V single-phase dwelling services in this range
DWELLING_SERVICE_RANGE = (100, 400)


class NECCalculator(SizingEngine):
    """NEC 2023 sizing engine. Holds config and reference tables by reference, never copies them."""

    def __init__(self, config: SizingConfig = DEFAULT_CONFIG, tables: ReferenceTables = NEC_TABLES):
        self.config = config
        self.tables = tables

    def validate(self, circuit: Circuit):
        validate_circuit(circuit)

    def derate(self, base_ampacity, ambient_temp, temp_rating, conductor_count) -> float:
        return NECLogic.derate(base_ampacity, ambient_temp, temp_rating, conductor_count, self.tables)

    def select_conductor(self, required_ampacity, material, temp_rating, ambient_temp, conductor_count,
                         minimum_size=None) -> ConductorSelection:
        return NECLogic.select_conductor(
            required_ampacity, material, temp_rating, ambient_temp, conductor_count, minimum_size, self.tables
        )

    def conductor_ampacity(self, size: str, material: ConductorMaterial, temp_rating: InsulationRating,
                           ambient_temp: float = 30.0, conductor_count: int = 3) -> ConductorSelection:
        entry = self.tables.find(size, material)
        return NECLogic.conductor_ampacity(entry, temp_rating, ambient_temp, conductor_count, self.tables)

    def check_and_upsize(self, conductor: ConductorEntry, circuit: Circuit) -> VoltageDropResult:
        return NECLogic.check_and_upsize(conductor, circuit, self.config, self.tables)

    def voltage_drop(self, size: str, circuit: Circuit) -> VoltageDropResult:
        """Voltage drop on a fixed conductor, without upsizing."""
        validate_circuit(circuit)
        conductor = self.tables.find(size, circuit.material)
        limit = circuit.max_voltage_drop if circuit.max_voltage_drop is not None else self.config.max_branch_voltage_drop
        volts, percent = NECLogic.calculate_voltage_drop(
            conductor, circuit.length, circuit.current, circuit.voltage, circuit.phase_count
        )
        return VoltageDropResult(
            conductor=conductor,
            drop_volts=volts,
            drop_percent=percent,
            voltage_at_load=circuit.voltage - volts,
            compliant=percent <= limit,
        )

    def aggregate(self, loads: Iterable[ApplianceLoad], floor_area: float, voltage: float = 240.0,
                  phase_count: int = 1) -> DemandLoadResult:
        return NECLogic.aggregate(loads, floor_area, voltage, phase_count, self.config)

    def select_device(self, required_current, classification, protection_type=None,
                      conductor_ampacity=None, conductor=None) -> int:
        return NECLogic.select_device(
            required_current, classification, protection_type, conductor_ampacity, conductor,
            self.config, self.tables,
        )

    def select_grounding_conductor(self, device_rating, material, phase_conductor=None,
                                   ampacity_conductor=None) -> str:
        return NECLogic.select_grounding_conductor(
            device_rating, material, phase_conductor, ampacity_conductor, self.tables
        )

    def motor_full_load_current(self, horsepower: float, voltage: int, phase_count: int) -> float:
        # NEC 430.6(A)(1): table FLC, not nameplate, sizes conductors and protection
        return self.tables.motor_flc(horsepower, voltage, phase_count)

    def select_service_rating(self, design_current: float, loading_ratio: Optional[float] = None) -> int:
        # Service loaded to at most 80% of its rating unless a ratio is given
        ratio = loading_ratio if loading_ratio is not None else self.config.service_loading_ratio
        for rating in self.tables.service_ratings:
            if design_current <= rating * ratio:
                return rating
        raise NoStandardDeviceFits(design_current / ratio, self.tables.service_ratings[-1])

    def size_service(
        self,
        demand_current: float,
        existing_rating: Optional[int] = None,
        growth_percent: float = 0.0,
        voltage: float = 240.0,
        phase_count: int = 1,
        length: Optional[float] = None,
        material: ConductorMaterial = ConductorMaterial.COPPER,
        temp_rating: Optional[InsulationRating] = None,
        dwelling: bool = True,
    ) -> ServiceResult:
        """
        Service entrance sizing from a calculated demand current.

        The rating is the smallest standard service carrying the design current
        at the configured loading ratio. Conductors follow NEC 310.12 for
        dwelling services, otherwise the full rating. A run length enables the
        voltage drop check against the total (feeder + branch) limit.
        """
        if demand_current is None or not demand_current > 0:
            raise InvalidInput("demand_current", demand_current)
        if growth_percent is None or growth_percent < 0:
            raise InvalidInput("growth_percent", growth_percent, "cannot be negative")
        if existing_rating is not None and existing_rating <= 0:
            raise InvalidInput("existing_rating", existing_rating)
        if phase_count not in (1, 3):
            raise InvalidInput("phase_count", phase_count, "must be 1 or 3")
        temp_rating = temp_rating or self.config.default_temp_rating

        design_current = demand_current * (1 + growth_percent / 100.0)
        service_rating = self.select_service_rating(design_current)
        ref_parts = [f"Service {service_rating}A @ {self.config.service_loading_ratio:.0%} loading"]

        low, high = DWELLING_SERVICE_RANGE
        required = float(service_rating)
        if dwelling and phase_count == 1 and low <= service_rating <= high:
            required = service_rating * self.config.dwelling_service_factor
            ref_parts.append(f"NEC 310.12 ({self.config.dwelling_service_factor:.0%} Dwelling)")
        else:
            ref_parts.append(f"NEC 310.16 ({InsulationRating(temp_rating).value}°C)")

        selection = self.select_conductor(required, material, temp_rating, 30.0, 3)
        conductor = selection.conductor
        drop_percent = None
        warnings = []

        if length is not None:
            circuit = Circuit(
                voltage=voltage, phase_count=phase_count, length=length, current=design_current,
                material=material, temp_rating=temp_rating,
                max_voltage_drop=self.config.max_total_voltage_drop,
            )
            vd = self.check_and_upsize(conductor, circuit)
            if vd.upsized_from is not None:
                ref_parts.append(f"Upsized from {vd.upsized_from.size} for voltage drop")
                selection = self.select_conductor(required, material, temp_rating, 30.0, 3, vd.conductor.size)
                conductor = selection.conductor
            drop_percent = vd.drop_percent
            if not vd.compliant:
                warnings.append(
                    f"Voltage drop {vd.drop_percent:.2f}% exceeds {self.config.max_total_voltage_drop:g}% - consider parallel conductors"
                )

        gec = self.tables.grounding_electrode_conductor(conductor)
        ref_parts.append("GEC: NEC 250.66")

        utilization = design_current / service_rating * 100.0
        upgrade = existing_rating is not None and service_rating > existing_rating
        if upgrade:
            warnings.append(
                f"Panel upgrade likely required: {existing_rating}A existing, {service_rating}A needed"
            )
        logger.debug(
            "Service: demand %.1fA, design %.1fA -> %dA on %s", demand_current, design_current,
            service_rating, conductor.label,
        )

        return ServiceResult(
            demand_current=demand_current,
            design_current=design_current,
            service_rating=service_rating,
            conductor=conductor,
            conductor_ampacity=selection.derated_ampacity,
            grounding_conductor=gec,
            utilization_percent=utilization,
            voltage_drop_percent=drop_percent,
            upgrade_required=upgrade,
            warnings=warnings,
            reference_notes=" | ".join(ref_parts),
        )
