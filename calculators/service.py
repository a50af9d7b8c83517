import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from core.components import ServiceResult
from core.converters import current_from_watts
from core.errors import InvalidInput
from core.models import ApplianceLoad, ConductorMaterial, DemandLoadResult
from standards.nec import NECCalculator

logger = logging.getLogger(__name__)

UPGRADE_WARNING = "Panel upgrade likely required"

# Typical dwelling appliance nameplates [VA]
RESIDENTIAL_APPLIANCES = (
    ApplianceLoad("Electric Range (8.75 kW max)", watts=8000),
    ApplianceLoad("Electric Dryer", watts=5000),
    ApplianceLoad("Water Heater (4.5 kW)", watts=4500, is_continuous=True),
    ApplianceLoad("Central Air Conditioning (3.5 ton)", watts=4200, is_motor=True),
    ApplianceLoad("Heat Pump (3 ton)", watts=3600, is_motor=True),
    ApplianceLoad("Electric Furnace (15 kW)", watts=15000, is_continuous=True),
    ApplianceLoad("EV Charger (Level 2 - 40A)", watts=9600, is_continuous=True),
    ApplianceLoad("Hot Tub/Spa (50A)", watts=12000),
    ApplianceLoad("Pool Pump (1.5 HP)", watts=1800, is_motor=True, is_continuous=True),
    ApplianceLoad("Well Pump (1 HP)", watts=1200, is_motor=True),
    ApplianceLoad("Garbage Disposal (1/2 HP)", watts=600, is_motor=True),
    ApplianceLoad("Dishwasher (built-in)", watts=1800),
    ApplianceLoad("Microwave (built-in)", watts=1500),
    ApplianceLoad("Sump Pump (1/3 HP)", watts=800, is_motor=True),
)


@dataclass
class ResidentialLoadResult:
    demand: DemandLoadResult
    existing_service: int
    recommended_service: int
    utilization_percent: float  # demand current over the existing rating
    upgrade_required: bool
    warnings: List[str] = field(default_factory=list)


def residential_load(
    floor_area: float,
    appliances: Iterable[ApplianceLoad],
    existing_service: int = 200,
    voltage: float = 240.0,
    engine: Optional[NECCalculator] = None,
) -> ResidentialLoadResult:
    """NEC 220.82 dwelling calculation checked against the existing service."""
    engine = engine if engine is not None else NECCalculator()
    if existing_service is None or existing_service <= 0:
        raise InvalidInput("existing_service", existing_service)

    demand = engine.aggregate(appliances, floor_area, voltage, 1)
    recommended = engine.select_service_rating(demand.demand_current, engine.config.residential_loading_ratio)
    utilization = demand.demand_current / existing_service * 100.0

    warnings = []
    upgrade = recommended > existing_service
    if upgrade:
        warnings.append(
            f"{UPGRADE_WARNING}: {demand.demand_current:.1f}A demand on a {existing_service}A service"
        )
    logger.debug("Residential demand %.0fVA (%.1fA), recommend %dA", demand.demand_va, demand.demand_current, recommended)

    return ResidentialLoadResult(
        demand=demand,
        existing_service=existing_service,
        recommended_service=recommended,
        utilization_percent=utilization,
        upgrade_required=upgrade,
        warnings=warnings,
    )


def dwelling_warnings(load: ResidentialLoadResult, service: ServiceResult) -> List[str]:
    """Warnings of a dwelling calculation and its service sizing, with one upgrade message."""
    upgrade_seen = load.upgrade_required
    merged = list(load.warnings)
    for w in service.warnings:
        if w.startswith(UPGRADE_WARNING):
            if upgrade_seen:
                continue
            upgrade_seen = True
        if w not in merged:
            merged.append(w)
    return merged


def service_entrance(
    load_watts: float,
    voltage: float = 240.0,
    phase_count: int = 1,
    length: Optional[float] = None,
    growth_percent: float = 25.0,
    existing_rating: Optional[int] = None,
    material: ConductorMaterial = ConductorMaterial.COPPER,
    residential: bool = True,
    engine: Optional[NECCalculator] = None,
) -> ServiceResult:
    engine = engine if engine is not None else NECCalculator()
    if load_watts is None or not load_watts > 0:
        raise InvalidInput("load_watts", load_watts)
    demand_current = current_from_watts(load_watts, voltage, phase_count)
    return engine.size_service(
        demand_current,
        existing_rating=existing_rating,
        growth_percent=growth_percent,
        voltage=voltage,
        phase_count=phase_count,
        length=length,
        material=material,
        dwelling=residential,
    )
