from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from core.components import ConductorEntry
from core.errors import InvalidInput, OutOfRangeAmbient
from core.models import ConductorMaterial, ProtectionType

# NEC Table 310.15(B)(1) - Ambient Temperature Correction Factors
# Based on 30°C base ambient. None = conductor rating not permitted at that ambient.
# Format: (Upper_Bound_C, {Insulation_Rating: Factor}); the first row is "10 or less", no lower bound
TEMP_CORRECTION_FACTORS = (
    (10, {60: 1.29, 75: 1.20, 90: 1.15}),
    (15, {60: 1.22, 75: 1.15, 90: 1.12}),
    (20, {60: 1.15, 75: 1.11, 90: 1.08}),
    (25, {60: 1.08, 75: 1.05, 90: 1.04}),
    (30, {60: 1.00, 75: 1.00, 90: 1.00}),
    (35, {60: 0.91, 75: 0.94, 90: 0.96}),
    (40, {60: 0.82, 75: 0.88, 90: 0.91}),
    (45, {60: 0.71, 75: 0.82, 90: 0.87}),
    (50, {60: 0.58, 75: 0.75, 90: 0.82}),
    (55, {60: 0.41, 75: 0.67, 90: 0.76}),
    (60, {60: None, 75: 0.58, 90: 0.71}),
    (65, {60: None, 75: 0.47, 90: 0.65}),
    (70, {60: None, 75: 0.33, 90: 0.58}),
    (75, {60: None, 75: None, 90: 0.50}),
    (80, {60: None, 75: None, 90: 0.41}),
    (85, {60: None, 75: None, 90: 0.29}),
)

# NEC Table 310.15(C)(1) - Adjustment Factors for More Than Three Current-Carrying Conductors
# Format: (Max_Conductors, Factor); 41 and above use GROUPING_FACTOR_ABOVE
GROUPING_FACTORS = (
    (3, 1.0),
    (6, 0.80),   # 4-6 conductors
    (9, 0.70),   # 7-9
    (20, 0.50),  # 10-20
    (30, 0.45),  # 21-30
    (40, 0.40),  # 31-40
)
GROUPING_FACTOR_ABOVE = 0.35

# NEC Table 310.16 - Allowable Ampacities of Insulated Conductors, not more than three
# current-carrying conductors, 30°C ambient.
# Resistance: ohms per 1000 ft of one conductor. Area: circular mils.
# Format: (Size, 60C, 75C, 90C, Ohms_per_kft, Area_cmil)
NEC_310_16_COPPER = (
    ("14", 15, 20, 25, 2.525, 4110),
    ("12", 20, 25, 30, 1.588, 6530),
    ("10", 30, 35, 40, 0.999, 10380),
    ("8", 40, 50, 55, 0.628, 16510),
    ("6", 55, 65, 75, 0.395, 26240),
    ("4", 70, 85, 95, 0.249, 41740),
    ("3", 85, 100, 115, 0.197, 52620),
    ("2", 95, 115, 130, 0.156, 66360),
    ("1", 110, 130, 145, 0.124, 83690),
    ("1/0", 125, 150, 170, 0.0983, 105600),
    ("2/0", 145, 175, 195, 0.0779, 133100),
    ("3/0", 165, 200, 225, 0.0618, 167800),
    ("4/0", 195, 230, 260, 0.0490, 211600),
    ("250", 215, 255, 290, 0.0431, 250000),
    ("300", 240, 285, 320, 0.0360, 300000),
    ("350", 260, 310, 350, 0.0308, 350000),
    ("400", 280, 335, 380, 0.0270, 400000),
    ("500", 320, 380, 430, 0.0216, 500000),
    ("600", 350, 420, 475, 0.0180, 600000),
    ("700", 385, 460, 520, 0.0154, 700000),
    ("750", 400, 475, 535, 0.0144, 750000),
    ("800", 410, 490, 555, 0.0135, 800000),
    ("900", 435, 520, 585, 0.0120, 900000),
    ("1000", 455, 545, 615, 0.0108, 1000000),
    ("1250", 495, 590, 665, 0.00864, 1250000),
    ("1500", 525, 625, 705, 0.00720, 1500000),
    ("1750", 545, 650, 735, 0.00617, 1750000),
    ("2000", 555, 665, 750, 0.00540, 2000000),
)

# Aluminum or copper-clad aluminum; 14 AWG is not listed.
NEC_310_16_ALUMINUM = (
    ("12", 15, 20, 25, 2.609, 6530),
    ("10", 25, 30, 35, 1.641, 10380),
    ("8", 35, 40, 45, 1.032, 16510),
    ("6", 40, 50, 55, 0.649, 26240),
    ("4", 55, 65, 75, 0.409, 41740),
    ("3", 65, 75, 85, 0.324, 52620),
    ("2", 75, 90, 100, 0.257, 66360),
    ("1", 85, 100, 115, 0.204, 83690),
    ("1/0", 100, 120, 135, 0.162, 105600),
    ("2/0", 115, 135, 150, 0.128, 133100),
    ("3/0", 130, 155, 175, 0.102, 167800),
    ("4/0", 150, 180, 205, 0.0806, 211600),
    ("250", 170, 205, 230, 0.0708, 250000),
    ("300", 190, 230, 260, 0.0590, 300000),
    ("350", 210, 250, 280, 0.0505, 350000),
    ("400", 225, 270, 305, 0.0442, 400000),
    ("500", 260, 310, 350, 0.0354, 500000),
    ("600", 285, 340, 385, 0.0295, 600000),
    ("700", 315, 375, 425, 0.0253, 700000),
    ("750", 320, 385, 435, 0.0236, 750000),
    ("800", 330, 395, 445, 0.0221, 800000),
    ("900", 355, 425, 480, 0.0197, 900000),
    ("1000", 375, 445, 500, 0.0177, 1000000),
    ("1250", 405, 485, 545, 0.0142, 1250000),
    ("1500", 435, 520, 585, 0.0118, 1500000),
    ("1750", 455, 545, 615, 0.0101, 1750000),
    ("2000", 470, 560, 630, 0.00885, 2000000),
)

# Standard ampere ratings for fuses and inverse time circuit breakers - NEC 240.6(A)
BREAKER_RATINGS = (
    15, 20, 25, 30, 35, 40, 45, 50, 60, 70, 80, 90, 100, 110, 125, 150, 175, 200,
    225, 250, 300, 350, 400, 450, 500, 600, 700, 800, 1000, 1200, 1600, 2000,
    2500, 3000, 4000, 5000, 6000,
)

# NEC 240.4(B): next higher standard rating permitted only up to this rating
NEXT_SIZE_UP_LIMIT = 800

# NEC 240.4(D) - Small conductor overcurrent protection, regardless of ampacity
SMALL_CONDUCTOR_LIMITS = {
    ConductorMaterial.COPPER: {"14": 15, "12": 20, "10": 30},
    ConductorMaterial.ALUMINUM: {"12": 15, "10": 25},
}

# NEC Table 250.122 - Minimum Size Equipment Grounding Conductors
# Format: (Max_OCPD_Rating, Copper, Aluminum)
NEC_250_122 = (
    (15, "14", "12"),
    (20, "12", "10"),
    (60, "10", "8"),
    (100, "8", "6"),
    (200, "6", "4"),
    (300, "4", "2"),
    (400, "3", "1"),
    (500, "2", "1/0"),
    (600, "1", "2/0"),
    (800, "1/0", "3/0"),
    (1000, "2/0", "4/0"),
    (1200, "3/0", "250"),
    (1600, "4/0", "350"),
    (2000, "250", "400"),
    (2500, "350", "600"),
    (3000, "400", "600"),
    (4000, "500", "750"),
    (5000, "700", "1200"),
    (6000, "800", "1200"),
)

# NEC Table 250.66 - Grounding Electrode Conductor for Alternating-Current Systems
# Keyed by largest service-entrance conductor area.
# Format: (Max_Cu_cmil, Max_Al_cmil, Copper_GEC, Aluminum_GEC)
NEC_250_66 = (
    (66360, 105600, "8", "6"),
    (105600, 167800, "6", "4"),
    (167800, 250000, "4", "2"),
    (350000, 500000, "2", "1/0"),
    (600000, 900000, "1/0", "3/0"),
    (1100000, 1750000, "2/0", "4/0"),
    (None, None, "3/0", "250"),
)

# NEC Table 430.52 - percent of motor FLC: (Standard, Exception 2 ceiling)
MOTOR_PROTECTION_PERCENT = {
    ProtectionType.NON_TIME_DELAY_FUSE: (300, 400),
    ProtectionType.TIME_DELAY_FUSE: (175, 225),
    ProtectionType.INSTANTANEOUS_TRIP: (800, 1300),
    ProtectionType.INVERSE_TIME: (250, 400),
}
# 430.52(C)(1) Exc. 2(c): inverse time breakers drop to 300% above 100A FLC
INVERSE_TIME_LARGE_MOTOR_CEILING = 300

# NEC Table 430.248 - Single-Phase AC Motor FLC. Format: {HP: {Volts: Amps}}
NEC_430_248 = {
    0.25: {115: 5.8, 208: 3.2, 230: 2.9},
    0.33: {115: 7.2, 208: 4.0, 230: 3.6},
    0.5: {115: 9.8, 208: 5.4, 230: 4.9},
    0.75: {115: 13.8, 208: 7.6, 230: 6.9},
    1: {115: 16.0, 208: 8.8, 230: 8.0},
    1.5: {115: 20.0, 208: 11.0, 230: 10.0},
    2: {115: 24.0, 208: 13.2, 230: 12.0},
    3: {115: 34.0, 208: 18.7, 230: 17.0},
    5: {115: 56.0, 208: 30.8, 230: 28.0},
    7.5: {115: 80.0, 208: 44.0, 230: 40.0},
    10: {115: 100.0, 208: 55.0, 230: 50.0},
}

# NEC Table 430.250 - Three-Phase Induction Motor FLC. Format: {HP: {Volts: Amps}}
NEC_430_250 = {
    0.5: {208: 2.4, 230: 2.2, 460: 1.1, 575: 0.9},
    0.75: {208: 3.5, 230: 3.2, 460: 1.6, 575: 1.3},
    1: {208: 4.6, 230: 4.2, 460: 2.1, 575: 1.7},
    1.5: {208: 6.6, 230: 6.0, 460: 3.0, 575: 2.4},
    2: {208: 7.5, 230: 6.8, 460: 3.4, 575: 2.7},
    3: {208: 10.6, 230: 9.6, 460: 4.8, 575: 3.9},
    5: {208: 16.7, 230: 15.2, 460: 7.6, 575: 6.1},
    7.5: {208: 24.2, 230: 22.0, 460: 11.0, 575: 9.0},
    10: {208: 30.8, 230: 28.0, 460: 14.0, 575: 11.0},
    15: {208: 46.2, 230: 42.0, 460: 21.0, 575: 17.0},
    20: {208: 59.4, 230: 54.0, 460: 27.0, 575: 22.0},
    25: {208: 74.8, 230: 68.0, 460: 34.0, 575: 27.0},
    30: {208: 88.0, 230: 80.0, 460: 40.0, 575: 32.0},
    40: {208: 114.0, 230: 104.0, 460: 52.0, 575: 41.0},
    50: {208: 143.0, 230: 130.0, 460: 65.0, 575: 52.0},
    60: {208: 169.0, 230: 154.0, 460: 77.0, 575: 62.0},
    75: {208: 211.0, 230: 192.0, 460: 96.0, 575: 77.0},
    100: {208: 273.0, 230: 248.0, 460: 124.0, 575: 99.0},
}

# Service ratings offered for dwelling and small commercial services (NEC 230.79 minimum 100A)
SERVICE_RATINGS = (100, 125, 150, 200, 225, 300, 400, 600, 800, 1000, 1200)


def _build_catalog(material: ConductorMaterial, rows) -> Tuple[ConductorEntry, ...]:
    return tuple(
        ConductorEntry(
            size=size, material=material,
            ampacity_60=a60, ampacity_75=a75, ampacity_90=a90,
            resistance=ohms, area_cmil=cmil, position=i,
        )
        for i, (size, a60, a75, a90, ohms, cmil) in enumerate(rows)
    )


@dataclass(frozen=True)
class ReferenceTables:
    """Read-only NEC lookup data, built once and shared by every calculation."""
    conductors: Mapping[ConductorMaterial, Tuple[ConductorEntry, ...]]
    breaker_ratings: Tuple[int, ...] = BREAKER_RATINGS
    service_ratings: Tuple[int, ...] = SERVICE_RATINGS

    @classmethod
    def nec_2023(cls) -> "ReferenceTables":
        return cls(conductors=MappingProxyType({
            ConductorMaterial.COPPER: _build_catalog(ConductorMaterial.COPPER, NEC_310_16_COPPER),
            ConductorMaterial.ALUMINUM: _build_catalog(ConductorMaterial.ALUMINUM, NEC_310_16_ALUMINUM),
        }))

    def catalog(self, material: ConductorMaterial) -> Tuple[ConductorEntry, ...]:
        return self.conductors[material]

    def find(self, size: str, material: ConductorMaterial) -> ConductorEntry:
        size = size.strip().lstrip("#")
        for entry in self.catalog(material):
            if entry.size == size:
                return entry
        raise InvalidInput("size", size, f"not a cataloged {material.value} conductor")

    def next_larger(self, entry: ConductorEntry) -> Optional[ConductorEntry]:
        catalog = self.catalog(entry.material)
        if entry.position + 1 < len(catalog):
            return catalog[entry.position + 1]
        return None

    def get_temp_correction(self, temp_c: float, insulation_rating: int) -> float:
        for max_t, distinct_ratings in TEMP_CORRECTION_FACTORS:
            if temp_c <= max_t:
                factor = distinct_ratings.get(insulation_rating)
                if factor is None:
                    break
                return factor
        raise OutOfRangeAmbient(temp_c, insulation_rating)

    def get_grouping_factor(self, count: int) -> float:
        if count < 1:
            raise InvalidInput("conductor_count", count, "must be a positive integer")
        for limit, factor in GROUPING_FACTORS:
            if count <= limit:
                return factor
        return GROUPING_FACTOR_ABOVE

    def small_conductor_limit(self, entry: ConductorEntry) -> Optional[int]:
        return SMALL_CONDUCTOR_LIMITS[entry.material].get(entry.size)

    def grounding_conductor(self, rating: float, material: ConductorMaterial) -> str:
        for limit, copper, aluminum in NEC_250_122:
            if rating <= limit:
                return copper if material == ConductorMaterial.COPPER else aluminum
        raise InvalidInput("device_rating", rating, "exceeds NEC Table 250.122")

    def grounding_electrode_conductor(self, service_conductor: ConductorEntry) -> str:
        copper = service_conductor.material == ConductorMaterial.COPPER
        for max_cu, max_al, cu_gec, al_gec in NEC_250_66:
            limit = max_cu if copper else max_al
            if limit is None or service_conductor.area_cmil <= limit:
                return cu_gec if copper else al_gec
        return NEC_250_66[-1][2 if copper else 3]

    def motor_protection_percent(self, protection_type: ProtectionType, flc: float) -> Tuple[int, int]:
        standard, ceiling = MOTOR_PROTECTION_PERCENT[protection_type]
        if protection_type == ProtectionType.INVERSE_TIME and flc > 100:
            ceiling = INVERSE_TIME_LARGE_MOTOR_CEILING
        return standard, ceiling

    def motor_flc(self, horsepower: float, voltage: int, phases: int) -> float:
        table: Dict[float, Dict[int, float]] = NEC_430_250 if phases == 3 else NEC_430_248
        try:
            return table[horsepower][voltage]
        except KeyError:
            ref = "430.250" if phases == 3 else "430.248"
            raise InvalidInput("horsepower", horsepower, f"no NEC Table {ref} entry at {voltage}V") from None


NEC_TABLES = ReferenceTables.nec_2023()
