from dataclasses import dataclass

from core.models import InsulationRating


@dataclass(frozen=True)
class SizingConfig:
    """
    Tunable constants of the sizing engine.

    Defaults follow NEC 2023 residential practice; build a variant with
    ``dataclasses.replace`` rather than mutating a shared instance.
    """
    # Voltage drop, NEC 210.19(A) / 215.2(A) informational notes [%]
    max_branch_voltage_drop: float = 3.0
    max_total_voltage_drop: float = 5.0

    # NEC 210.19(A)(1), 215.2(A)(1), 430.22
    continuous_factor: float = 1.25
    motor_conductor_factor: float = 1.25

    # NEC 220.12 / 220.52 / 220.82
    lighting_va_per_sqft: float = 3.0
    lighting_minimum_va: float = 3000.0
    small_appliance_va: float = 3000.0
    laundry_va: float = 1500.0
    demand_first_tier_va: float = 10000.0
    demand_remainder_factor: float = 0.40

    # NEC 430.24
    largest_motor_factor: float = 0.25

    # NEC 430.32(A)(1) overloads: 125% when service factor >= 1.15, otherwise 115%
    motor_overload_factor: float = 1.15
    motor_overload_factor_high_sf: float = 1.25
    # NEC 430.110(A): disconnect rated at least 115% of FLC
    motor_disconnect_factor: float = 1.15

    # Services are loaded to at most this fraction of their rating
    service_loading_ratio: float = 0.80
    # Dwelling load calculations recommend a service loaded to 83% (NEC 310.12 basis)
    residential_loading_ratio: float = 0.83
    # NEC 310.12(A): 120/240V dwelling services 100-400A
    dwelling_service_factor: float = 0.83

    default_temp_rating: InsulationRating = InsulationRating.TEMP_75

    @classmethod
    def feeder(cls):
        """Config for feeders, where the full 5% budget applies to the run itself."""
        return cls(max_branch_voltage_drop=cls.max_total_voltage_drop)


DEFAULT_CONFIG = SizingConfig()
