"""Typed failures raised by the sizing engine.

Every error is a ``ValueError`` so callers that only care about bad input can
catch the builtin; the presentation layer catches ``SizingError`` and renders
``str(exc)``.
"""


class SizingError(ValueError):
    """Base class for all sizing engine failures."""


class InvalidInput(SizingError):
    def __init__(self, field: str, value, reason: str = "must be greater than 0"):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class OutOfRangeAmbient(SizingError):
    def __init__(self, ambient_temp: float, temp_rating: int):
        self.ambient_temp = ambient_temp
        self.temp_rating = temp_rating
        super().__init__(
            f"Ambient {ambient_temp}°C is outside NEC Table 310.15(B)(1) for {temp_rating}°C "
            "conductors: cannot derate, consult manufacturer data"
        )


class NoConductorFits(SizingError):
    def __init__(self, required_ampacity: float, largest_size: str, largest_ampacity: float):
        self.required_ampacity = required_ampacity
        self.largest_size = largest_size
        self.largest_ampacity = largest_ampacity
        super().__init__(
            f"{required_ampacity:.1f}A exceeds the largest conductor ({largest_size}, "
            f"{largest_ampacity:.1f}A derated): parallel conductors or engineering review required"
        )


class DeviceExceedsConductorAmpacity(SizingError):
    def __init__(self, device_rating: int, max_permitted: int, conductor_size: str, conductor_ampacity: float):
        self.device_rating = device_rating
        self.max_permitted = max_permitted
        self.conductor_size = conductor_size
        self.conductor_ampacity = conductor_ampacity
        super().__init__(
            f"{device_rating}A device would not protect {conductor_size} ({conductor_ampacity:.1f}A, "
            f"max {max_permitted}A per NEC 240.4): upsize the conductor"
        )


class NoStandardDeviceFits(SizingError):
    def __init__(self, required_rating: float, largest_rating: int):
        self.required_rating = required_rating
        self.largest_rating = largest_rating
        super().__init__(
            f"{required_rating:.1f}A exceeds the largest standard rating ({largest_rating}A, NEC 240.6(A))"
        )
