"""
Shared type definitions for the fleet fuel analytics.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional, Tuple, Union

from config import Config


class RefuelEvent(NamedTuple):
    """One row of the truck_fuel collection. Numeric fields are raw values."""
    vehicle_id: str
    created: datetime
    odometer_reading: Any = None  # km
    fuel_amount: Any = None  # liters
    fuel_price: Any = None  # per liter
    record_id: str = ''

class Vehicle(NamedTuple):
    id: str
    plate_number: Optional[str] = None
    truck_type: Optional[str] = None
    is_archived: bool = False

class VehiclePosition(NamedTuple):
    vehicle_id: str
    plate_label: str
    latitude: float
    longitude: float
    status: str = 'unknown'
    speed: float = 0.0
    direction: Optional[str] = None
    total_mileage: Optional[float] = None
    updated: Optional[datetime] = None


class EfficiencyCategory(Enum):
    """Fixed fuel efficiency tiers, best first."""
    EXCELLENT = 'Excellent'
    GOOD = 'Good'
    AVERAGE = 'Average'
    POOR = 'Poor'

    def label(self, thresholds: Optional['EfficiencyThresholds'] = None) -> str:
        t = thresholds or EfficiencyThresholds()
        if self is EfficiencyCategory.EXCELLENT:
            return f"Excellent (>{t.excellent:g} km/L)"
        if self is EfficiencyCategory.GOOD:
            return f"Good ({t.good:g}-{t.excellent:g} km/L)"
        if self is EfficiencyCategory.AVERAGE:
            return f"Average ({t.average:g}-{t.good:g} km/L)"
        return f"Poor (<={t.average:g} km/L)"


@dataclass(frozen=True)
class SegmentBounds:
    """Exclusive odometer-delta bounds for a valid segment, in km."""
    min_km: float = Config.MIN_SEGMENT_KM
    max_km: float = Config.MAX_SEGMENT_KM

    def __post_init__(self):
        if self.min_km >= self.max_km:
            raise ValueError(f"min_km ({self.min_km}) must be below max_km ({self.max_km})")

@dataclass(frozen=True)
class EfficiencyThresholds:
    """Lower (exclusive) km/L bound of each tier above Poor."""
    excellent: float = Config.EXCELLENT_THRESHOLD
    good: float = Config.GOOD_THRESHOLD
    average: float = Config.AVERAGE_THRESHOLD

    def __post_init__(self):
        if not (self.excellent > self.good > self.average):
            raise ValueError("Thresholds must satisfy excellent > good > average")


@dataclass(frozen=True)
class EfficiencyRecord:
    vehicle_id: str
    plate_label: str
    efficiency_km_per_liter: float
    total_distance_km: float
    total_fuel_liters: float
    valid_segment_count: int
    category: EfficiencyCategory

@dataclass(frozen=True)
class EfficiencySummary:
    average: float
    maximum: float
    minimum: float
    total_vehicles_with_data: int

@dataclass(frozen=True)
class EfficiencyReport:
    per_vehicle: Mapping[str, EfficiencyRecord]  # keyed by vehicle id
    categorized: Mapping[EfficiencyCategory, Tuple[EfficiencyRecord, ...]]
    summary: EfficiencySummary
    has_data = True

@dataclass(frozen=True)
class NoEfficiencyData:
    reason: str
    has_data = False

EfficiencyResult = Union[EfficiencyReport, NoEfficiencyData]
