"""
Fleet fuel efficiency aggregation.

Turns the raw refuel log into per-vehicle km/L figures. For every vehicle the
refuels are ordered by creation time and each consecutive pair is a segment:
the odometer delta is the distance driven and the later refuel's amount is the
fuel burned over it. Implausible segments are dropped, the rest are summed,
and each vehicle is placed into one of four efficiency tiers.
"""
import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional

import pandas as pd

from shared.utils import to_positive_number
from .types import (
    EfficiencyCategory, EfficiencyRecord, EfficiencyReport, EfficiencyResult,
    EfficiencySummary, EfficiencyThresholds, NoEfficiencyData, RefuelEvent,
    SegmentBounds, Vehicle,
)

logger = logging.getLogger(__name__)


def vehicle_label(vehicle: Vehicle) -> str:
    """Display label: plate number, or a short id-based fallback."""
    plate = (vehicle.plate_number or '').strip()
    if plate:
        return plate
    return f"Truck {str(vehicle.id)[-6:]}"


def categorize_efficiency(efficiency: float,
                          thresholds: Optional[EfficiencyThresholds] = None) -> EfficiencyCategory:
    """Map a km/L figure to its tier. Boundary values belong to the lower tier."""
    t = thresholds or EfficiencyThresholds()
    if efficiency > t.excellent:
        return EfficiencyCategory.EXCELLENT
    if efficiency > t.good:
        return EfficiencyCategory.GOOD
    if efficiency > t.average:
        return EfficiencyCategory.AVERAGE
    return EfficiencyCategory.POOR


def _segment_distance(prev: RefuelEvent, current: RefuelEvent,
                      bounds: SegmentBounds) -> Optional[float]:
    """Distance of a valid segment, or None if the pair must be skipped."""
    prev_odo = to_positive_number(prev.odometer_reading)
    current_odo = to_positive_number(current.odometer_reading)
    if prev_odo is None or current_odo is None:
        return None

    distance = current_odo - prev_odo
    if not (bounds.min_km < distance < bounds.max_km):
        logger.debug(f"Skipping segment for {current.vehicle_id}: implausible distance {distance} km")
        return None
    return distance


def _vehicle_record(vehicle: Vehicle, events: List[RefuelEvent], bounds: SegmentBounds,
                    thresholds: EfficiencyThresholds) -> Optional[EfficiencyRecord]:
    ordered = sorted(events, key=lambda e: e.created)

    total_distance = 0.0
    total_fuel = 0.0
    valid_segments = 0

    for prev, current in zip(ordered, ordered[1:]):
        fuel = to_positive_number(current.fuel_amount)
        if fuel is None:
            continue
        distance = _segment_distance(prev, current, bounds)
        if distance is None:
            continue
        total_distance += distance
        total_fuel += fuel
        valid_segments += 1

    if valid_segments == 0 or total_fuel <= 0:
        return None

    efficiency = total_distance / total_fuel
    return EfficiencyRecord(
        vehicle_id=vehicle.id,
        plate_label=vehicle_label(vehicle),
        efficiency_km_per_liter=efficiency,
        total_distance_km=total_distance,
        total_fuel_liters=total_fuel,
        valid_segment_count=valid_segments,
        category=categorize_efficiency(efficiency, thresholds),
    )


def aggregate_fuel_efficiency(refuel_events: Optional[Iterable[RefuelEvent]],
                              vehicles: Optional[Iterable[Vehicle]],
                              bounds: Optional[SegmentBounds] = None,
                              thresholds: Optional[EfficiencyThresholds] = None) -> EfficiencyResult:
    """
    Compute distance-weighted fuel efficiency for every vehicle in the fleet.

    Args:
        refuel_events: Refuel log, any order. None is treated as empty.
        vehicles: Known vehicles. Events for vehicles not listed are ignored.
        bounds: Plausible odometer-delta range for a segment.
        thresholds: Tier boundaries in km/L.

    Returns:
        EfficiencyReport keyed by vehicle id, or NoEfficiencyData when no
        vehicle has a single valid segment. The inputs are never modified.
    """
    bounds = bounds or SegmentBounds()
    thresholds = thresholds or EfficiencyThresholds()

    events = list(refuel_events) if refuel_events is not None else []
    fleet = list(vehicles) if vehicles is not None else []

    if not events or not fleet:
        logger.info(f"No efficiency data: {len(events)} refuel events, {len(fleet)} vehicles")
        return NoEfficiencyData(reason="No refuel records or vehicles available")

    events_by_vehicle: Dict[str, List[RefuelEvent]] = defaultdict(list)
    for event in events:
        events_by_vehicle[event.vehicle_id].append(event)

    per_vehicle: Dict[str, EfficiencyRecord] = {}
    for vehicle in fleet:
        if vehicle.id in per_vehicle:
            continue
        vehicle_events = events_by_vehicle.get(vehicle.id, [])
        if len(vehicle_events) < 2:
            continue
        record = _vehicle_record(vehicle, vehicle_events, bounds, thresholds)
        if record is not None:
            per_vehicle[vehicle.id] = record

    if not per_vehicle:
        logger.info("No vehicle has a valid odometer segment")
        return NoEfficiencyData(reason="No vehicle has two refuels with a plausible odometer delta")

    categorized = {
        category: tuple(r for r in per_vehicle.values() if r.category is category)
        for category in EfficiencyCategory
    }

    efficiencies = [r.efficiency_km_per_liter for r in per_vehicle.values()]
    summary = EfficiencySummary(
        average=sum(efficiencies) / len(efficiencies),
        maximum=max(efficiencies),
        minimum=min(efficiencies),
        total_vehicles_with_data=len(efficiencies),
    )

    logger.info(f"Computed fuel efficiency for {summary.total_vehicles_with_data} of {len(fleet)} vehicles "
                f"(avg {summary.average:.2f} km/L)")

    return EfficiencyReport(
        per_vehicle=MappingProxyType(per_vehicle),
        categorized=MappingProxyType(categorized),
        summary=summary,
    )


def rank_vehicles(result: EfficiencyResult) -> List[EfficiencyRecord]:
    """Vehicles with data, most efficient first."""
    if not result.has_data:
        return []
    return sorted(result.per_vehicle.values(),
                  key=lambda r: (-r.efficiency_km_per_liter, r.plate_label, r.vehicle_id))


def efficiency_by_truck_type(result: EfficiencyResult, vehicles: Iterable[Vehicle]) -> pd.DataFrame:
    """
    Mean km/L per truck type over the vehicles that have data.

    Each vehicle counts once regardless of how far it drove. Vehicles without
    a type are grouped as 'Unspecified'.
    """
    columns = ['Truck Type', 'Avg Efficiency (km/L)', 'Trucks']
    if not result.has_data:
        return pd.DataFrame(columns=columns)

    types: Dict[str, str] = {}
    for vehicle in vehicles or []:
        types.setdefault(vehicle.id, (vehicle.truck_type or '').strip() or 'Unspecified')

    rows = pd.DataFrame({
        'Truck Type': [types.get(r.vehicle_id, 'Unspecified') for r in result.per_vehicle.values()],
        'efficiency': [r.efficiency_km_per_liter for r in result.per_vehicle.values()],
    })
    grouped = rows.groupby('Truck Type').agg(
        avg=('efficiency', 'mean'),
        trucks=('efficiency', 'count'),
    ).reset_index()
    grouped = grouped.rename(columns={'avg': 'Avg Efficiency (km/L)', 'trucks': 'Trucks'})
    grouped['Avg Efficiency (km/L)'] = grouped['Avg Efficiency (km/L)'].round(2)
    grouped = grouped.sort_values(['Avg Efficiency (km/L)', 'Truck Type'], ascending=[False, True])
    return grouped.reset_index(drop=True)[columns]


def efficiency_frame(result: EfficiencyResult,
                     thresholds: Optional[EfficiencyThresholds] = None) -> pd.DataFrame:
    """Tabular view of a report for display and export."""
    columns = ['Vehicle ID', 'Plate', 'Efficiency (km/L)', 'Distance (km)',
               'Fuel (L)', 'Segments', 'Category']
    rows = [{
        'Vehicle ID': r.vehicle_id,
        'Plate': r.plate_label,
        'Efficiency (km/L)': round(r.efficiency_km_per_liter, 2),
        'Distance (km)': round(r.total_distance_km, 1),
        'Fuel (L)': round(r.total_fuel_liters, 2),
        'Segments': r.valid_segment_count,
        'Category': r.category.label(thresholds),
    } for r in rank_vehicles(result)]
    return pd.DataFrame(rows, columns=columns)
