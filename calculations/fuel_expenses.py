"""
Fuel expense analytics: monthly spend, consumption per truck, cost trends and
the fleet summary card.

Unlike the efficiency aggregation, money and volume totals treat a missing
amount or price as zero, so every refuel still counts as a transaction.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from config import Config
from exceptions import DataValidationError
from shared.utils import to_amount
from .fuel_efficiency import rank_vehicles, vehicle_label
from .types import EfficiencyResult, RefuelEvent, Vehicle

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ['record_id', 'vehicle_id', 'plate_label', 'created',
                 'fuel_amount', 'fuel_price', 'cost']


def percent_change(current: float, previous: float) -> float:
    """Relative change in percent; 0 when there is nothing to compare against."""
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def _as_utc(moment: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(moment)
    if ts.tzinfo is None:
        return ts.tz_localize(timezone.utc)
    return ts.tz_convert(timezone.utc)


def build_refuel_frame(refuel_events: Iterable[RefuelEvent],
                       vehicles: Iterable[Vehicle]) -> pd.DataFrame:
    """Flatten refuel events into a DataFrame with a per-record cost column."""
    labels = {v.id: vehicle_label(v) for v in vehicles or []}

    rows = []
    for event in refuel_events or []:
        amount = to_amount(event.fuel_amount)
        price = to_amount(event.fuel_price)
        rows.append({
            'record_id': event.record_id,
            'vehicle_id': event.vehicle_id,
            'plate_label': labels.get(event.vehicle_id, f"Truck {str(event.vehicle_id)[-6:] or 'Unknown'}"),
            'created': event.created,
            'fuel_amount': amount,
            'fuel_price': price,
            'cost': amount * price,
        })

    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame['created'] = pd.to_datetime(frame['created'], utc=True)
    frame[['fuel_amount', 'fuel_price', 'cost']] = frame[['fuel_amount', 'fuel_price', 'cost']].astype(float)
    return frame.sort_values('created', kind='stable').reset_index(drop=True)


def _month_keys(now: pd.Timestamp, months: int) -> List[pd.Period]:
    current = now.tz_localize(None).to_period('M')
    return [current - offset for offset in range(months - 1, -1, -1)]


def monthly_fuel_expenses(frame: pd.DataFrame, months: int = Config.DEFAULT_EXPENSE_PERIOD,
                          now: Optional[datetime] = None) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Total spend, volume and transactions per calendar month.

    Args:
        frame: Output of build_refuel_frame.
        months: Number of months ending with the current one.
        now: Reference time (defaults to the current UTC time).

    Returns:
        Tuple of (monthly DataFrame with zero-filled months, stats dict)
    """
    if months < 1:
        raise DataValidationError(f"Period must be at least one month, got {months}")

    now_ts = _as_utc(now or datetime.now(timezone.utc))
    keys = _month_keys(now_ts, months)

    monthly = pd.DataFrame({'period': keys})
    if not frame.empty:
        periods = frame['created'].dt.tz_convert(timezone.utc).dt.tz_localize(None).dt.to_period('M')
        grouped = frame.assign(period=periods).groupby('period').agg(
            total_cost=('cost', 'sum'),
            total_liters=('fuel_amount', 'sum'),
            transactions=('record_id', 'count'),
        ).reset_index()
        monthly = monthly.merge(grouped, on='period', how='left')
    else:
        monthly = monthly.assign(total_cost=np.nan, total_liters=np.nan, transactions=np.nan)

    monthly[['total_cost', 'total_liters']] = monthly[['total_cost', 'total_liters']].fillna(0.0)
    monthly['transactions'] = monthly['transactions'].fillna(0).astype(int)
    monthly['month'] = monthly['period'].dt.strftime('%Y-%m')
    monthly['label'] = monthly['period'].dt.strftime('%b %Y')
    monthly = monthly[['month', 'label', 'total_cost', 'total_liters', 'transactions']]

    total_expense = float(monthly['total_cost'].sum())
    total_volume = float(monthly['total_liters'].sum())
    stats = {
        'total_expense': total_expense,
        'total_volume': total_volume,
        'avg_monthly_expense': total_expense / months,
        'avg_price_per_liter': total_expense / total_volume if total_volume > 0 else 0.0,
        'total_transactions': int(monthly['transactions'].sum()),
        'period': months,
    }
    logger.info(f"Monthly expenses over {months} months: total={total_expense:.2f}, volume={total_volume:.2f}")
    return monthly, stats


def fuel_consumption_by_vehicle(frame: pd.DataFrame, vehicles: Iterable[Vehicle],
                                top_n: int = Config.TOP_VEHICLES) -> pd.DataFrame:
    """Liters, cost and refuel count per known vehicle, heaviest consumers first."""
    fleet = list(vehicles or [])
    columns = ['vehicle_id', 'plate_label', 'total_liters', 'total_cost', 'records']
    if not fleet:
        return pd.DataFrame(columns=columns)

    base = pd.DataFrame({
        'vehicle_id': [v.id for v in fleet],
        'plate_label': [vehicle_label(v) for v in fleet],
    }).drop_duplicates('vehicle_id')

    if frame.empty:
        totals = pd.DataFrame(columns=['vehicle_id', 'total_liters', 'total_cost', 'records'])
    else:
        totals = frame.groupby('vehicle_id').agg(
            total_liters=('fuel_amount', 'sum'),
            total_cost=('cost', 'sum'),
            records=('record_id', 'count'),
        ).reset_index()

    result = base.merge(totals, on='vehicle_id', how='left')
    result[['total_liters', 'total_cost']] = result[['total_liters', 'total_cost']].fillna(0.0).astype(float)
    result['records'] = result['records'].fillna(0).astype(int)
    result = result.sort_values('total_liters', ascending=False, kind='stable')
    return result.head(top_n).reset_index(drop=True)[columns]


def fuel_cost_trend(frame: pd.DataFrame, vehicle_id: Optional[str] = None) -> pd.DataFrame:
    """Cost of each refuel over time, optionally for a single vehicle."""
    trend = frame if vehicle_id is None else frame[frame['vehicle_id'] == vehicle_id]
    return trend[['created', 'plate_label', 'fuel_amount', 'fuel_price', 'cost']].reset_index(drop=True)


def _window(frame: pd.DataFrame, start: pd.Timestamp, end: pd.Timestamp) -> pd.DataFrame:
    return frame[(frame['created'] >= start) & (frame['created'] <= end)]


def fleet_summary(frame: pd.DataFrame, vehicles: Iterable[Vehicle], efficiency: EfficiencyResult,
                  now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Key figures for the fleet summary card.

    Month figures cover calendar months in UTC. The weekly trend compares the
    last TREND_WINDOW_DAYS days with the window before it.
    Archived trucks are left out of the fleet size.
    """
    now_ts = _as_utc(now or datetime.now(timezone.utc))
    fleet = list(vehicles or [])

    month_start = now_ts.normalize().replace(day=1)
    next_month_start = month_start + pd.offsets.MonthBegin(1)
    last_month_start = month_start - pd.offsets.MonthBegin(1)
    one_tick = pd.Timedelta(microseconds=1)

    current = _window(frame, month_start, next_month_start - one_tick)
    previous = _window(frame, last_month_start, month_start - one_tick)

    current_cost = float(current['cost'].sum())
    current_volume = float(current['fuel_amount'].sum())
    previous_cost = float(previous['cost'].sum())
    previous_volume = float(previous['fuel_amount'].sum())

    days_in_month = (next_month_start - month_start).days
    days_passed = (now_ts.normalize() - month_start).days + 1
    projected_cost = current_cost / days_passed * days_in_month if current_cost > 0 else 0.0

    window = pd.Timedelta(days=Config.TREND_WINDOW_DAYS)
    recent = _window(frame, now_ts - window, now_ts)
    earlier = frame[(frame['created'] < now_ts - window) & (frame['created'] >= now_ts - 2 * window)]

    ranked = rank_vehicles(efficiency)
    most = ranked[0] if ranked else None
    least = ranked[-1] if ranked else None

    return {
        'current_month': {
            'cost': current_cost,
            'volume': current_volume,
            'transactions': int(len(current)),
            'avg_price_per_liter': current_cost / current_volume if current_volume > 0 else 0.0,
        },
        'comparisons': {
            'cost_change': percent_change(current_cost, previous_cost),
            'volume_change': percent_change(current_volume, previous_volume),
        },
        'fleet': {
            'total_trucks': sum(1 for v in fleet if not v.is_archived),
            'active_trucks': len(ranked),
            'avg_efficiency': efficiency.summary.average if efficiency.has_data else None,
            'most_efficient': (most.plate_label, most.efficiency_km_per_liter) if most else None,
            'least_efficient': (least.plate_label, least.efficiency_km_per_liter) if least else None,
        },
        'projections': {
            'month_progress': days_passed / days_in_month * 100,
            'projected_monthly_cost': projected_cost,
            'weekly_trend': percent_change(float(recent['cost'].sum()), float(earlier['cost'].sum())),
        },
    }
