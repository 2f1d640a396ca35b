"""
Data management service: turns PocketBase records and uploaded exports into
the domain types used by the calculations.
"""

import pandas as pd
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging
from config import Config
from exceptions import DataValidationError, FleetDashboardError
from calculations.types import RefuelEvent, Vehicle, VehiclePosition
from calculations.fuel_efficiency import vehicle_label
import shared.utils as utils

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a PocketBase timestamp ('2024-01-15 10:30:00.123Z') to an aware UTC datetime."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    ts = pd.to_datetime(value, utc=True, errors='coerce')
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _relation_id(value: Any) -> str:
    """Single relation fields come back as an id string; multi relations as a list."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ''
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ''
    return str(value).strip()


class DataManager:
    """Service for loading and validating fleet data."""

    def __init__(self):
        self.required_columns = Config.REFUEL_REQUIRED_COLUMNS
        self.last_error: Optional[str] = None

    def parse_refuel_records(self, records: List[Dict[str, Any]]) -> List[RefuelEvent]:
        """Convert truck_fuel records into RefuelEvents, skipping unusable rows."""
        events = []
        skipped = 0
        for record in records or []:
            vehicle_id = _relation_id(record.get('truck_id'))
            created = parse_timestamp(record.get('created'))
            if not vehicle_id or created is None:
                skipped += 1
                logger.debug(f"Skipping refuel record {record.get('id')}: missing truck or creation time")
                continue
            events.append(RefuelEvent(
                vehicle_id=vehicle_id,
                created=created,
                odometer_reading=record.get('odometer_reading'),
                fuel_amount=record.get('fuel_amount'),
                fuel_price=record.get('fuel_price'),
                record_id=str(record.get('id', '') or ''),
            ))
        if skipped:
            logger.warning(f"Skipped {skipped} refuel records without a truck or creation time")
        return events

    def parse_vehicle_records(self, records: List[Dict[str, Any]]) -> List[Vehicle]:
        """Convert trucks records into Vehicles."""
        vehicles = []
        for record in records or []:
            vehicle_id = _relation_id(record.get('id'))
            if not vehicle_id:
                logger.warning("Skipping truck record without an id")
                continue
            vehicles.append(Vehicle(
                id=vehicle_id,
                plate_number=_relation_id(record.get('plate_number')) or None,
                truck_type=record.get('truck_type') or None,
                is_archived=bool(record.get('is_archive', False)),
            ))
        return vehicles

    def parse_vehicle_positions(self, records: List[Dict[str, Any]]) -> List[VehiclePosition]:
        """Latest GPS fix per truck, from the expanded truck_statistics relation."""
        positions = []
        for record in records or []:
            stats = (record.get('expand') or {}).get('truck_statistics')
            if isinstance(stats, list):
                stats = stats[0] if stats else None
            if not stats:
                continue
            lat, lng = stats.get('latitude'), stats.get('longitude')
            if not utils.validate_coordinates(lat, lng):
                logger.debug(f"Truck {record.get('id')} has no valid coordinates")
                continue
            vehicle = self.parse_vehicle_records([record])
            if not vehicle:
                continue
            positions.append(VehiclePosition(
                vehicle_id=vehicle[0].id,
                plate_label=vehicle_label(vehicle[0]),
                latitude=float(lat),
                longitude=float(lng),
                status=stats.get('status') or 'unknown',
                speed=utils.to_amount(stats.get('speed')),
                direction=stats.get('direction') or None,
                total_mileage=utils.to_positive_number(stats.get('total_mileage')),
                updated=parse_timestamp(stats.get('updated')),
            ))
        return positions

    def fetch_fleet_data(self, client) -> Tuple[List[RefuelEvent], List[Vehicle]]:
        """
        Fetch refuel events and trucks from PocketBase.

        Fetch failures are logged, kept in last_error, and degrade to empty
        lists so the analytics always receive concrete inputs.
        """
        self.last_error = None
        try:
            fuel_records = client.get_full_list(Config.REFUEL_COLLECTION, sort='created', expand='truck_id',
                                                skip_total=True)
            truck_records = client.get_full_list(Config.TRUCK_COLLECTION, skip_total=True)
        except FleetDashboardError as e:
            logger.error(f"Error fetching fleet data: {e}")
            self.last_error = str(e)
            return [], []

        events = self.parse_refuel_records(fuel_records)
        vehicles = self.parse_vehicle_records(truck_records)
        logger.info(f"Loaded {len(events)} refuel events for {len(vehicles)} trucks")
        return events, vehicles

    def fetch_vehicle_positions(self, client) -> List[VehiclePosition]:
        """Fetch trucks with their latest statistics; empty list on failure."""
        self.last_error = None
        try:
            records = client.get_full_list(Config.TRUCK_COLLECTION, sort='-created', expand='truck_statistics',
                                            skip_total=True)
        except FleetDashboardError as e:
            logger.error(f"Error fetching GPS data: {e}")
            self.last_error = str(e)
            return []
        return self.parse_vehicle_positions(records)

    def fetch_vehicle_position(self, client, vehicle_id: str) -> Optional[VehiclePosition]:
        """Fresh statistics for one truck; None if it has no fix or the fetch fails."""
        self.last_error = None
        try:
            record = client.get_one(Config.TRUCK_COLLECTION, vehicle_id, expand='truck_statistics')
        except FleetDashboardError as e:
            logger.error(f"Error fetching GPS data for truck {vehicle_id}: {e}")
            self.last_error = str(e)
            return None
        positions = self.parse_vehicle_positions([record])
        return positions[0] if positions else None

    def load_refuel_file(self, file) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """
        Load an uploaded truck_fuel export.

        Returns:
            Tuple of (refuel records, truck records) in PocketBase record shape.
            Truck records are derived from the distinct truck ids, using the
            optional plate_number column when present.
        """
        try:
            df = utils.read_tabular_file(file)

            df.columns = df.columns.astype(str).str.strip().str.lower().str.replace(' ', '_')

            missing_columns = [col for col in self.required_columns if col not in df.columns]
            if missing_columns:
                error_msg = "Missing columns in file:\n\n"
                error_msg += f"Expected columns: {', '.join(self.required_columns)}\n"
                error_msg += f"Found columns: {', '.join(df.columns)}\n"
                error_msg += f"Missing columns: {', '.join(missing_columns)}"
                raise DataValidationError(error_msg)

            df = self._clean_data(df)
            if df.empty:
                raise DataValidationError("No rows with a truck id and creation time")

            fuel_records = df.to_dict('records')

            if 'plate_number' in df.columns:
                trucks = df.groupby('truck_id', sort=False)['plate_number'].first().reset_index()
            else:
                trucks = pd.DataFrame({'truck_id': df['truck_id'].unique(), 'plate_number': None})
            truck_records = [{'id': row['truck_id'],
                              'plate_number': row['plate_number'] if pd.notna(row['plate_number']) else None}
                             for _, row in trucks.iterrows()]

            logger.info(f"Loaded {len(fuel_records)} refuel rows for {len(truck_records)} trucks from file")
            return fuel_records, truck_records

        except DataValidationError:
            raise
        except Exception as e:
            logger.error(f"Error loading data: {e}")
            raise DataValidationError(f"Error loading file: {str(e)}")

    def _clean_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """Clean and preprocess a raw refuel export."""
        df = df.copy()

        df['truck_id'] = df['truck_id'].map(_relation_id)
        df = df[df['truck_id'] != '']

        df['created'] = pd.to_datetime(df['created'], utc=True, errors='coerce')
        df = df[df['created'].notna()]

        for col in ['odometer_reading', 'fuel_amount', 'fuel_price']:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors='coerce')
                df[col] = df[col].astype(object).where(df[col].notna(), None)

        if 'plate_number' in df.columns:
            df['plate_number'] = df['plate_number'].astype(object).where(df['plate_number'].notna(), None)

        if 'id' not in df.columns:
            df['id'] = [f"row-{i}" for i in range(len(df))]
        df['id'] = df['id'].astype(str)

        return df.reset_index(drop=True)
