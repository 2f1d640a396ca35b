"""
Tests for the data layer: PocketBase record parsing, fetch failure handling
and uploaded refuel exports.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from calculations.fuel_efficiency import aggregate_fuel_efficiency
from data_manager import DataManager, parse_timestamp
from exceptions import DataFetchError, DataValidationError


def csv_upload(text: str) -> io.BytesIO:
    return io.BytesIO(text.encode('utf-8'))


class TestParsing(unittest.TestCase):

    def setUp(self):
        self.dm = DataManager()

    def test_parse_timestamp(self):
        parsed = parse_timestamp('2024-01-15 10:30:00.123Z')

        self.assertEqual(parsed, datetime(2024, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc))
        self.assertIsNone(parse_timestamp(''))
        self.assertIsNone(parse_timestamp(None))
        self.assertIsNone(parse_timestamp('not a date'))

    def test_refuel_records(self):
        records = [
            {'id': 'r1', 'truck_id': 't1', 'created': '2024-01-15 10:30:00.000Z',
             'odometer_reading': 1200, 'fuel_amount': 40, 'fuel_price': 58.5},
            {'id': 'r2', 'truck_id': ['t2'], 'created': '2024-01-16 08:00:00.000Z',
             'odometer_reading': 0, 'fuel_amount': 0},
            {'id': 'r3', 'truck_id': '', 'created': '2024-01-16 08:00:00.000Z'},
            {'id': 'r4', 'truck_id': 't1', 'created': ''},
        ]

        events = self.dm.parse_refuel_records(records)

        self.assertEqual([e.record_id for e in events], ['r1', 'r2'])
        self.assertEqual(events[0].vehicle_id, 't1')
        self.assertEqual(events[0].fuel_price, 58.5)
        self.assertEqual(events[1].vehicle_id, 't2')

    def test_vehicle_records(self):
        records = [
            {'id': 't1', 'plate_number': 'ABC-123', 'truck_type': 'Closed Van', 'is_archive': False},
            {'id': 't2', 'plate_number': '', 'is_archive': True},
            {'plate_number': 'NO-ID'},
        ]

        vehicles = self.dm.parse_vehicle_records(records)

        self.assertEqual([v.id for v in vehicles], ['t1', 't2'])
        self.assertEqual(vehicles[0].plate_number, 'ABC-123')
        self.assertIsNone(vehicles[1].plate_number)
        self.assertTrue(vehicles[1].is_archived)

    def test_vehicle_positions(self):
        records = [
            {'id': 't1', 'plate_number': 'ABC-123',
             'expand': {'truck_statistics': {'latitude': 14.6, 'longitude': 121.0, 'status': 'moving',
                                             'speed': 42.5, 'total_mileage': 15000,
                                             'updated': '2024-01-15 10:30:00.000Z'}}},
            {'id': 't2', 'plate_number': 'XYZ-999',
             'expand': {'truck_statistics': [{'latitude': 95.0, 'longitude': 121.0}]}},
            {'id': 't3', 'plate_number': 'NOGPS'},
            {'id': 't4', 'expand': {'truck_statistics': [{'latitude': '14.5', 'longitude': '120.9'}]}},
        ]

        positions = self.dm.parse_vehicle_positions(records)

        self.assertEqual([p.vehicle_id for p in positions], ['t1', 't4'])
        self.assertEqual(positions[0].status, 'moving')
        self.assertEqual(positions[0].speed, 42.5)
        self.assertEqual(positions[1].plate_label, 'Truck t4')
        self.assertEqual(positions[1].status, 'unknown')
        self.assertEqual(positions[1].latitude, 14.5)


class TestFetching(unittest.TestCase):

    def setUp(self):
        self.dm = DataManager()

    def test_fetch_fleet_data(self):
        client = MagicMock()
        client.get_full_list.side_effect = [
            [{'id': 'r1', 'truck_id': 't1', 'created': '2024-01-15 10:30:00.000Z',
              'odometer_reading': 1000, 'fuel_amount': 30},
             {'id': 'r2', 'truck_id': 't1', 'created': '2024-01-20 10:30:00.000Z',
              'odometer_reading': 1300, 'fuel_amount': 20}],
            [{'id': 't1', 'plate_number': 'ABC-123'}],
        ]

        events, vehicles = self.dm.fetch_fleet_data(client)

        self.assertEqual(len(events), 2)
        self.assertEqual(len(vehicles), 1)
        client.get_full_list.assert_any_call('truck_fuel', sort='created', expand='truck_id', skip_total=True)
        result = aggregate_fuel_efficiency(events, vehicles)
        self.assertAlmostEqual(result.per_vehicle['t1'].efficiency_km_per_liter, 15.0)

    def test_fetch_failure_degrades_to_empty(self):
        client = MagicMock()
        client.get_full_list.side_effect = DataFetchError('truck_fuel', 'boom', status_code=500)

        events, vehicles = self.dm.fetch_fleet_data(client)

        self.assertEqual((events, vehicles), ([], []))
        self.assertIn('HTTP 500', self.dm.last_error)
        self.assertFalse(aggregate_fuel_efficiency(events, vehicles).has_data)

    def test_position_fetch_failure(self):
        client = MagicMock()
        client.get_full_list.side_effect = DataFetchError('trucks', 'unreachable')

        self.assertEqual(self.dm.fetch_vehicle_positions(client), [])
        self.assertIn('unreachable', self.dm.last_error)

    def test_single_truck_position(self):
        client = MagicMock()
        client.get_one.return_value = {
            'id': 't1', 'plate_number': 'ABC-123',
            'expand': {'truck_statistics': {'latitude': 14.6, 'longitude': 121.0, 'status': 'idle'}},
        }

        position = self.dm.fetch_vehicle_position(client, 't1')

        client.get_one.assert_called_once_with('trucks', 't1', expand='truck_statistics')
        self.assertEqual(position.plate_label, 'ABC-123')
        self.assertEqual(position.status, 'idle')
        self.assertIsNone(self.dm.last_error)

    def test_single_truck_without_fix(self):
        client = MagicMock()
        client.get_one.return_value = {'id': 't1', 'plate_number': 'ABC-123'}

        self.assertIsNone(self.dm.fetch_vehicle_position(client, 't1'))

    def test_single_truck_fetch_failure(self):
        client = MagicMock()
        client.get_one.side_effect = DataFetchError('trucks', 'not found', status_code=404)

        self.assertIsNone(self.dm.fetch_vehicle_position(client, 't9'))
        self.assertIn('HTTP 404', self.dm.last_error)


class TestFileUpload(unittest.TestCase):

    def setUp(self):
        self.dm = DataManager()

    def test_load_csv_export(self):
        upload = csv_upload(
            "Truck ID,Created,Odometer Reading,Fuel Amount,Fuel Price,Plate Number\n"
            "t1,2024-01-15 10:30:00Z,1000,30,60,ABC-123\n"
            "t1,2024-01-20 10:30:00Z,1300,20,61,ABC-123\n"
            "t2,2024-01-21 09:00:00Z,,15,,\n"
            ",2024-01-21 09:00:00Z,500,10,60,\n"
            "t3,garbage,500,10,60,\n"
        )

        fuel_records, truck_records = self.dm.load_refuel_file(upload)

        self.assertEqual(len(fuel_records), 3)
        self.assertEqual(fuel_records[0]['id'], 'row-0')
        self.assertIsNone(fuel_records[2]['odometer_reading'])
        self.assertEqual(truck_records, [{'id': 't1', 'plate_number': 'ABC-123'},
                                         {'id': 't2', 'plate_number': None}])

        events = self.dm.parse_refuel_records(fuel_records)
        vehicles = self.dm.parse_vehicle_records(truck_records)
        result = aggregate_fuel_efficiency(events, vehicles)
        self.assertAlmostEqual(result.per_vehicle['t1'].efficiency_km_per_liter, 15.0)

    def test_missing_columns(self):
        upload = csv_upload("truck_id,created\nt1,2024-01-15\n")

        with self.assertRaises(DataValidationError) as ctx:
            self.dm.load_refuel_file(upload)
        self.assertIn('odometer_reading', str(ctx.exception))

    def test_no_usable_rows(self):
        upload = csv_upload("truck_id,created,odometer_reading,fuel_amount\n,2024-01-15,100,10\n")

        with self.assertRaises(DataValidationError):
            self.dm.load_refuel_file(upload)


if __name__ == '__main__':
    unittest.main()
