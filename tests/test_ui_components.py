"""
Tests for the cached backend fetches behind the dashboard tabs.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest
from unittest.mock import MagicMock

from exceptions import DataFetchError
from ui_components import fetch_fleet_data, fetch_vehicle_positions, refresh_data


class TestCachedFetches(unittest.TestCase):

    def setUp(self):
        refresh_data()

    def tearDown(self):
        refresh_data()

    def test_position_failure_is_returned_with_empty_positions(self):
        client = MagicMock()
        client.get_full_list.side_effect = DataFetchError('trucks', 'connection refused')

        positions, error = fetch_vehicle_positions(client, 'http://pb.local:8090')

        self.assertEqual(positions, [])
        self.assertIn('connection refused', error)

    def test_positions_without_error(self):
        client = MagicMock()
        client.get_full_list.return_value = [
            {'id': 't1', 'plate_number': 'ABC-123',
             'expand': {'truck_statistics': {'latitude': 14.6, 'longitude': 121.0}}},
        ]

        positions, error = fetch_vehicle_positions(client, 'http://pb.local:8090')

        self.assertEqual([p.vehicle_id for p in positions], ['t1'])
        self.assertIsNone(error)

    def test_fleet_failure_is_returned_with_empty_lists(self):
        client = MagicMock()
        client.get_full_list.side_effect = DataFetchError('truck_fuel', 'forbidden', status_code=403)

        events, vehicles, error = fetch_fleet_data(client, 'http://pb.local:8090')

        self.assertEqual((events, vehicles), ([], []))
        self.assertIn('HTTP 403', error)


if __name__ == '__main__':
    unittest.main()
