"""
Tests for the PocketBase client: authentication, pagination and error mapping.
The HTTP session is replaced with a mock, so no server is needed.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest
from unittest.mock import MagicMock

import requests

from exceptions import AuthenticationError, ConfigurationError, DataFetchError
from pocketbase_client import PocketBaseClient


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.text = str(payload)
    return response


def page(items, page_number, total_pages, per_page=2):
    return make_response(200, {'page': page_number, 'perPage': per_page, 'totalPages': total_pages,
                               'totalItems': len(items), 'items': items})


class TestAuthentication(unittest.TestCase):

    def make_client(self, identity='admin@example.com', password='secret'):
        client = PocketBaseClient('http://pb.local:8090/', identity=identity, password=password)
        client.session = MagicMock()
        return client

    def test_base_url_required(self):
        with self.assertRaises(ConfigurationError):
            PocketBaseClient('')

    def test_trailing_slash_stripped(self):
        self.assertEqual(self.make_client().base_url, 'http://pb.local:8090')

    def test_authenticate_success(self):
        client = self.make_client()
        client.session.post.return_value = make_response(200, {'token': 'tok123', 'record': {'id': 'u1'}})

        record = client.authenticate()

        self.assertEqual(record, {'id': 'u1'})
        self.assertTrue(client.is_authenticated)
        args, kwargs = client.session.post.call_args
        self.assertEqual(args[0], 'http://pb.local:8090/api/collections/users/auth-with-password')
        self.assertEqual(kwargs['json'], {'identity': 'admin@example.com', 'password': 'secret'})

    def test_authenticate_rejected(self):
        client = self.make_client()
        client.session.post.return_value = make_response(400, {'message': 'Failed to authenticate.'})

        with self.assertRaises(AuthenticationError) as ctx:
            client.authenticate()
        self.assertIn('Failed to authenticate.', str(ctx.exception))
        self.assertFalse(client.is_authenticated)

    def test_authenticate_unreachable(self):
        client = self.make_client()
        client.session.post.side_effect = requests.exceptions.ConnectionError('refused')

        with self.assertRaises(AuthenticationError):
            client.authenticate()

    def test_authenticate_without_credentials(self):
        client = self.make_client(identity=None, password=None)

        with self.assertRaises(ConfigurationError):
            client.authenticate()

    def test_token_sent_on_requests(self):
        client = self.make_client()
        client.session.post.return_value = make_response(200, {'token': 'tok123', 'record': {}})
        client.session.get.return_value = page([], 1, 0)

        client.get_list('trucks')

        headers = client.session.get.call_args[1]['headers']
        self.assertEqual(headers['Authorization'], 'tok123')


class TestRecords(unittest.TestCase):

    def setUp(self):
        self.client = PocketBaseClient('http://pb.local:8090', page_size=2)
        self.client.session = MagicMock()

    def test_get_full_list_follows_pages(self):
        self.client.session.get.side_effect = [
            page([{'id': 'a'}, {'id': 'b'}], 1, 2),
            page([{'id': 'c'}], 2, 2),
        ]

        records = self.client.get_full_list('truck_fuel', sort='created', expand='truck_id')

        self.assertEqual([r['id'] for r in records], ['a', 'b', 'c'])
        self.assertEqual(self.client.session.get.call_count, 2)
        params = self.client.session.get.call_args_list[1][1]['params']
        self.assertEqual(params, {'page': 2, 'perPage': 2, 'sort': 'created', 'expand': 'truck_id'})

    def test_get_full_list_stops_at_total_pages(self):
        self.client.session.get.side_effect = [
            page([{'id': 'a'}, {'id': 'b'}], 1, 1),
        ]

        records = self.client.get_full_list('trucks')

        self.assertEqual(len(records), 2)
        self.assertEqual(self.client.session.get.call_count, 1)

    def test_get_full_list_without_totals(self):
        self.client.session.get.side_effect = [
            page([{'id': 'a'}, {'id': 'b'}], 1, -1),
            page([{'id': 'c'}, {'id': 'd'}], 2, -1),
            page([], 3, -1),
        ]

        records = self.client.get_full_list('trucks', skip_total=True)

        self.assertEqual(len(records), 4)
        self.assertEqual(self.client.session.get.call_args_list[0][1]['params']['skipTotal'], 1)

    def test_http_error_raises_data_fetch_error(self):
        self.client.session.get.return_value = make_response(403, {'message': 'Only admins can perform this action.'})

        with self.assertRaises(DataFetchError) as ctx:
            self.client.get_full_list('truck_fuel')
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.collection, 'truck_fuel')

    def test_invalid_json_raises_data_fetch_error(self):
        response = make_response(200)
        response.json.side_effect = ValueError('no json')
        self.client.session.get.return_value = response

        with self.assertRaises(DataFetchError):
            self.client.get_list('trucks')

    def test_transport_error_is_retried_then_raised(self):
        self.client.session.get.side_effect = requests.exceptions.ConnectionError('down')

        with self.assertRaises(DataFetchError):
            self.client.get_list('trucks')
        self.assertEqual(self.client.session.get.call_count, 3)

    def test_get_one(self):
        self.client.session.get.return_value = make_response(200, {'id': 't1', 'plate_number': 'ABC-123'})

        record = self.client.get_one('trucks', 't1')

        self.assertEqual(record['plate_number'], 'ABC-123')
        self.assertTrue(self.client.session.get.call_args[0][0].endswith('/api/collections/trucks/records/t1'))

    def test_health(self):
        self.client.session.get.return_value = make_response(200, {'message': 'API is healthy.'})
        self.assertEqual(self.client.health(), (True, 'API is healthy.'))

        self.client.session.get.side_effect = requests.exceptions.ConnectionError('down')
        ok, _ = self.client.health()
        self.assertFalse(ok)


if __name__ == '__main__':
    unittest.main()
