"""
Tests for ProfileServiceClient.
"""

import unittest
from unittest.mock import Mock, patch

import requests

from core.collaborators import ProfileServiceClient, _is_retryable_error
from core.errors import TransientStoreError
from core.interfaces import Application, PushEndpoint


def _response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


class TestProfileServiceClient(unittest.TestCase):

    def setUp(self):
        self.client = ProfileServiceClient(base_url="http://profiles:8000/", timeout_seconds=3)
        self.client.session = Mock()

    def test_fetch_candidate_pool(self):
        self.client.session.request.return_value = _response(payload={"candidates": ["t1", "t2"]})

        self.assertEqual(self.client.fetch_candidate_pool("alice"), ["t1", "t2"])
        self.client.session.request.assert_called_once_with(
            "GET", "http://profiles:8000/users/alice/candidate-pool", timeout=3
        )

    def test_entity_exists(self):
        self.client.session.request.return_value = _response(payload={"id": "t1"})
        self.assertTrue(self.client.entity_exists("t1"))

        self.client.session.request.return_value = _response(status_code=404)
        self.assertFalse(self.client.entity_exists("ghost"))

    def test_audience_for(self):
        self.client.session.request.return_value = _response(payload={"user_ids": ["a", "b"]})
        self.assertEqual(self.client.audience_for("t1"), ["a", "b"])

    def test_get_application(self):
        self.client.session.request.return_value = _response(
            payload={"id": "app-1", "owner_id": "employer", "applicant_id": "worker"}
        )
        self.assertEqual(
            self.client.get_application("app-1"),
            Application(id="app-1", owner_id="employer", applicant_id="worker")
        )

    def test_get_application_missing(self):
        self.client.session.request.return_value = _response(status_code=404)
        self.assertIsNone(self.client.get_application("app-404"))

    def test_get_application_missing_owner(self):
        self.client.session.request.return_value = _response(payload={"id": "app-1", "applicant_id": "worker"})
        with self.assertRaises(TransientStoreError):
            self.client.get_application("app-1")

    def test_create_conversation(self):
        self.client.session.request.return_value = _response(payload={"conversation_id": "conv-9"})

        self.assertEqual(self.client.create_conversation("alice", "bob"), "conv-9")
        _, kwargs = self.client.session.request.call_args
        self.assertEqual(kwargs["json"], {"user_ids": ["alice", "bob"]})

    def test_get_endpoints(self):
        self.client.session.request.return_value = _response(payload={"endpoints": [
            {"channel_type": "push", "address": "https://push.example.com/1"},
            {"channel_type": "in_app", "address": "alice"},
            {"channel_type": "push"},
        ]})

        self.assertEqual(self.client.get_endpoints("alice"), [
            PushEndpoint("push", "https://push.example.com/1"),
            PushEndpoint("in_app", "alice"),
        ])

    def test_client_error_is_transient_store_error(self):
        self.client.session.request.return_value = _response(status_code=400)

        with self.assertRaises(TransientStoreError):
            self.client.fetch_candidate_pool("alice")
        self.assertEqual(self.client.session.request.call_count, 1)

    @patch('tenacity.nap.time.sleep', return_value=None)
    def test_server_error_is_retried(self, _sleep):
        self.client.session.request.side_effect = [
            _response(status_code=503),
            _response(payload={"candidates": ["t1"]}),
        ]

        self.assertEqual(self.client.fetch_candidate_pool("alice"), ["t1"])
        self.assertEqual(self.client.session.request.call_count, 2)

    @patch('tenacity.nap.time.sleep', return_value=None)
    def test_connection_error_exhausts_retries(self, _sleep):
        self.client.session.request.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(TransientStoreError):
            self.client.entity_exists("t1")
        self.assertEqual(self.client.session.request.call_count, 3)


class TestRetryClassification(unittest.TestCase):

    def test_timeout_retryable(self):
        self.assertTrue(_is_retryable_error(requests.Timeout()))

    def test_4xx_not_retryable(self):
        self.assertFalse(_is_retryable_error(requests.HTTPError(response=Mock(status_code=409))))

    def test_other_exceptions_not_retryable(self):
        self.assertFalse(_is_retryable_error(ValueError("bad json")))


if __name__ == '__main__':
    unittest.main()
