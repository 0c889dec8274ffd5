"""Pytest configuration and shared fixtures."""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from unittest.mock import Mock

from firehose_metrics.clients.firehose_client import FirehoseClientFactory
from firehose_metrics.config.settings import DeliveryConfig, MetricSettings
from firehose_metrics.credentials import CredentialCache
from firehose_metrics.metric import Metric
from firehose_metrics.notifier import FailureNotifier


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 27, 21, 7, 21, tzinfo=timezone.utc))


@pytest.fixture
def test_settings() -> MetricSettings:
    """Create test configuration."""
    return MetricSettings(
        service_name="default-service",
        environment="beta",
        role_arn="some-role-arn",
        region="us-east-1",
        delivery_stream_name="kpi-metrics-per-client",
        delivery=DeliveryConfig()
    )


@pytest.fixture
def fake_role(clock) -> Dict[str, Any]:
    """AssumeRole response expiring at the current fake time."""
    return {
        'Credentials': {
            'AccessKeyId': 'some-access-key-id',
            'SecretAccessKey': 'some-secret-access-key',
            'SessionToken': 'some-session-token',
            'Expiration': clock.now
        },
        'AssumedRoleUser': {
            'AssumedRoleId': 'AROA:default-service',
            'Arn': 'arn:aws:sts::123456789012:assumed-role/metrics/default-service'
        }
    }


@pytest.fixture
def mock_firehose_response() -> Dict[str, Any]:
    """Successful PutRecordBatch response."""
    return {
        'FailedPutCount': 0,
        'Encrypted': False,
        'RequestResponses': []
    }


@pytest.fixture
def mock_sts_client(fake_role):
    client = Mock()
    client.assume_role = Mock(return_value=fake_role)
    return client


@pytest.fixture
def mock_firehose_client(mock_firehose_response):
    client = Mock()
    client.put_record_batch = Mock(return_value=mock_firehose_response)
    return client


@pytest.fixture
def client_builder(mock_firehose_client):
    return Mock(return_value=mock_firehose_client)


@pytest.fixture
def notifier() -> FailureNotifier:
    return FailureNotifier()


@pytest.fixture
def credential_cache(test_settings, mock_sts_client, clock) -> CredentialCache:
    return CredentialCache(test_settings, sts_client=mock_sts_client, clock=clock)


@pytest.fixture
def client_factory(test_settings, client_builder) -> FirehoseClientFactory:
    return FirehoseClientFactory(test_settings, client_builder=client_builder)


@pytest.fixture
def make_metric(notifier, mock_sts_client, client_builder, clock):
    """Factory for Metric instances wired to the mocked AWS clients."""
    def _make(settings: MetricSettings) -> Metric:
        return Metric(
            settings,
            notifier=notifier,
            credential_cache=CredentialCache(settings, sts_client=mock_sts_client, clock=clock),
            client_factory=FirehoseClientFactory(settings, client_builder=client_builder)
        )
    return _make


@pytest.fixture
def metric(make_metric, test_settings) -> Metric:
    return make_metric(test_settings)


@pytest.fixture
def create_errors(notifier):
    """Collects every create-error event published on the test notifier."""
    events = []
    notifier.on('create-error', lambda batches, error: events.append((batches, error)))
    return events
