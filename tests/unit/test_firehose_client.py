"""Tests for the Firehose client factory."""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

from firehose_metrics.clients.firehose_client import FirehoseClientFactory
from firehose_metrics.credentials import EMPTY_CREDENTIALS
from firehose_metrics.models import CredentialSet


def _credentials(token='some-session-token'):
    return CredentialSet(
        access_key_id='some-access-key-id',
        secret_access_key='some-secret-access-key',
        session_token=token,
        expiration=datetime(2024, 1, 27, 21, 37, 21, tzinfo=timezone.utc)
    )


class TestFirehoseClientFactory:
    """Test FirehoseClientFactory."""

    def test_reuses_client_for_same_credentials(self, test_settings):
        builder = Mock(side_effect=lambda credentials: Mock())
        factory = FirehoseClientFactory(test_settings, client_builder=builder)
        credentials = _credentials()

        first = factory.get_client(credentials)
        second = factory.get_client(credentials)

        assert first is second
        builder.assert_called_once_with(credentials)

    def test_rebuilds_client_when_credentials_change(self, test_settings):
        builder = Mock(side_effect=lambda credentials: Mock())
        factory = FirehoseClientFactory(test_settings, client_builder=builder)

        first = factory.get_client(_credentials('old-token'))
        second = factory.get_client(_credentials('new-token'))

        assert first is not second
        assert builder.call_count == 2

    def test_reset_drops_client(self, test_settings):
        builder = Mock(side_effect=lambda credentials: Mock())
        factory = FirehoseClientFactory(test_settings, client_builder=builder)

        factory.get_client(EMPTY_CREDENTIALS)
        factory.reset()
        factory.get_client(EMPTY_CREDENTIALS)

        assert builder.call_count == 2

    @patch('firehose_metrics.clients.firehose_client.boto3.client')
    def test_default_builder_passes_assumed_credentials(self, mock_boto_client, test_settings):
        factory = FirehoseClientFactory(test_settings)

        factory.get_client(_credentials())

        args, kwargs = mock_boto_client.call_args
        assert args == ('firehose',)
        assert kwargs['aws_access_key_id'] == 'some-access-key-id'
        assert kwargs['aws_secret_access_key'] == 'some-secret-access-key'
        assert kwargs['aws_session_token'] == 'some-session-token'
        assert kwargs['config'].connect_timeout == 0.5
        assert kwargs['config'].region_name == 'us-east-1'

    @patch('firehose_metrics.clients.firehose_client.boto3.client')
    def test_default_builder_uses_ambient_identity(self, mock_boto_client, test_settings):
        factory = FirehoseClientFactory(test_settings)

        factory.get_client(EMPTY_CREDENTIALS)

        _, kwargs = mock_boto_client.call_args
        assert 'aws_access_key_id' not in kwargs
        assert 'aws_session_token' not in kwargs
