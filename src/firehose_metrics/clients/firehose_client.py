"""Firehose client bound to the current credential set."""

import logging
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config

from ..config.settings import MetricSettings
from ..models import CredentialSet

logger = logging.getLogger(__name__)


class FirehoseClientFactory:
    """
    Builds and reuses the Firehose client.

    The client is rebuilt whenever it is asked for with a credential set other
    than the one it was built with, so a refresh in the credential cache is
    picked up lazily on the next delivery.
    """

    def __init__(
        self,
        settings: MetricSettings,
        client_builder: Optional[Callable[[CredentialSet], Any]] = None
    ):
        self.settings = settings
        self.client_builder = client_builder or self._build_client
        self._client = None
        self._bound_credentials: Optional[CredentialSet] = None

        # Retries are owned by the delivery engine
        self._boto_config = Config(
            region_name=settings.region,
            retries={
                'max_attempts': 1,
                'mode': 'standard'
            },
            connect_timeout=settings.delivery.connect_timeout_seconds,
            read_timeout=settings.delivery.read_timeout_seconds
        )

    def get_client(self, credentials: CredentialSet):
        """Get the cached client, or build one for these credentials."""
        if self._client is None or credentials is not self._bound_credentials:
            self._client = self.client_builder(credentials)
            self._bound_credentials = credentials
            logger.debug("Built Firehose client for %s credentials",
                         'ambient' if credentials.is_empty else 'assumed-role')

        return self._client

    def reset(self) -> None:
        self._client = None
        self._bound_credentials = None

    def _build_client(self, credentials: CredentialSet):
        client = boto3.client(
            'firehose',
            config=self._boto_config,
            **credentials.as_client_kwargs()
        )
        logger.info(f"Created AWS Firehose client in region: {client.meta.region_name}")
        return client
