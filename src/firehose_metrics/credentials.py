"""Cache of delegated credentials obtained through STS AssumeRole."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config.settings import MetricSettings
from .errors import AssumeRoleError
from .models import CredentialSet

logger = logging.getLogger(__name__)

ARN_DURATION = 1800  # 30 min

EMPTY_CREDENTIALS = CredentialSet()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialCache:
    """
    Holds the single live credential set and renews it once it expires.

    Without a role ARN the empty credential set is returned and STS is never
    called, so the Firehose client falls back to the ambient identity.
    """

    def __init__(
        self,
        settings: MetricSettings,
        sts_client: Optional[Any] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.settings = settings
        self.clock = clock
        self._sts_client = sts_client
        self._credentials: Optional[CredentialSet] = None

    @property
    def role_arn(self) -> Optional[str]:
        return self.settings.role_arn

    @property
    def session_name(self) -> str:
        return self.settings.service_name or 'firehose-metrics'

    @property
    def sts_client(self):
        """Get or create the STS client."""
        if self._sts_client is None:
            self._sts_client = boto3.client('sts', region_name=self.settings.region)
            logger.info(f"Created STS client in region: {self.settings.region or 'default'}")
        return self._sts_client

    @property
    def current(self) -> Optional[CredentialSet]:
        return self._credentials

    def reset(self) -> None:
        """Forget the cached credentials; the next call assumes the role again."""
        self._credentials = None

    def valid_credentials(self) -> bool:
        return self._credentials is not None and self._credentials.is_valid(self.clock())

    async def get_credentials(self) -> CredentialSet:
        """
        Return valid credentials, assuming the role when the cached ones expired.

        Raises:
            AssumeRoleError: If STS fails or answers with an empty response
        """
        if not self.role_arn:
            return EMPTY_CREDENTIALS

        if self.valid_credentials():
            return self._credentials

        credentials = await self._assume_role()

        # Replace, never mutate: the client factory compares by identity
        self._credentials = credentials
        logger.info(f"Assumed role {self.role_arn}, credentials valid until {credentials.expiration}")

        return credentials

    async def _assume_role(self) -> CredentialSet:
        duration = self.settings.session_duration_seconds or ARN_DURATION

        try:
            sts_client = self.sts_client
            response = await asyncio.get_running_loop().run_in_executor(
                None,
                lambda: sts_client.assume_role(
                    RoleArn=self.role_arn,
                    RoleSessionName=self.session_name,
                    DurationSeconds=duration
                )
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"AssumeRole failed for {self.role_arn}: {e}")
            raise AssumeRoleError(f"Failed to assume role: {e}") from e

        if not response or not response.get('Credentials'):
            logger.error(f"AssumeRole returned an invalid response for {self.role_arn}")
            raise AssumeRoleError('Failed to assume role, invalid response.')

        credentials = response['Credentials']

        return CredentialSet(
            access_key_id=credentials['AccessKeyId'],
            secret_access_key=credentials['SecretAccessKey'],
            session_token=credentials['SessionToken'],
            expiration=_as_datetime(credentials['Expiration'])
        )


def _as_datetime(value: Any) -> datetime:
    """boto3 returns a datetime; stubs and raw JSON may hand us an ISO string."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace('Z', '+00:00'))

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    return value
