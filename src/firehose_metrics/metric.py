"""Public entry point: validate, batch and deliver metrics to Firehose."""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .batching import make_batches
from .clients.firehose_client import FirehoseClientFactory
from .config.settings import MetricSettings
from .credentials import CredentialCache
from .delivery import DeliveryEngine
from .errors import NoEnvironmentError
from .notifier import CREATE_ERROR, FailureNotifier, default_notifier
from .validation import MetricValidator

logger = logging.getLogger(__name__)

LOCAL_ENV = 'local'

ENVS = {
    'local': 'Local',
    'beta': 'Beta',
    'qa': 'QA',
    'prod': 'Prod'
}

MetricPayload = Union[Dict[str, Any], List[Any]]


class Metric:
    """
    Sends metrics to the environment's Firehose delivery stream.

    Delivery problems never raise: subscribe to ``create-error`` to learn
    which metrics were dropped and why. The only error ``add`` raises is
    ``NoEnvironmentError``, for a process deployed without a known environment.

    Example:
        metric = Metric()
        metric.on('create-error', lambda batches, err: ...)
        await metric.add('some-client', 'some-name', {'some': 'metric'})
    """

    def __init__(
        self,
        settings: Optional[MetricSettings] = None,
        notifier: Optional[FailureNotifier] = None,
        credential_cache: Optional[CredentialCache] = None,
        client_factory: Optional[FirehoseClientFactory] = None,
        validator: Optional[MetricValidator] = None
    ):
        self.settings = settings or MetricSettings()
        self.notifier = notifier or default_notifier
        self.credential_cache = credential_cache or CredentialCache(self.settings)
        self.client_factory = client_factory or FirehoseClientFactory(self.settings)
        self.validator = validator or MetricValidator(service_name=self.settings.service_name)
        self.engine = DeliveryEngine(
            self.settings,
            self.credential_cache,
            self.client_factory,
            self.notifier
        )
        self._delivery_stream_name: Optional[str] = None

    @property
    def service_name(self) -> Optional[str]:
        return self.settings.service_name

    @property
    def env(self) -> Optional[str]:
        return self.settings.environment

    @property
    def formatted_env(self) -> str:
        """
        Friendly name of the current environment.

        Raises:
            NoEnvironmentError: If the environment is unset or unknown
        """
        if self.env and self.env in ENVS:
            return ENVS[self.env]

        raise NoEnvironmentError('Unknown environment')

    @property
    def delivery_stream_name(self) -> str:
        """Firehose stream for this environment, resolved once."""
        if self._delivery_stream_name is None:
            self._delivery_stream_name = (
                self.settings.delivery_stream_name
                or f"{self.settings.delivery_stream_prefix}{self.formatted_env}"
            )

        return self._delivery_stream_name

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        """Subscribe to a pipeline event, e.g. ``create-error``."""
        self.notifier.on(event, handler)

    async def add(self, client_code: str, metric_name: str, metrics: Union[MetricPayload, Sequence[MetricPayload]]) -> bool:
        """
        Put metrics into Firehose.

        ``metrics`` is a single metric payload or a list (or tuple) of payloads.
        A payload that is itself a list must be wrapped: ``[[1, 2, 3]]``.

        Returns:
            True if every metric was delivered (always True in the local env)

        Raises:
            NoEnvironmentError: If the environment is unset or unknown
        """
        # For local development
        if self.env == LOCAL_ENV:
            return True

        stream_name = self.delivery_stream_name

        if not isinstance(metrics, (list, tuple)):
            metrics = [metrics]

        records = []
        all_valid = True

        for payload in metrics:
            result = self.validator.validate(client_code, metric_name, payload)

            if result.ok:
                records.append(result.record)
                continue

            all_valid = False
            logger.warning(f"Dropping invalid metric '{metric_name}' for client {client_code!r}: {result.error}")
            self.notifier.emit(CREATE_ERROR, [[result.raw]], result.error)

        if not records:
            # Nothing to send; only a dropped invalid metric counts as a failure
            return all_valid

        batches = make_batches(records, self.settings.delivery.batch_limit)
        logger.debug(f"Delivering {len(records)} metrics in {len(batches)} batches to {stream_name}")

        delivered = await self.engine.deliver(batches, stream_name)
        return delivered and all_valid

    def get_stats(self) -> Dict[str, Any]:
        return self.engine.get_stats()


_default_metric: Optional[Metric] = None


def get_default_metric() -> Metric:
    """Process-wide Metric built from environment settings."""
    global _default_metric

    if _default_metric is None:
        _default_metric = Metric()

    return _default_metric


def reset_default_metric() -> None:
    """Drop the process-wide Metric and its cached credentials and stream name."""
    global _default_metric
    _default_metric = None


async def add(client_code: str, metric_name: str, metrics: Union[MetricPayload, Sequence[MetricPayload]]) -> bool:
    return await get_default_metric().add(client_code, metric_name, metrics)


def on(event: str, handler: Callable[..., Any]) -> None:
    default_notifier.on(event, handler)
