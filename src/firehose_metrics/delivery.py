"""Batched Firehose delivery with bounded retry and partial-failure accounting."""

import asyncio
import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from .clients.firehose_client import FirehoseClientFactory
from .config.settings import MetricSettings
from .credentials import CredentialCache
from .errors import AssumeRoleError, FirehoseError
from .models import Batch, DeliveryStats
from .notifier import CREATE_ERROR, FailureNotifier
from .utils.logging import log_error_with_context, log_with_context

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class DeliveryEngine:
    """
    Sends batches to Firehose and retries what failed.

    Every pending batch of an attempt is sent concurrently and the engine waits
    for all of them to settle before deciding what to retry. Retries are
    immediate and bounded by ``max_attempts`` for the whole ``deliver`` call.
    When the budget runs out the remaining batches are published on the
    failure notifier together with a ``FirehoseError``.

    Two settlement modes are supported:

    - ``per_batch``: only failed batches are resent. A batch that Firehose
      partially rejected is narrowed to the rejected records.
    - ``all_or_nothing``: any failure resends every batch of the attempt.
    """

    def __init__(
        self,
        settings: MetricSettings,
        credential_cache: CredentialCache,
        client_factory: FirehoseClientFactory,
        notifier: FailureNotifier
    ):
        self.settings = settings
        self.credential_cache = credential_cache
        self.client_factory = client_factory
        self.notifier = notifier

        self.max_attempts = settings.delivery.max_attempts or MAX_ATTEMPTS
        self.settlement = settings.delivery.settlement
        self.stats = DeliveryStats()

    async def deliver(self, batches: Sequence[Batch], stream_name: str) -> bool:
        """
        Deliver every batch to ``stream_name``.

        Returns:
            True if every record was acknowledged, False if some were reported
            through the failure notifier instead
        """
        pending: List[Batch] = [batch for batch in batches if batch]
        attempts = 0

        while pending:
            try:
                credentials = await self.credential_cache.get_credentials()
            except AssumeRoleError as e:
                # Identity faults are not retried
                log_error_with_context(logger, e, 'get_credentials', batches=len(pending))
                self._publish_failure(pending, e)
                return False

            try:
                firehose = self.client_factory.get_client(credentials)
            except (BotoCoreError, ClientError) as e:
                # Missing region and similar setup faults; retrying won't help
                error = FirehoseError(f"Unable to create the firehose client: {e}")
                error.__cause__ = e
                log_error_with_context(logger, e, 'get_client', batches=len(pending))
                self._publish_failure(pending, error)
                return False

            self.stats.attempts += 1
            outcomes = await asyncio.gather(
                *(self._send_batch(firehose, stream_name, batch) for batch in pending),
                return_exceptions=True
            )

            failed, last_error = self._settle(pending, outcomes)

            if not failed:
                self.stats.last_delivery_time = time.time()
                return True

            attempts += 1
            self.stats.last_error = last_error

            if attempts >= self.max_attempts:
                error = FirehoseError(
                    f"Unable to put the metrics into firehose, max attempts reached: {last_error}"
                )
                log_error_with_context(
                    logger, error, 'deliver',
                    stream=stream_name, attempts=attempts, failed_batches=len(failed)
                )
                self.stats.exhausted += 1
                self.stats.records_failed += sum(len(batch) for batch in failed)
                self._publish_failure(failed, error)
                return False

            self.stats.retries += 1
            log_with_context(
                logger, logging.WARNING,
                f"Attempt {attempts}/{self.max_attempts} to {stream_name} failed for "
                f"{len(failed)} of {len(pending)} batches: {last_error}. Retrying...",
                stream=stream_name, attempt=attempts, failed_batches=len(failed)
            )
            pending = failed

        return True

    async def _send_batch(self, firehose, stream_name: str, batch: Batch):
        records = [{'Data': record.to_bytes()} for record in batch]

        return await asyncio.get_running_loop().run_in_executor(
            None,
            lambda: firehose.put_record_batch(
                DeliveryStreamName=stream_name,
                Records=records
            )
        )

    def _settle(self, pending: List[Batch], outcomes: List[Any]) -> Tuple[List[Batch], Optional[str]]:
        """Split an attempt's outcomes into what must be retried and the last error seen."""
        failed: List[Batch] = []
        last_error = None
        records_accepted = 0
        batches_accepted = 0

        for batch, outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                failed.append(batch)
                last_error = str(outcome) or type(outcome).__name__
                logger.debug(f"Batch of {len(batch)} records failed: {last_error}")
                continue

            rejected = self._rejected_records(batch, outcome)

            if rejected:
                failed.append(rejected)
                last_error = f"{len(rejected)} of {len(batch)} records rejected"
                records_accepted += len(batch) - len(rejected)
            else:
                records_accepted += len(batch)
                batches_accepted += 1

        if failed and self.settlement == 'all_or_nothing':
            # Accepted records go out again with the rest; count them once they settle
            return list(pending), last_error

        self.stats.records_sent += records_accepted
        self.stats.batches_sent += batches_accepted

        return failed, last_error

    @staticmethod
    def _rejected_records(batch: Batch, response: Any) -> Batch:
        """Records Firehose reported as failed in a PutRecordBatch response."""
        if not isinstance(response, dict) or not response.get('FailedPutCount'):
            return ()

        responses = response.get('RequestResponses') or []
        if len(responses) != len(batch):
            # Can't tell which ones failed
            return batch

        return tuple(
            record for record, result in zip(batch, responses)
            if result.get('ErrorCode')
        )

    def _publish_failure(self, batches: List[Batch], error: Exception) -> None:
        self.notifier.emit(CREATE_ERROR, [list(batch) for batch in batches], error)

    def get_stats(self) -> Dict[str, Any]:
        stats = asdict(self.stats)
        stats['settlement'] = self.settlement
        stats['max_attempts'] = self.max_attempts
        return stats
