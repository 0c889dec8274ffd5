"""Splitting validated records into PutRecordBatch-sized groups."""

from typing import List, Sequence

from .models import Batch, MetricRecord

METRICS_BATCH_LIMIT = 500


def make_batches(records: Sequence[MetricRecord], limit: int = METRICS_BATCH_LIMIT) -> List[Batch]:
    """
    Split records into consecutive batches of at most ``limit`` records.

    Order is preserved and nothing is dropped or duplicated; the last batch may
    be shorter. An empty input yields no batches.
    """
    if limit < 1:
        raise ValueError(f"Batch limit must be positive, got {limit}")

    records = list(records)
    return [tuple(records[i:i + limit]) for i in range(0, len(records), limit)]
