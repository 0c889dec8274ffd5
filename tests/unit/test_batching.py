"""Tests for splitting records into batches."""

import math

import pytest

from firehose_metrics.batching import METRICS_BATCH_LIMIT, make_batches
from firehose_metrics.models import MetricRecord


def _records(count):
    return [
        MetricRecord(
            client_code='some-client',
            metric_name='some-name',
            metric_data={'n': i},
            date_created='2024-01-27T21:07:21.000Z'
        )
        for i in range(count)
    ]


class TestMakeBatches:
    """Test make_batches partitioning."""

    def test_default_limit_is_firehose_maximum(self):
        assert METRICS_BATCH_LIMIT == 500

    def test_splits_into_batches_of_500(self):
        records = _records(1250)

        batches = make_batches(records)

        assert [len(batch) for batch in batches] == [500, 500, 250]

    @pytest.mark.parametrize("count", [1, 499, 500, 501, 1000, 1234])
    def test_no_loss_no_duplication_order_preserved(self, count):
        records = _records(count)

        batches = make_batches(records)

        assert len(batches) == math.ceil(count / 500)
        flattened = [record for batch in batches for record in batch]
        assert flattened == records

    def test_empty_input_yields_no_batches(self):
        assert make_batches([]) == []

    def test_custom_limit(self):
        batches = make_batches(_records(5), limit=2)

        assert [[r.metric_data['n'] for r in batch] for batch in batches] == [[0, 1], [2, 3], [4]]

    def test_batches_are_immutable_tuples(self):
        batches = make_batches(_records(3))

        assert isinstance(batches[0], tuple)

    def test_accepts_any_iterable(self):
        batches = make_batches(iter(_records(3)), limit=2)

        assert [len(batch) for batch in batches] == [2, 1]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_rejects_non_positive_limit(self, limit):
        with pytest.raises(ValueError):
            make_batches(_records(1), limit=limit)
