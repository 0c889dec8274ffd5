"""
Firehose Metrics - batched, retried delivery of metrics to Kinesis Data Firehose.

Metrics are validated, grouped into PutRecordBatch-sized batches and sent with
delegated STS credentials that renew themselves when they expire. Metrics that
cannot be delivered are reported through the ``create-error`` event.
"""

from .errors import (
    AssumeRoleError,
    FirehoseError,
    InvalidMetricError,
    MetricError,
    NoEnvironmentError,
)
from .metric import Metric, add, get_default_metric, on, reset_default_metric
from .notifier import CREATE_ERROR, FailureNotifier

__version__ = "1.0.0"

__all__ = [
    'AssumeRoleError',
    'CREATE_ERROR',
    'FailureNotifier',
    'FirehoseError',
    'InvalidMetricError',
    'Metric',
    'MetricError',
    'NoEnvironmentError',
    'add',
    'get_default_metric',
    'on',
    'reset_default_metric',
]
