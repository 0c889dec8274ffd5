"""Data model shared by the metric pipeline."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class MetricRecord:
    """A validated metric, ready to be serialized for Firehose."""
    client_code: str
    metric_name: str
    metric_data: Union[Dict[str, Any], List[Any]]
    date_created: str
    service: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation of the record."""
        return {
            'id': self.id,
            'service': self.service,
            'clientCode': self.client_code,
            'metricName': self.metric_name,
            'metricData': self.metric_data,
            'dateCreated': self.date_created
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(',', ':'), default=_json_default).encode('utf-8')


def _json_default(value: Any) -> str:
    """Dates and times inside metric data are written as ISO-8601."""
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


# A batch is immutable and keeps the order of the records it was built from
Batch = Tuple[MetricRecord, ...]


@dataclass(frozen=True)
class CredentialSet:
    """
    Delegated AWS credentials.

    The empty set (every field ``None``) tells the client factory to fall back
    to the ambient boto3 credential chain.
    """
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    expiration: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.access_key_id is None

    def is_valid(self, now: datetime) -> bool:
        return self.expiration is not None and self.expiration >= now

    def as_client_kwargs(self) -> Dict[str, str]:
        """Keyword arguments for ``boto3.client``."""
        if self.is_empty:
            return {}

        return {
            'aws_access_key_id': self.access_key_id,
            'aws_secret_access_key': self.secret_access_key,
            'aws_session_token': self.session_token
        }


@dataclass
class DeliveryStats:
    """Counters kept by the delivery engine."""
    records_sent: int = 0
    records_failed: int = 0
    batches_sent: int = 0
    attempts: int = 0
    retries: int = 0
    exhausted: int = 0
    last_delivery_time: Optional[float] = None
    last_error: Optional[str] = field(default=None)
