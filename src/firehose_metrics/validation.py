"""Structural validation of raw metrics."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictStr, ValidationError

from .errors import InvalidMetricError
from .models import MetricRecord


class MetricInput(BaseModel):
    """Shape every metric must have before it is accepted."""
    client_code: StrictStr = Field(min_length=1)
    metric_name: StrictStr = Field(min_length=1)
    metric_data: Union[Dict[str, Any], List[Any]]


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def validate_metric(
    client_code: Any,
    metric_name: Any,
    metric_data: Any,
    service_name: Optional[str] = None
) -> MetricRecord:
    """
    Validate a raw metric and stamp it with its creation date.

    Raises:
        InvalidMetricError: If the metric does not match the expected shape
    """
    try:
        valid = MetricInput(
            client_code=client_code,
            metric_name=metric_name,
            metric_data=metric_data
        )
    except ValidationError as e:
        raise InvalidMetricError(str(e)) from e

    return MetricRecord(
        client_code=valid.client_code,
        metric_name=valid.metric_name,
        metric_data=valid.metric_data,
        date_created=iso_timestamp(),
        service=service_name,
        id=str(uuid.uuid4())
    )


@dataclass(frozen=True)
class ValidationResult:
    """Either a validated record or the error explaining why it was rejected."""
    raw: Any
    record: Optional[MetricRecord] = None
    error: Optional[InvalidMetricError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MetricValidator:
    """Wraps a validate function so callers get a result instead of an exception."""

    def __init__(self, validate_fn: Callable[..., MetricRecord] = validate_metric, service_name: Optional[str] = None):
        self.validate_fn = validate_fn
        self.service_name = service_name

    def validate(self, client_code: Any, metric_name: Any, metric_data: Any) -> ValidationResult:
        try:
            record = self.validate_fn(client_code, metric_name, metric_data, self.service_name)
        except InvalidMetricError as e:
            return ValidationResult(raw=metric_data, error=e)

        return ValidationResult(raw=metric_data, record=record)
