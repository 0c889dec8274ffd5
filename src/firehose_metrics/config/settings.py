"""Configuration settings using Pydantic for validation."""

from typing import Any, Optional
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings
import os
import re


SETTLEMENT_MODES = ('per_batch', 'all_or_nothing')


class DeliveryConfig(BaseModel):
    """Firehose delivery configuration."""
    batch_limit: int = Field(default=500, description="Records per PutRecordBatch call")
    max_attempts: int = Field(default=3, description="Total delivery attempts per add call")
    settlement: str = Field(default="per_batch", description="Retry policy: per_batch or all_or_nothing")
    connect_timeout_seconds: float = Field(default=0.5, description="Firehose connect timeout")
    read_timeout_seconds: float = Field(default=5.0, description="Firehose read timeout")

    @validator('batch_limit')
    def validate_batch_limit(cls, v):
        # PutRecordBatch accepts at most 500 records
        if v < 1 or v > 500:
            raise ValueError("batch_limit must be between 1 and 500")
        return v

    @validator('max_attempts')
    def validate_max_attempts(cls, v):
        if v < 1:
            raise ValueError("max_attempts must be at least 1")
        return v

    @validator('settlement')
    def validate_settlement(cls, v):
        if v not in SETTLEMENT_MODES:
            raise ValueError("Settlement must be 'per_batch' or 'all_or_nothing'")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")
    output: str = Field(default="stdout", description="Log output destination")


class MetricSettings(BaseSettings):
    """Metric pipeline settings, read from METRIC_* environment variables."""

    service_name: Optional[str] = Field(default=None, description="Service identity, used as STS session name")
    environment: Optional[str] = Field(default=None, description="Environment: local, beta, qa, prod")
    role_arn: Optional[str] = Field(default=None, description="Role to assume for Firehose access")
    region: Optional[str] = Field(default=None, description="AWS region (boto3 default chain when unset)")

    delivery_stream_prefix: str = Field(default="MetricsFirehose", description="Stream name prefix")
    delivery_stream_name: Optional[str] = Field(default=None, description="Explicit stream name override")
    session_duration_seconds: int = Field(default=1800, description="AssumeRole session duration")

    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @validator('role_arn', 'delivery_stream_name', 'environment')
    def blank_as_unset(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    class Config:
        env_prefix = "METRIC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"
        case_sensitive = False


# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r'\$\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*(?::-([^}]*))?\}')


def _expand(match) -> str:
    name, fallback = match.group(1), match.group(2)
    value = os.getenv(name, fallback)
    if value is None:
        raise ValueError(f"Config references ${{{name}}} but it is not set and has no fallback")
    return value


def substitute_env_vars(obj: Any) -> Any:
    """Expand ``${NAME}`` and ``${NAME:-fallback}`` in every string of a loaded config tree."""
    if isinstance(obj, str):
        return _ENV_REF.sub(_expand, obj)
    if isinstance(obj, dict):
        return {key: substitute_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [substitute_env_vars(item) for item in obj]
    return obj


def load_settings(config_file: Optional[str] = None) -> MetricSettings:
    """
    Build settings from METRIC_* variables, overlaid by an optional YAML file.

    Raises:
        FileNotFoundError: If ``config_file`` is given but missing
        ValueError: If the file references an unset variable without fallback
    """
    if not config_file:
        return MetricSettings()

    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Metric config file not found: {config_file}")

    import yaml

    with open(config_file, 'r') as f:
        values = yaml.safe_load(f) or {}

    return MetricSettings(**substitute_env_vars(values))
