"""Error taxonomy for metric delivery."""


class MetricError(Exception):
    """Base error for everything raised or published by the metric pipeline."""

    INVALID_METRIC = 1
    FIREHOSE_ERROR = 2
    NO_ENVIRONMENT = 3
    ASSUME_ROLE_ERROR = 4

    def __init__(self, message, code: int):
        # Accept another exception as the message source
        self.message = getattr(message, 'message', None) or str(message)
        self.code = code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, message={self.message!r})"


class InvalidMetricError(MetricError):
    """A raw metric failed structural validation."""

    def __init__(self, message):
        super().__init__(message, MetricError.INVALID_METRIC)


class FirehoseError(MetricError):
    """Firehose delivery failed after the retry budget was consumed."""

    def __init__(self, message):
        super().__init__(message, MetricError.FIREHOSE_ERROR)


class NoEnvironmentError(MetricError):
    """The deployment environment is unset or not recognized."""

    def __init__(self, message='Unknown environment'):
        super().__init__(message, MetricError.NO_ENVIRONMENT)


class AssumeRoleError(MetricError):
    """Delegated credentials could not be obtained from STS."""

    def __init__(self, message):
        super().__init__(message, MetricError.ASSUME_ROLE_ERROR)
