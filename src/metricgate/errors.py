"""MetricGate errors."""


class MetricGateError(Exception):
    """Base error for MetricGate operations."""

    def __init__(self, message: str, code: str = "METRICGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class MetricValidationError(MetricGateError):
    """Metric failed validation and was not stored."""

    def __init__(self, message: str, code: str = "METRIC_INVALID"):
        super().__init__(message, code)


class InvalidCounter(MetricValidationError):
    """Counter delta is negative or out of range."""

    def __init__(self, name: str, value: int):
        super().__init__(f"Counter {name!r} is not valid: {value}", "COUNTER_INVALID")
        self.name = name
        self.value = value


class InvalidGauge(MetricValidationError):
    """Gauge value is not a finite number."""

    def __init__(self, name: str, value: float):
        super().__init__(f"Gauge {name!r} is not valid: {value}", "GAUGE_INVALID")
        self.name = name
        self.value = value


class MalformedEnvelope(MetricValidationError):
    """Envelope is missing required fields or carries the wrong payload."""

    def __init__(self, message: str):
        super().__init__(message, "ENVELOPE_MALFORMED")


class MetricNotFound(MetricGateError):
    """Metric does not exist."""

    def __init__(self, metric_type: str, name: str):
        super().__init__(f"{metric_type} not found: {name}", "METRIC_NOT_FOUND")
        self.metric_type = metric_type
        self.name = name


class MetricIntegrityError(MetricGateError):
    """Envelope hash does not match its content."""

    def __init__(self, metric_id: str):
        super().__init__(f"Invalid metric hash for {metric_id}", "METRIC_HASH_MISMATCH")
        self.metric_id = metric_id


class PersistenceError(MetricGateError):
    """Snapshot could not be read or written."""

    def __init__(self, message: str):
        super().__init__(message, "PERSISTENCE_ERROR")


class TransportError(MetricGateError):
    """Agent could not deliver a report to the server."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, "TRANSPORT_ERROR")
        self.status_code = status_code


class RepositoryError(MetricGateError):
    """Storage backend failed."""

    def __init__(self, message: str = "internal error"):
        super().__init__(message, "REPOSITORY_ERROR")
