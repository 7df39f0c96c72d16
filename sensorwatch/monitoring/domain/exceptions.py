"""Custom exceptions for the monitoring layer."""


class MonitoringException(Exception):
    """Base exception for all monitoring errors."""

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize monitoring exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DeviceNotFoundError(MonitoringException):
    """Raised when a device is not known to the store."""

    def __init__(self, device_id: str):
        super().__init__(message=f"Device {device_id} not found", details={"device_id": device_id})


class IngestAuthenticationError(MonitoringException):
    """Raised when an ingest key does not match the device."""

    def __init__(self, device_id: str):
        super().__init__(message=f"Invalid ingest key for device {device_id}", details={"device_id": device_id})


class InvalidReadingError(MonitoringException):
    """Raised when a reading batch cannot be evaluated at all (e.g. missing timestamps)."""

    pass


class ConfigurationError(MonitoringException):
    """Raised for device settings that cannot be persisted."""

    pass


class StorageError(MonitoringException):
    """Raised when the backing store fails; callers may retry."""

    def __init__(self, message: str, device_id: str | None = None, original_error: Exception | None = None):
        details = {}
        if device_id:
            details["device_id"] = device_id
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(message, details)
        self.retryable = True
