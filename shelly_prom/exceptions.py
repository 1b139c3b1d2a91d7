"""
Exporter Exceptions - Typed failures raised while polling plugs and loading config.
"""
from typing import Any, Dict, Optional


class ExporterException(Exception):
    """
    Base exception for all exporter errors.

    Carries a machine-readable code and a details mapping so failures
    can be logged or rendered consistently.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            'error': self.code,
            'message': self.message,
            'details': self.details
        }


class ConfigError(ExporterException):
    """Raised when the exporter configuration cannot be located, read or parsed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(
            message=message,
            code='CONFIG_ERROR',
            details={'path': path}
        )


class FetchError(ExporterException):
    """
    Base class for a failed status fetch against a single plug.

    A fetch error is always contained to one device and one tick.
    """


class TransportError(FetchError):
    """Raised when the request never produced an HTTP response (timeout, DNS, refused)."""

    def __init__(self, cause: BaseException, timeout: bool = False):
        self.cause = cause
        self.timeout = timeout
        reason = "request timed out" if timeout else f"transport error: {cause}"
        super().__init__(
            message=reason,
            code='TRANSPORT_ERROR',
            details={'timeout': timeout, 'cause': repr(cause)}
        )


class BadStatus(FetchError):
    """Raised when the device answered with a non-2xx status code."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(
            message=f"unexpected status code: {status_code}",
            code='BAD_STATUS',
            details={'status_code': status_code}
        )


class DecodeError(FetchError):
    """Raised when the response body does not have the expected status shape."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(
            message=f"malformed status response: {cause}",
            code='DECODE_ERROR',
            details={'cause': str(cause)}
        )
