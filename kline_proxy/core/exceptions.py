"""
Custom Exceptions Module

Defines all custom exceptions used throughout the kline proxy.
All exceptions inherit from KlineProxyError. Each one knows the HTTP status
and the ``error`` label it is reported with, so the API layer can turn any
of them into an error envelope without branching on type.
"""

from typing import Optional, Dict, Any


class KlineProxyError(Exception):
    """
    Base exception for all kline proxy errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human readable message surfaced to the caller
            details: Additional context information
            original_exception: Original exception if wrapping another error
        """
        self.message = message
        self.details = details or {}
        self.original_exception = original_exception

        full_message = message or self.error
        if details:
            details_str = ", ".join(f"{k}={v}" for k, v in details.items())
            full_message = f"{full_message} ({details_str})"

        super().__init__(full_message)


# ============================================================================
# Routing Errors
# ============================================================================

class MethodNotAllowedError(KlineProxyError):
    """HTTP verb other than GET/OPTIONS"""

    status_code = 405
    error = "Method Not Allowed"

    def __init__(self, method: str = ""):
        super().__init__(
            message="Use GET requests only.",
            details={"method": method} if method else None
        )


class NotFoundError(KlineProxyError):
    """Path is not one of the proxy endpoints"""

    status_code = 404
    error = "Not Found"

    def __init__(self, path: str = ""):
        super().__init__(
            message=(
                "Use /kline or /klines with query params: "
                "symbol, interval, limit, startTime, endTime"
            ),
            details={"path": path} if path else None
        )


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(KlineProxyError):
    """Client input failed a local check; never reaches upstream"""

    status_code = 400


class InvalidSymbolError(ValidationError):
    """Symbol does not match ^[A-Z0-9]{5,20}$"""

    error = "Invalid symbol format"


class InvalidIntervalError(ValidationError):
    """Interval is not one of the supported kline intervals"""

    error = "Invalid interval"


class InvalidRangeError(ValidationError):
    """startTime is after endTime"""

    error = "startTime must be <= endTime"


# ============================================================================
# Upstream Errors
# ============================================================================

class UpstreamError(KlineProxyError):
    """Upstream answered with a non-2xx status"""

    status_code = 502
    error = "Upstream error"

    def __init__(self, upstream_status: int, body: Any):
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(details={"status": upstream_status})


class FetchFailureError(KlineProxyError):
    """The outbound call could not complete"""

    status_code = 502
    error = "Failed to fetch Binance kline data"


# ============================================================================
# Utility Functions
# ============================================================================

def wrap_exception(
    original_exception: BaseException,
    custom_exception_class: type,
    message: Optional[str] = None,
    **details
) -> KlineProxyError:
    """
    Wrap an exception in a custom exception class.

    Args:
        original_exception: The original exception
        custom_exception_class: The custom exception class to wrap with
        message: Optional custom message, defaults to str(original_exception)
        **details: Additional details

    Returns:
        Custom exception instance

    Example:
        try:
            await session.get(url)
        except aiohttp.ClientError as e:
            raise wrap_exception(e, FetchFailureError, url=url) from e
    """
    error_message = message or str(original_exception)

    return custom_exception_class(
        message=error_message,
        details=details,
        original_exception=original_exception
    )
