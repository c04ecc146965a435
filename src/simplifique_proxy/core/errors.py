"""Exception taxonomy for the proxy.

``AuthError`` and ``ValidationError`` are raised while normalizing the inbound
request and always fire before any outbound call. ``UpstreamError`` covers
everything that goes wrong talking to Simplifique; ``InternalError`` covers the
rest (for example a backend body that is not JSON).
"""


class ProxyError(Exception):
    """Base class; carries the HTTP status and OpenAI error type."""

    status = 500
    error_type = "api_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(ProxyError):
    status = 401
    error_type = "authentication_error"


class ValidationError(ProxyError):
    status = 400
    error_type = "invalid_request_error"


class UpstreamError(ProxyError):
    """Non-2xx answer, timeout or network failure from the backend."""

    status = 502
    error_type = "api_error"

    def __init__(self, message: str, status: int | None = None, body=None):
        super().__init__(message)
        self.upstream_status = status
        self.body = body


class InternalError(ProxyError):
    status = 500
    error_type = "internal_error"


class PayloadTooLargeError(ValidationError):
    status = 413
