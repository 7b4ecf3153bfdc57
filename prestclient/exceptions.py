"""
prestclient Exceptions
"""

from typing import Optional


class PrestError(Exception):
    """Base exception for prestclient."""

    def __init__(self, message: str, status_code: int = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def __str__(self):
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class ClientNotInitializedError(PrestError):
    """Raised when a request is attempted on a closed client."""

    def __init__(self, message: str = "Client not initialized"):
        super().__init__(message)


class MissingIdentifierError(PrestError):
    """Raised when no table or script name is given."""

    def __init__(self, kind: str = "table"):
        super().__init__(f"{kind} name is required")
        self.kind = kind


class ConfigurationError(PrestError):
    """Raised when base URL or credentials cannot be resolved."""
    pass


class HttpError(PrestError):
    """Raised when the gateway answers with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int = None,
        reason: str = "",
        operation: str = "",
        url: str = "",
        details: dict = None
    ):
        super().__init__(message, status_code=status_code, details=details)
        self.reason = reason
        self.operation = operation
        self.url = url


class AuthenticationError(HttpError):
    """Raised when the gateway rejects the credentials (401/403)."""
    pass


class NotFoundError(HttpError):
    """Raised when the table, schema or script does not exist (404)."""
    pass


class TransportError(PrestError):
    """Raised when the request never produced an HTTP response."""

    def __init__(self, message: str, operation: str = "", url: str = ""):
        super().__init__(message)
        self.operation = operation
        self.url = url


class TimeoutError(TransportError):
    """Raised when the transport gave up waiting for the gateway."""
    pass


class DecodeError(PrestError):
    """Raised when a response body does not match the requested render mode."""

    def __init__(self, message: str, operation: str = "", body: Optional[str] = None):
        super().__init__(message, details={"body": body} if body else None)
        self.operation = operation
