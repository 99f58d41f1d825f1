"""Custom exceptions for the oracle application."""


class OracleException(Exception):
    """Base class for oracle exceptions with HTTP status code.

    Subclasses define their own status_code and error_code so the
    application can render them consistently.
    """
    status_code: int = 500
    error_code: str = "oracle_error"

    def __init__(self, message: str = "Oracle error"):
        self.message = message
        super().__init__(message)


class ValidationError(OracleException):
    """Raised when a request is malformed (bad mode, quantity or address).

    Maps to HTTP 400 Bad Request. Never retried.
    """
    status_code = 400
    error_code = "validation_error"


class UnknownModeError(ValidationError):
    """Raised when an inference mode is not in the cost table."""
    error_code = "unknown_mode"

    def __init__(self, mode: object):
        self.mode = mode
        super().__init__(f"Unknown mode: {mode!r}")


class InvalidQuantityError(ValidationError):
    """Raised when quantity is not a positive, finite integer."""
    error_code = "invalid_quantity"

    def __init__(self, quantity: object):
        self.quantity = quantity
        super().__init__(f"quantity must be a positive integer, got {quantity!r}")


class InvalidAddressError(ValidationError):
    """Raised when a user identifier is not a valid account address."""
    error_code = "invalid_address"

    def __init__(self, address: object, field: str = "user"):
        self.address = address
        self.field = field
        super().__init__(f"valid {field} address required")


class ExternalReadError(OracleException):
    """Raised when ledger state cannot be read.

    The authorization engine recovers from it by degrading to safe
    defaults; other callers see HTTP 502 Bad Gateway.
    """
    status_code = 502
    error_code = "ledger_unavailable"


class NotEligibleError(OracleException):
    """Raised when a privileged grant is requested for an ineligible user.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400
    error_code = "not_eligible"


class ConfigurationError(OracleException):
    """Raised when the service is missing required configuration.

    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503
    error_code = "not_configured"
