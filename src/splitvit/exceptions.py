"""Custom exceptions for SplitVit."""


class SplitVitError(Exception):
    """Base exception for all SplitVit errors."""

    pass


class ConfigurationError(SplitVitError):
    """Raised when configuration is invalid or missing."""

    pass


class AuthenticationError(SplitVitError):
    """Raised when sign-in fails or no usable session is available."""

    pass


class APIError(SplitVitError):
    """Base class for API-related errors."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class SupabaseAPIError(APIError):
    """Raised when a backend data request fails."""

    pass


class GroupNotFoundError(SplitVitError):
    """Raised when a group id or share token matches no group."""

    def __init__(self, reference: str, message: str | None = None):
        self.reference = reference
        super().__init__(message or f"No group found for '{reference}'")


class InvalidInputError(SplitVitError):
    """Raised when user-entered form data is incomplete or malformed."""

    pass
