"""Custom exceptions for the chart API."""


class ChartAPIException(Exception):
    """Base exception for all API errors."""
    pass


class ChartCalculationError(ChartAPIException):
    """Raised when chart calculation fails."""
    pass


class InvalidCoordinatesError(ChartAPIException):
    """Raised when coordinates are invalid."""
    pass


class InvalidTimezoneError(ChartAPIException):
    """Raised when timezone is invalid."""
    pass


class EphemerisUnavailableError(ChartAPIException):
    """Raised when the configured position source cannot be used."""
    pass


class ProfileNotFoundError(ChartAPIException):
    """Raised when a saved profile does not exist."""
    pass
