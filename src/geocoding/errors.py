"""Geocoding failures, each carrying the HTTP status the proxy layer reports."""


class GeocodingError(Exception):
    """Base class for provider failures. Malformed payloads use it directly."""

    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class GeocodingHTTPError(GeocodingError):
    """Provider answered with a non-success status; the status is kept as-is."""


class GeocodingTimeout(GeocodingError):
    status_code = 408


class NoAddressFound(GeocodingError):
    status_code = 404


class GeocodingUnavailable(GeocodingError):
    status_code = 503


class InvalidCoordinatesError(ValueError):
    """Raised for coordinates that are missing, non-numeric or out of range."""
