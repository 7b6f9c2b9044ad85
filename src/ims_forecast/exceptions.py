"""Exceptions raised by the forecast service."""


class ForecastServiceError(Exception):
    """Base class for forecast service errors."""
    pass


class UpstreamUnavailableError(ForecastServiceError):
    """Raised when the IMS API returned no usable data."""
    pass


class ServiceUnavailableError(ForecastServiceError):
    """Raised when station metadata is unavailable from upstream and cache."""
    pass


class StationNotFoundError(ForecastServiceError):
    """Raised when a station id is not in the station list."""

    def __init__(self, station_id: int):
        super().__init__(f"Station {station_id} not found")
        self.station_id = station_id


class FeedUnavailableError(ForecastServiceError):
    """Raised when no downloaded forecast feed data is available."""
    pass


class GeocodingError(ForecastServiceError):
    """Raised when geocoding fails."""
    pass
