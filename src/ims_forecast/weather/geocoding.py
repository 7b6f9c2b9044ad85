"""Geocoding of city names for nearest-station lookup."""

import logging
from functools import lru_cache
from typing import Tuple

from geopy.exc import GeocoderTimedOut, GeocoderUnavailable
from geopy.geocoders import Nominatim

from ims_forecast.config import GEOCODING_USER_AGENT
from ims_forecast.exceptions import GeocodingError

logger = logging.getLogger(__name__)


class GeocodingService:
    """Resolves free-text place names to coordinates within Israel."""

    def __init__(self, user_agent: str = GEOCODING_USER_AGENT, country_code: str = "il"):
        """Initialize the geocoding service.

        Args:
            user_agent: User-Agent sent to Nominatim
            country_code: ISO country code the search is restricted to
        """
        self.geolocator = Nominatim(user_agent=user_agent)
        self.country_code = country_code

    @lru_cache(maxsize=1000)
    def forward_geocode(self, city: str) -> Tuple[float, float]:
        """Convert city name to coordinates.

        Args:
            city: City name to geocode

        Returns:
            Tuple of (latitude, longitude)

        Raises:
            GeocodingError: If geocoding fails
        """
        try:
            logger.info(f"Geocoding city: {city}")
            location = self.geolocator.geocode(city, country_codes=self.country_code)

            if not location:
                raise GeocodingError(f"City '{city}' not found")

            lat, lon = location.latitude, location.longitude
            logger.info(f"Geocoded '{city}' to ({lat}, {lon})")
            return lat, lon

        except GeocodingError:
            raise
        except (GeocoderUnavailable, GeocoderTimedOut) as e:
            logger.error(f"Geocoding service unavailable for '{city}': {e}")
            raise GeocodingError("Geocoding service temporarily unavailable")
        except Exception as e:
            logger.error(f"Unexpected error geocoding '{city}': {e}")
            raise GeocodingError(f"Failed to geocode city: {e}")
