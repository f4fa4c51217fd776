"""Mapbox forward geocoding client."""
import logging
from typing import Tuple

import requests

from config import DEFAULT_GEOCODE_URL
from processor.errors import (
    ConfigurationError,
    DecodeError,
    NotFoundError,
    TransportError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


class MapboxGeocoder:
    """Resolves free-text addresses to coordinates via the Mapbox API."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_GEOCODE_URL,
        timeout: int = 30
    ):
        """
        Initialize the geocoder.

        Args:
            access_token: Mapbox access token
            base_url: Forward geocoding endpoint
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.access_token = access_token
        self.base_url = base_url
        self.timeout = timeout

    def resolve(self, address: str) -> Tuple[float, float]:
        """
        Look up the coordinates of an address.

        The address is sent as-is; the first returned feature wins.

        Args:
            address: Free-text postal address

        Returns:
            Tuple of (longitude, latitude)

        Raises:
            ConfigurationError: If no access token is configured
            TransportError: If the request could not be completed
            UpstreamError: If Mapbox returned a non-200 status
            DecodeError: If the response body is not the expected JSON
            NotFoundError: If Mapbox returned no features
        """
        if not self.access_token:
            raise ConfigurationError('MAPBOX_ACCESS_TOKEN not set')

        params = {'q': address, 'access_token': self.access_token}

        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Error making geocoding request: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(
                f"Geocoding returned non-200 status code: {response.status_code}",
                status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(f"Error decoding geocoding response: {e}") from e

        features = payload.get('features') if isinstance(payload, dict) else None
        if not isinstance(features, list):
            raise DecodeError("Geocoding response has no 'features' array")

        if not features:
            raise NotFoundError(f"No geocoding results for address '{address}'")

        return self._first_coordinates(features)

    def _first_coordinates(self, features: list) -> Tuple[float, float]:
        try:
            longitude, latitude = features[0]['geometry']['coordinates'][:2]
            return float(longitude), float(latitude)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed geocoding feature: {e}") from e
