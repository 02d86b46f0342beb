import requests
import math
import logging
import os
from typing import Optional, Dict, Any, List, Callable
from pydantic import ValidationError

from src.geocoding.errors import (
    GeocodingError, GeocodingHTTPError, GeocodingTimeout,
    GeocodingUnavailable, NoAddressFound, InvalidCoordinatesError
)
from src.models.place import AddressComponents, Coordinate, EnrichmentResult

# Constants
NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org/reverse")
USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "PlaceEnrichmentApp/1.0 (contact@example.com)")
DEFAULT_LANGUAGE = os.getenv("GEOCODING_LANGUAGE", "de")
REQUEST_TIMEOUT = float(os.getenv("GEOCODING_TIMEOUT", "5"))
RATE_LIMIT_DELAY = float(os.getenv("NOMINATIM_MIN_INTERVAL", "1.0"))

# Get logger
logger = logging.getLogger(__name__)


class NominatimClient:
    """
    Thin proxy in front of the Nominatim reverse endpoint.

    Every request passes through the shared rate limiter first. Failures are
    raised as GeocodingError subclasses so callers can tell a timeout (408)
    from a missing address (404) or a provider status passed through 1:1.
    """

    def __init__(self, rate_limiter, session=None, base_url=NOMINATIM_BASE_URL, user_agent=USER_AGENT):
        self.rate_limiter = rate_limiter
        self.session = session or requests.Session()
        self.base_url = base_url
        self.user_agent = user_agent

    def reverse(self, latitude, longitude, language=DEFAULT_LANGUAGE, timeout=REQUEST_TIMEOUT) -> Dict[str, Any]:
        self.rate_limiter.throttle()

        params = {
            "format": "json",
            "lat": latitude,
            "lon": longitude,
            "addressdetails": 1,
            "accept-language": language
        }

        headers = {
            "User-Agent": self.user_agent
        }

        try:
            response = self.session.get(
                self.base_url,
                params=params,
                headers=headers,
                timeout=timeout
            )
        except requests.Timeout:
            raise GeocodingTimeout(f"Request timed out after {timeout}s")
        except requests.RequestException as e:
            raise GeocodingUnavailable(f"Geocoding service unreachable: {e}")

        if not 200 <= response.status_code < 300:
            raise GeocodingHTTPError(
                f"Geocoding service error: {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            raise GeocodingError("Invalid JSON from geocoding service")

        if not isinstance(data, dict):
            raise GeocodingError("Unexpected payload from geocoding service")

        address = data.get("address")
        if not address:
            raise NoAddressFound("No address data found for coordinates")
        if not isinstance(address, dict):
            raise GeocodingError("Unexpected address section from geocoding service")
        normalize_address(address)

        return data


def validate_coordinates(latitude, longitude):
    """Return (lat, lon) as floats or raise InvalidCoordinatesError."""
    coords = []
    for value in (latitude, longitude):
        if isinstance(value, bool) or value is None:
            raise InvalidCoordinatesError("Valid latitude and longitude are required")
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            raise InvalidCoordinatesError("Invalid coordinates: lat and lon must be numbers")
        if not math.isfinite(number):
            raise InvalidCoordinatesError("Invalid coordinates: lat and lon must be numbers")
        coords.append(number)

    lat, lon = coords
    if lat < -90 or lat > 90 or lon < -180 or lon > 180:
        raise InvalidCoordinatesError("Invalid coordinate values")
    return lat, lon


def normalize_address(raw: Dict[str, Any]) -> AddressComponents:
    """
    Map Nominatim's address section onto AddressComponents.

    Raises GeocodingError when a mapped field is not a string.
    """
    try:
        return AddressComponents(
            street=raw.get("road"),
            house_number=raw.get("house_number"),
            district=raw.get("neighbourhood") or raw.get("suburb"),
            city=raw.get("city") or raw.get("town") or raw.get("village"),
            county=raw.get("county"),
            state=raw.get("state"),
            country=raw.get("country"),
            postcode=raw.get("postcode")
        )
    except ValidationError:
        raise GeocodingError("Malformed address section from geocoding service")


def format_address(components: AddressComponents) -> str:
    parts = []

    if components.street and components.house_number:
        parts.append(f"{components.street} {components.house_number}")
    elif components.street:
        parts.append(components.street)

    for part in (components.district, components.city, components.country):
        if part:
            parts.append(part)

    return ", ".join(parts)


def get_address_from_coordinates(latitude, longitude, client, language=DEFAULT_LANGUAGE,
                                 timeout=REQUEST_TIMEOUT) -> Optional[AddressComponents]:
    """
    Resolve one coordinate pair to a normalized address.

    Provider failures of any kind are logged and returned as None, so a missing
    address and an unavailable provider look the same to the caller.
    """
    try:
        data = client.reverse(latitude, longitude, language=language, timeout=timeout)
        address = normalize_address(data["address"])
    except NoAddressFound:
        logger.warning(f"No address found for coordinates ({latitude}, {longitude})")
        return None
    except GeocodingTimeout:
        logger.error(f"Reverse geocoding request timed out for coordinates ({latitude}, {longitude})")
        return None
    except GeocodingError as e:
        logger.error(f"Reverse geocoding failed for coordinates ({latitude}, {longitude}): {e} (status {e.status_code})")
        return None

    logger.info(f"Successfully geocoded coordinates ({latitude}, {longitude})")
    return address


def resolve_coordinate(coordinate: Coordinate, client, language=DEFAULT_LANGUAGE) -> EnrichmentResult:
    """Resolve one item without letting its failure escape."""
    try:
        address = get_address_from_coordinates(
            coordinate.latitude, coordinate.longitude, client, language=language
        )
        return EnrichmentResult(id=coordinate.id, address=address)
    except Exception as e:
        message = str(e) or "Unknown error"
        logger.error(f"Error geocoding place {coordinate.id}: {message}")
        return EnrichmentResult(id=coordinate.id, address=None, error=message)


def batch_geocode(coordinates: List[Coordinate], client,
                  on_progress: Optional[Callable[[int, int], None]] = None,
                  on_error: Optional[Callable[[str, str], None]] = None,
                  language=DEFAULT_LANGUAGE) -> List[EnrichmentResult]:
    """
    Resolve coordinates one at a time, in input order.

    Returns exactly one result per input item. on_error fires only for items
    whose resolution raised; on_progress fires after every item.
    """
    results = []
    total_coords = len(coordinates)
    logger.info(f"Starting batch geocoding for {total_coords} coordinate pairs")

    for i, coordinate in enumerate(coordinates):
        result = resolve_coordinate(coordinate, client, language=language)
        results.append(result)

        if result.error is not None and on_error:
            on_error(coordinate.id, result.error)

        if on_progress:
            on_progress(i + 1, total_coords)

    success_count = sum(1 for r in results if r.address is not None)
    if total_coords > 0:
        success_rate = (success_count / total_coords) * 100
        logger.info(f"Batch geocoding completed: {success_rate:.1f}% success rate ({success_count}/{total_coords})")

    return results
