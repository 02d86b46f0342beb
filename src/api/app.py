from fastapi import FastAPI, APIRouter, HTTPException, Depends, Body, Request
from sqlalchemy.orm import Session
from datetime import datetime, timezone
import logging
from typing import Optional

from src.db.database import get_db, PlaceStore, StoreError
from src.geocoding.errors import (
    GeocodingError, GeocodingHTTPError, GeocodingTimeout, NoAddressFound, InvalidCoordinatesError
)
from src.geocoding.nominatim import (
    NominatimClient, DEFAULT_LANGUAGE, RATE_LIMIT_DELAY,
    validate_coordinates, normalize_address, format_address
)
from src.geocoding.rate_limiter import RateLimiter
from src.models.place import (
    EnrichRequest, EnrichResponse, CandidateListResponse, CandidatePlace, LookupRequest, LookupResponse
)
from src.services.enrichment import enrich_places, list_candidates

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

# Lookups are interactive, so they get a longer deadline than enrichment calls
LOOKUP_TIMEOUT = 10

router = APIRouter()


def get_geocoding_client(request: Request) -> NominatimClient:
    return request.app.state.geocoding_client


def get_store(db: Session = Depends(get_db)) -> PlaceStore:
    return PlaceStore(db)


@router.get("/")
def read_root():
    return {"message": "Welcome to the Place Address Enrichment API"}


@router.post("/api/geocode/enrich", response_model=EnrichResponse, response_model_exclude_none=True)
def enrich_places_endpoint(
    payload: Optional[EnrichRequest] = Body(None),
    store: PlaceStore = Depends(get_store),
    client: NominatimClient = Depends(get_geocoding_client)
):
    """
    Fill in missing address fields for the given places.

    Partial failures are reported in the response body; the status stays 200
    once record-level processing has started.
    """
    if payload is None or not isinstance(payload.place_ids, list) or not payload.place_ids:
        raise HTTPException(status_code=400, detail="placeIds array is required")

    # Ids are opaque: strings pass through, integers are taken as their string form
    place_ids = []
    for place_id in payload.place_ids:
        if isinstance(place_id, bool) or not isinstance(place_id, (str, int)):
            raise HTTPException(status_code=400, detail="placeIds must contain string or integer ids")
        place_ids.append(str(place_id))

    try:
        report = enrich_places(place_ids, store, client, batch_mode=payload.batch_mode)
    except StoreError as e:
        logger.error(f"Error fetching places: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch places")
    except Exception as e:
        logger.error(f"Geocoding API error: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(report.message)
    return report.to_response()


@router.get("/api/geocode/enrich", response_model=CandidateListResponse)
def get_places_needing_address(
    store: PlaceStore = Depends(get_store),
    limit: int = 10,
    offset: int = 0
):
    try:
        places, total = list_candidates(store, limit=limit, offset=offset)
    except StoreError as e:
        logger.error(f"Error fetching places needing geocoding: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch places")

    return {
        "places": [CandidatePlace.model_validate(place) for place in places],
        "total": total,
        "limit": limit,
        "offset": offset
    }


@router.get("/api/geocoding/reverse")
def reverse_geocode_proxy(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    language: str = DEFAULT_LANGUAGE,
    client: NominatimClient = Depends(get_geocoding_client)
):
    """Proxy a reverse geocoding request, keeping the provider's failure status."""
    if not lat or not lon:
        raise HTTPException(status_code=400, detail="Missing required parameters: lat and lon")

    try:
        latitude, longitude = validate_coordinates(lat, lon)
    except InvalidCoordinatesError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return client.reverse(latitude, longitude, language=language)
    except GeocodingError as e:
        logger.error(f"Reverse geocoding failed: {str(e)}")
        raise HTTPException(status_code=e.status_code, detail=str(e))


def _lookup(latitude, longitude, language, client):
    """Resolve validated coordinates into the lookup response body."""
    logger.info(f"Looking up address for coordinates: {latitude}, {longitude}")

    try:
        data = client.reverse(
            latitude, longitude,
            language=language or DEFAULT_LANGUAGE,
            timeout=LOOKUP_TIMEOUT
        )
        address = normalize_address(data["address"])
    except (NoAddressFound, GeocodingHTTPError) as e:
        logger.warning(f"No address information for ({latitude}, {longitude}): {str(e)}")
        raise HTTPException(status_code=404, detail="No address information found for these coordinates")
    except GeocodingTimeout:
        raise HTTPException(status_code=408, detail="Request timed out")
    except GeocodingError as e:
        logger.error(f"Geocoding service error: {str(e)}")
        raise HTTPException(status_code=503, detail="Geocoding service error")

    return {
        "coordinates": {"latitude": latitude, "longitude": longitude},
        "address": address,
        "formatted": format_address(address),
        "timestamp": datetime.now(timezone.utc)
    }


@router.post("/api/geocode/lookup", response_model=LookupResponse)
def lookup_address(
    payload: LookupRequest,
    client: NominatimClient = Depends(get_geocoding_client)
):
    numeric = (int, float)
    if (not isinstance(payload.latitude, numeric) or isinstance(payload.latitude, bool)
            or not isinstance(payload.longitude, numeric) or isinstance(payload.longitude, bool)):
        raise HTTPException(status_code=400, detail="Valid latitude and longitude are required")

    try:
        latitude, longitude = validate_coordinates(payload.latitude, payload.longitude)
    except InvalidCoordinatesError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _lookup(latitude, longitude, payload.language, client)


@router.get("/api/geocode/lookup", response_model=LookupResponse)
def lookup_address_by_query(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    client: NominatimClient = Depends(get_geocoding_client)
):
    if not lat or not lng:
        raise HTTPException(status_code=400, detail="lat and lng query parameters are required")

    try:
        latitude, longitude = validate_coordinates(lat, lng)
    except InvalidCoordinatesError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _lookup(latitude, longitude, None, client)


def create_app(client: Optional[NominatimClient] = None) -> FastAPI:
    application = FastAPI(
        title="Place Address Enrichment API",
        description="Fills in missing place addresses via rate-limited reverse geocoding",
        version="1.0.0"
    )
    # One client and one rate limiter for the whole process
    application.state.geocoding_client = client or NominatimClient(RateLimiter(RATE_LIMIT_DELAY))
    application.include_router(router)
    return application


app = create_app()
