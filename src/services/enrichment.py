"""
Address enrichment for places missing street or city information.

A single linear pass: select candidates, resolve each one (batch or single
mode), write non-null addresses back one record at a time and report how many
succeeded. Failures are turned into strings in the report, never raised.
"""
import logging
from typing import List, Iterable

from src.geocoding.nominatim import DEFAULT_LANGUAGE, batch_geocode, resolve_coordinate
from src.models.place import BatchReport, Coordinate, LocationRecord

logger = logging.getLogger(__name__)


def select_candidates(records: Iterable[LocationRecord]) -> List[LocationRecord]:
    return [record for record in records if record.needs_address]


def _to_coordinates(places: List[LocationRecord]) -> List[Coordinate]:
    return [Coordinate(id=p.id, latitude=p.latitude, longitude=p.longitude) for p in places]


def enrich_places(place_ids, store, client, batch_mode=False, language=DEFAULT_LANGUAGE) -> BatchReport:
    """
    Enrich the given places with addresses from the geocoding provider.

    Args:
        place_ids: Ids of the places to consider
        store: Record store exposing select(ids) and update(id, fields)
        client: Geocoding client used by the resolver
        batch_mode: Use the batch orchestrator with progress/error callbacks
        language: Locale hint passed to the provider

    Raises:
        StoreError: if the initial record fetch fails
    """
    places = store.select(place_ids)

    if not places:
        return BatchReport(message="No places found")

    places_to_enrich = select_candidates(places)
    if not places_to_enrich:
        return BatchReport(message="All places already have address information")

    total = len(places_to_enrich)
    logger.info(f"Starting geocoding for {total} places...")

    errors = []
    coordinates = _to_coordinates(places_to_enrich)

    if batch_mode and total > 1:
        def on_progress(completed, count):
            logger.info(f"Geocoding progress: {completed}/{count}")

        def on_error(place_id, message):
            errors.append(f"Place {place_id}: {message}")

        results = batch_geocode(
            coordinates, client,
            on_progress=on_progress,
            on_error=on_error,
            language=language
        )
    else:
        results = []
        for coordinate in coordinates:
            result = resolve_coordinate(coordinate, client, language=language)
            if result.error is not None:
                errors.append(f"Place {result.id}: {result.error}")
            results.append(result)

    enriched_count = 0
    for result in results:
        fields = result.address.to_update_fields() if result.address is not None else {}
        if fields:
            if store.update(result.id, fields):
                logger.info(f"Successfully updated place {result.id}")
                enriched_count += 1
            else:
                errors.append(f"Failed to update place {result.id}")
        elif result.error is None:
            logger.info(f"No address data returned for place {result.id}")
            errors.append(f"No address found for place {result.id}")

    return BatchReport(
        message=f"Successfully enriched {enriched_count} out of {total} places",
        enriched_count=enriched_count,
        total=total,
        errors=errors
    )


def list_candidates(store, limit=10, offset=0):
    """Return (places, total) for places still missing street or city."""
    places = store.find_candidates(limit=limit, offset=offset)
    total = store.count_candidates()
    return places, total
