"""
Place suggestions around the hotel, along a route, or for a given day.

Provider calls are fanned out concurrently; anything that fails comes back as
an empty search or a locally estimated distance, never as an exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Protocol, Sequence

from domain.models import Coordinates, Day, Place, Trip
from services.detour import ALONG_ROUTE_RADIUS_M, NEARBY_RADIUS_M, resolve_search_area
from services.fanout import CancellationToken, fan_out
from services.geometry import (
    estimate_driving_seconds,
    has_usable_coordinates,
    midpoint,
    point_to_segment_distance,
    spherical_distance,
)
from services.google_maps import DISTANCE_MATRIX_MAX_DESTINATIONS
from services.places_types import DistanceResult, PlaceResult

logger = logging.getLogger(__name__)

MAX_SEARCH_TYPES = 8
MAX_RESULTS_PER_TYPE = 10
MAX_SUGGESTIONS = 6
MAX_RECOMMENDATIONS = 3
FOOD_MIN_RATING = 4.2
DEFAULT_MIN_RATING = 4.0

FOOD_SEARCH_TYPES = {"restaurant", "cafe", "bakery", "food"}
FOOD_PLACE_TYPES = {"restaurant", "cafe", "bakery", "food", "meal_takeaway", "bar"}
NIGHTLIFE_PLACE_TYPES = {"night_club", "bar"}
RELIGIOUS_PLACE_TYPES = {"church", "mosque", "synagogue", "hindu_temple", "place_of_worship"}


class PlacesProvider(Protocol):
    available: bool

    def nearby_search(self, location: Coordinates, radius_m: float, place_type: Optional[str] = None) -> List[PlaceResult]:
        ...

    def distance_matrix(self, origin: Coordinates, destinations: Sequence[Coordinates]) -> List[DistanceResult]:
        ...


@dataclass
class Suggestion:
    place: PlaceResult
    is_food_place: bool = False
    is_nightlife_place: bool = False
    distance_meters: Optional[float] = None
    duration_seconds: Optional[int] = None
    distance_estimated: bool = False


def to_candidate_place(result: PlaceResult, source: str = "Google Nearby") -> Place:
    """An unconfirmed Place the user can accept into the trip."""
    return Place(
        id=f"nearby_{result.place_id}",
        name=result.name,
        category=result.category,
        coordinates=result.coordinates,
        place_id=result.place_id,
        confirmed=False,
        validated=True,
        confidence=1.0,
        source=source,
    )


def _count(types: Iterable[str], wanted: set[str]) -> int:
    return sum(1 for t in types if t in wanted)


def suggest_places(
    client: PlacesProvider,
    center: Coordinates,
    search_types: Sequence[str],
    exclude_place_ids: Iterable[str] = (),
    hotel: Optional[Coordinates] = None,
    token: Optional[CancellationToken] = None,
    limit: int = MAX_SUGGESTIONS,
) -> List[Suggestion]:
    """
    Highly rated places of the requested types near ``center``.

    ``search_types`` is in priority order; repeating a type expresses a
    preference (three or more bar/night_club entries mean a nightlife trip,
    three or more restaurant entries a food trip), which drops religious
    sites and ranks matching places first.
    """
    if not client.available:
        logger.warning("suggest_places: places provider unavailable")
        return []

    priority_types = list(search_types)[:MAX_SEARCH_TYPES]
    nightlife_context = _count(priority_types, NIGHTLIFE_PLACE_TYPES) >= 3
    food_context = _count(priority_types, {"restaurant"}) >= 3
    unique_types = list(dict.fromkeys(priority_types))

    outcomes = fan_out(
        lambda place_type: client.nearby_search(center, NEARBY_RADIUS_M, place_type),
        unique_types,
        token=token,
    )
    results_by_type = {
        place_type: (outcome.value or []) if outcome.ok else []
        for place_type, outcome in zip(unique_types, outcomes)
    }

    excluded = set(exclude_place_ids)
    collected: dict[str, Suggestion] = {}
    for place_type in unique_types:
        min_rating = FOOD_MIN_RATING if place_type in FOOD_SEARCH_TYPES else DEFAULT_MIN_RATING
        rated = [r for r in results_by_type[place_type] if r.rating and r.rating >= min_rating]
        for result in rated[:MAX_RESULTS_PER_TYPE]:
            if result.place_id in collected or result.place_id in excluded:
                continue
            types = set(result.types)
            is_religious = bool(types & RELIGIOUS_PLACE_TYPES)
            if nightlife_context and is_religious:
                logger.debug("Filtering out religious place for nightlife: %s", result.name)
                continue
            if food_context and is_religious and "tourist_attraction" not in types:
                logger.debug("Filtering out religious place for food context: %s", result.name)
                continue
            collected[result.place_id] = Suggestion(
                place=result,
                is_food_place=bool(types & FOOD_PLACE_TYPES),
                is_nightlife_place=bool(types & NIGHTLIFE_PLACE_TYPES),
            )

    def _rank(s: Suggestion) -> tuple:
        if nightlife_context:
            preferred = s.is_nightlife_place
        elif food_context:
            preferred = s.is_food_place
        else:
            preferred = True
        return (0 if preferred else 1, -(s.place.rating or 0.0))

    suggestions = sorted(collected.values(), key=_rank)[:limit]

    origin = hotel if has_usable_coordinates(hotel) else center
    if has_usable_coordinates(origin):
        suggestions = attach_distances(client, origin, suggestions, token=token)
    else:
        logger.info("suggest_places: no usable origin for distance calculation")

    logger.info(
        "suggest_places: %d suggestions (%s context)",
        len(suggestions),
        "nightlife" if nightlife_context else "food" if food_context else "general",
    )
    return suggestions


def attach_distances(
    client: PlacesProvider,
    origin: Coordinates,
    suggestions: Sequence[Suggestion],
    token: Optional[CancellationToken] = None,
) -> List[Suggestion]:
    """
    Fill in driving distance/time from ``origin`` for every suggestion.

    Distance Matrix batches of up to 25 destinations run concurrently. Any
    item without a provider answer gets the straight-line distance and a
    30 km/h drive-time estimate instead.
    """
    batches = [
        list(suggestions[i:i + DISTANCE_MATRIX_MAX_DESTINATIONS])
        for i in range(0, len(suggestions), DISTANCE_MATRIX_MAX_DESTINATIONS)
    ]
    outcomes = fan_out(
        lambda batch: client.distance_matrix(origin, [s.place.coordinates for s in batch]),
        batches,
        token=token,
    )

    enriched: List[Suggestion] = []
    for batch, outcome in zip(batches, outcomes):
        answers = outcome.value if outcome.ok and outcome.value else []
        for idx, suggestion in enumerate(batch):
            answer = answers[idx] if idx < len(answers) else None
            if answer is not None and answer.ok:
                enriched.append(
                    replace(
                        suggestion,
                        distance_meters=answer.distance_meters,
                        duration_seconds=answer.duration_seconds,
                        distance_estimated=False,
                    )
                )
                continue
            straight_line = spherical_distance(origin, suggestion.place.coordinates)
            logger.debug(
                "Fallback distance for %s: %.1fkm", suggestion.place.name, straight_line / 1000
            )
            enriched.append(
                replace(
                    suggestion,
                    distance_meters=straight_line,
                    duration_seconds=estimate_driving_seconds(straight_line),
                    distance_estimated=True,
                )
            )
    return enriched


def suggest_along_route(
    client: PlacesProvider,
    start: Coordinates,
    end: Coordinates,
    exclude_place_ids: Iterable[str] = (),
    limit: int = MAX_RECOMMENDATIONS,
) -> List[PlaceResult]:
    """
    Places near the straight start->end corridor.

    Searches around the midpoint with half the trip length as radius (capped
    at 5 km) and keeps results within 2 km of the segment.
    """
    if not client.available:
        return []
    distance = spherical_distance(start, end)
    radius = min(distance / 2, NEARBY_RADIUS_M)
    if radius <= 0:
        return []
    excluded = set(exclude_place_ids)
    results = client.nearby_search(midpoint(start, end), radius)
    along = [
        r
        for r in results
        if r.place_id not in excluded
        and point_to_segment_distance(r.coordinates, start, end) < ALONG_ROUTE_RADIUS_M
    ]
    return along[:limit]


def suggest_for_day(
    client: PlacesProvider,
    trip: Trip,
    day: Optional[Day] = None,
    limit: int = MAX_RECOMMENDATIONS,
) -> List[PlaceResult]:
    """
    Recommendations for ``day``: around the last stop when the day is a loop
    back to the hotel, otherwise along the hotel -> end destination corridor.
    Places already in the trip are left out.
    """
    if not client.available:
        return []
    area = resolve_search_area(trip, day)
    exclude = [p.place_id for p in trip.places if p.place_id]
    if area.is_corridor:
        return suggest_along_route(client, area.start, area.end, exclude, limit=limit)
    excluded = set(exclude)
    results = client.nearby_search(area.center, area.radius_m)
    return [r for r in results if r.place_id not in excluded][:limit]
