from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from domain.models import Coordinates, Day, Place, Route, Trip
from services.day_clusterer import IdFactory, cluster_days
from services.detour import (
    ALONG_ROUTE_RADIUS_M,
    NEARBY_RADIUS_M,
    build_route_places,
    find_places_along_route,
    last_located_place,
)
from services.errors import AnchorMissingError
from services.geometry import has_usable_coordinates, round_half_up, spherical_distance
from services.places_types import DirectionsResult, ProviderStatus
from services.route_reoptimizer import reoptimize

logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 3
MAX_NEXT_STOPS = 3


def build_route(
    trip: Trip,
    start: Coordinates,
    end: Coordinates,
    directions: DirectionsResult,
    start_label: Optional[str] = None,
    end_label: Optional[str] = None,
) -> Tuple[Optional[Route], ProviderStatus]:
    """
    Build a Route from a directions answer and match the trip's confirmed
    places against its steps.

    Returns ``(None, status)`` when the provider did not produce a route.
    """
    if not directions.ok:
        logger.warning(
            "build_route: directions failed with %s (%s)",
            directions.status.value,
            directions.error_message or "",
        )
        return None, directions.status

    matches = find_places_along_route(trip.confirmed_places, directions.steps, ALONG_ROUTE_RADIUS_M)
    route = Route(
        id=Route.generate_id(),
        start=start,
        end=end,
        places=build_route_places(matches),
        steps=list(directions.steps),
        base_duration=round_half_up(directions.duration_seconds / 60),
        polyline=directions.polyline,
        start_label=start_label,
        end_label=end_label,
    )
    logger.info(
        "build_route: %s with %d steps, %d places along it, %d min",
        route.id,
        len(route.steps),
        len(route.places),
        route.base_duration,
    )
    return route, ProviderStatus.OK


def plan_trip_days(trip: Trip, id_factory: Optional[IdFactory] = None) -> List[Day]:
    """Cluster the trip's places into days, unless it already has days."""
    if trip.days:
        logger.info("plan_trip_days: trip %s already has %d days; leaving them", trip.id, len(trip.days))
        return list(trip.days)
    return cluster_days(
        trip.places,
        trip.routes,
        start_date=trip.start_date,
        end_date=trip.end_date,
        places_per_day=trip.places_per_day,
        id_factory=id_factory,
    )


def reoptimize_day(
    trip: Trip,
    day_id: str,
    completed_ids: Iterable[str] = (),
    skipped_ids: Iterable[str] = (),
) -> Day:
    """
    Re-order what is left of a day after the traveller has started it.

    The new sequence is: completed places (in day order), the remaining places
    in nearest-neighbor order from the hotel, then skipped places so they can
    still be brought back. Raises KeyError for an unknown day.
    """
    day = trip.day_by_id(day_id)
    if day is None:
        raise KeyError(day_id)

    completed = set(completed_ids)
    skipped = set(skipped_ids) - completed

    done_ids = [pid for pid in day.places if pid in completed]
    skipped_in_day = [pid for pid in day.places if pid in skipped]

    remaining: List[Place] = []
    unknown: List[str] = []
    for pid in day.places:
        if pid in completed or pid in skipped:
            continue
        place = trip.place_by_id(pid)
        if place is None:
            unknown.append(pid)
        else:
            remaining.append(place)
    if unknown:
        logger.warning("reoptimize_day: day %s references unknown places %s", day_id, unknown)

    reordered = reoptimize([], remaining, trip.hotel.coordinates)
    new_places = done_ids + [p.id for p in reordered] + unknown + skipped_in_day
    return replace(day, places=new_places)


def find_nearby_alternatives(
    trip: Trip,
    place: Place,
    day: Optional[Day] = None,
    excluded_ids: Iterable[str] = (),
    radius_m: float = NEARBY_RADIUS_M,
    limit: int = MAX_ALTERNATIVES,
) -> List[Place]:
    """Confirmed places of the same category near ``place`` that the day does not use yet."""
    if not has_usable_coordinates(place):
        return []
    skip = set(excluded_ids) | {place.id}
    if day is not None:
        skip.update(day.places)

    scored: List[Tuple[float, Place]] = []
    for candidate in trip.confirmed_places:
        if candidate.id in skip or candidate.category != place.category:
            continue
        if not has_usable_coordinates(candidate):
            continue
        distance = spherical_distance(place.coordinates, candidate.coordinates)
        if distance <= radius_m:
            scored.append((distance, candidate))

    scored.sort(key=lambda pair: pair[0])
    return [candidate for _, candidate in scored[:limit]]


def rank_next_stop_candidates(
    trip: Trip,
    day: Optional[Day],
    candidates: Sequence[Place],
    radius_m: float = ALONG_ROUTE_RADIUS_M,
    limit: int = MAX_NEXT_STOPS,
) -> List[Place]:
    """
    Pick the candidates that fit best between where the day is now and where
    it ends.

    A candidate qualifies when it is within ``radius_m`` of the day's last
    place (hotel when empty) or of its end destination (hotel when unset);
    qualifying candidates are ranked by the sum of both distances.
    """
    hotel = trip.hotel.coordinates
    last_place = last_located_place(trip, day)
    current = last_place.coordinates if last_place is not None else hotel
    end = day.end_destination.coordinates if day and day.end_destination else hotel
    if not has_usable_coordinates(current) or not has_usable_coordinates(end):
        raise AnchorMissingError("Hotel location is required to rank next stops")

    in_day = set(day.places) if day is not None else set()
    scored: List[Tuple[float, Place]] = []
    for candidate in candidates:
        if candidate.id in in_day or not has_usable_coordinates(candidate):
            continue
        from_current = spherical_distance(current, candidate.coordinates)
        to_end = spherical_distance(candidate.coordinates, end)
        if from_current <= radius_m or to_end <= radius_m:
            scored.append((from_current + to_end, candidate))

    scored.sort(key=lambda pair: pair[0])
    logger.debug("rank_next_stop_candidates: %d of %d candidates qualify", len(scored), len(candidates))
    return [candidate for _, candidate in scored[:limit]]
