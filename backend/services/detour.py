"""
Detour scoring: decide whether a place lies along a route and what it costs.

The cost is a fixed heuristic (2 minutes per kilometer of offset from the
route), not a routed estimate. That keeps scoring synchronous and cheap; the
working sets are tens of places.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from domain.models import Coordinates, Day, Place, RoutePlace, RouteStep, Trip
from services.errors import AnchorMissingError
from services.geometry import has_usable_coordinates, point_to_segment_distance, round_half_up

logger = logging.getLogger(__name__)

ALONG_ROUTE_RADIUS_M = 2000.0
NEARBY_RADIUS_M = 5000.0
DETOUR_MINUTES_PER_KM = 2


@dataclass(frozen=True)
class PlaceAlongRoute:
    place: Place
    detour_cost: int  # minutes
    distance_from_route: float  # meters
    order: int  # index of the closest route step


@dataclass(frozen=True)
class SearchArea:
    """
    Where to look for suggestions for a day.

    ``center`` is set for closed-loop days (start == end); otherwise the
    search follows the corridor between ``start`` and ``end``.
    """
    radius_m: float
    center: Optional[Coordinates] = None
    start: Optional[Coordinates] = None
    end: Optional[Coordinates] = None

    @property
    def is_corridor(self) -> bool:
        return self.center is None


def detour_cost_minutes(distance_m: float) -> int:
    """Minutes of detour attributed to a perpendicular offset of ``distance_m``."""
    return round_half_up(distance_m / 1000 * DETOUR_MINUTES_PER_KM)


def score_place(
    place: Place,
    steps: Sequence[RouteStep],
    radius_m: float = ALONG_ROUTE_RADIUS_M,
) -> Optional[PlaceAlongRoute]:
    """
    Score one place against a route's steps.

    Returns None when the place has no coordinates, the route has no steps or
    the place sits at or beyond ``radius_m`` from every step.
    """
    if not has_usable_coordinates(place) or not steps:
        return None

    min_distance = float("inf")
    closest_step = 0
    for index, step in enumerate(steps):
        distance = point_to_segment_distance(place.coordinates, step.start, step.end)
        if distance < min_distance:
            min_distance = distance
            closest_step = index

    if min_distance >= radius_m:
        return None
    return PlaceAlongRoute(
        place=place,
        detour_cost=detour_cost_minutes(min_distance),
        distance_from_route=min_distance,
        order=closest_step,
    )


def find_places_along_route(
    places: Iterable[Place],
    steps: Sequence[RouteStep],
    radius_m: float = ALONG_ROUTE_RADIUS_M,
) -> List[PlaceAlongRoute]:
    """
    Keep the places within ``radius_m`` of the route, ordered by position
    along the route (step index). Places matched to the same step keep the
    order they were given in.
    """
    matches: List[PlaceAlongRoute] = []
    considered = 0
    for place in places:
        considered += 1
        match = score_place(place, steps, radius_m)
        if match is not None:
            matches.append(match)
    matches.sort(key=lambda m: m.order)
    logger.debug(
        "find_places_along_route: %d/%d places within %.0fm of %d steps",
        len(matches),
        considered,
        radius_m,
        len(steps),
    )
    return matches


def build_route_places(matches: Iterable[PlaceAlongRoute]) -> List[RoutePlace]:
    return [
        RoutePlace(place_id=m.place.id, order=m.order, detour_cost=m.detour_cost)
        for m in matches
    ]


def last_located_place(trip: Trip, day: Optional[Day]) -> Optional[Place]:
    if day is None:
        return None
    for place_id in reversed(day.places):
        place = trip.place_by_id(place_id)
        if place is not None and place.confirmed and has_usable_coordinates(place):
            return place
    return None


def resolve_search_area(trip: Trip, day: Optional[Day] = None) -> SearchArea:
    """
    Decide where to search for places to add to ``day``.

    The day starts at the hotel and ends at its end destination (or the hotel
    again). When both ends coincide there is no corridor to follow, so the
    search is centred on the last visited place of the day, or the hotel when
    the day is still empty, with the along-route radius.
    """
    hotel = trip.hotel.coordinates
    start = hotel
    end = day.end_destination.coordinates if day and day.end_destination else hotel

    if start == end:
        last_place = last_located_place(trip, day)
        if last_place is not None:
            return SearchArea(radius_m=ALONG_ROUTE_RADIUS_M, center=last_place.coordinates)
        if not has_usable_coordinates(hotel):
            raise AnchorMissingError("Hotel location is required to search around it")
        return SearchArea(radius_m=ALONG_ROUTE_RADIUS_M, center=hotel)

    if not has_usable_coordinates(start):
        raise AnchorMissingError("Hotel location is required to search along the day's route")
    return SearchArea(radius_m=ALONG_ROUTE_RADIUS_M, start=start, end=end)
