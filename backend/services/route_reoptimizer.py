"""
Re-order a day's remaining stops with a nearest-neighbor walk.

O(n^2) and not globally optimal, which is fine for the handful of stops a day
holds. Visited stops keep their order and stay in front.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from domain.models import Coordinates, Place
from services.geometry import has_usable_coordinates, spherical_distance

logger = logging.getLogger(__name__)


def resolve_anchor(hotel: Optional[Coordinates], remaining: Sequence[Place]) -> Optional[Coordinates]:
    """The hotel when it is located, else the first remaining place that is."""
    if has_usable_coordinates(hotel):
        return hotel
    for place in remaining:
        if has_usable_coordinates(place):
            return place.coordinates
    return None


def order_by_nearest_neighbor(places: Sequence[Place], anchor: Coordinates) -> List[Place]:
    """
    Greedy tour from ``anchor``: always go to the closest unvisited place.

    Ties go to the place listed first. Places without coordinates cannot be
    ranked and are appended at the end in their original order.
    """
    unvisited = [p for p in places if has_usable_coordinates(p)]
    unlocated = [p for p in places if not has_usable_coordinates(p)]

    ordered: List[Place] = []
    current = anchor
    while unvisited:
        nearest_index = 0
        nearest_distance = float("inf")
        for index, place in enumerate(unvisited):
            distance = spherical_distance(current, place.coordinates)
            if distance < nearest_distance:
                nearest_distance = distance
                nearest_index = index
        nearest = unvisited.pop(nearest_index)
        ordered.append(nearest)
        current = nearest.coordinates

    return ordered + unlocated


def reoptimize(
    completed: Sequence[Place],
    remaining: Sequence[Place],
    hotel: Optional[Coordinates] = None,
) -> List[Place]:
    """
    Return ``completed ++ reordered(remaining)``.

    The walk starts at the hotel, or at the first located remaining place
    when the hotel has no coordinates. With fewer than two located remaining
    places there is nothing to improve and the input order is kept.
    """
    eligible = [p for p in remaining if has_usable_coordinates(p)]
    if len(eligible) < 2:
        logger.debug("reoptimize: %d located remaining places; keeping order", len(eligible))
        return list(completed) + list(remaining)

    anchor = resolve_anchor(hotel, remaining)
    reordered = order_by_nearest_neighbor(remaining, anchor)
    logger.debug(
        "reoptimize: reordered %d remaining places after %d completed",
        len(reordered),
        len(completed),
    )
    return list(completed) + reordered
