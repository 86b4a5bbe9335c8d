"""
Day clustering: split a trip's confirmed places into day buckets.

Two modes:
- route-driven, when the trip already has routes: each route seeds a day and
  small routes are merged first-fit (array order) up to the day capacity;
- even distribution, when there are no routes: contiguous, near-equal slices
  of the confirmed place list.

Neither mode looks at geography beyond what the routes already encode, and
neither uses randomness, so the same input always yields the same buckets.
Only the generated day ids differ between runs.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

from domain.models import Day, Place, Route
from services.geometry import has_usable_coordinates

logger = logging.getLogger(__name__)

DEFAULT_TARGET_DAYS = 3
MIN_PLACES_PER_DAY = 5
MAX_PLACES_PER_DAY = 8

IdFactory = Callable[[int], str]


def _default_id_factory(index: int) -> str:
    return Day.generate_id()


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(value[:10]), datetime.min.time())
        except ValueError:
            logger.warning("Ignoring unparseable trip date %r", value)
            return None
    return parsed


def target_day_count(start_date: Optional[str], end_date: Optional[str]) -> int:
    """Number of days covered by the trip dates, both ends included; 3 by default."""
    start = _parse_date(start_date)
    end = _parse_date(end_date)
    if start is None or end is None:
        return DEFAULT_TARGET_DAYS
    # Mixed naive/aware values cannot be subtracted; compare wall-clock times.
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.replace(tzinfo=None)
        end = end.replace(tzinfo=None)
    span_days = abs((end - start).total_seconds()) / 86400
    return math.ceil(span_days) + 1


def day_capacity(place_count: int, target_days: int, places_per_day: Optional[int] = None) -> int:
    """
    The user's pace if set, else an even share clamped to 5..8 places.

    A pace of zero or less counts as unset.
    """
    if places_per_day is not None and places_per_day > 0:
        return int(places_per_day)
    share = math.ceil(place_count / target_days) if target_days > 0 else place_count
    return max(MIN_PLACES_PER_DAY, min(share, MAX_PLACES_PER_DAY))


def eligible_places(places: Sequence[Place]) -> List[Place]:
    """Confirmed places with usable coordinates, in their original order."""
    return [p for p in places if p.confirmed and has_usable_coordinates(p)]


def _dedupe(ids: Sequence[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for pid in ids:
        if pid not in seen:
            seen.add(pid)
            result.append(pid)
    return result


def distribute_evenly(
    places: Sequence[Place],
    target_days: int,
    id_factory: IdFactory = _default_id_factory,
) -> List[Day]:
    """
    Slice ``places`` into ``target_days`` contiguous chunks.

    Chunk boundaries are ``floor(n / target_days * i)``, so sizes differ by at
    most one and input order is preserved inside each day.
    """
    n = len(places)
    days: List[Day] = []
    for day_index in range(target_days):
        start_idx = math.floor(n / target_days * day_index)
        end_idx = math.floor(n / target_days * (day_index + 1))
        days.append(
            Day(
                id=id_factory(day_index),
                places=[p.id for p in places[start_idx:end_idx]],
            )
        )
    return days


def group_by_routes(
    places: Sequence[Place],
    routes: Sequence[Route],
    target_days: int,
    capacity: int,
    id_factory: IdFactory = _default_id_factory,
) -> List[Day]:
    """
    Turn routes into days, merging small routes first-fit in array order.

    Route place ids that are not eligible places are dropped. Places no route
    covers go to the last day if they all fit, otherwise into new days of
    ``capacity`` places. The result is padded with empty days up to
    ``target_days``.
    """
    eligible_ids = {p.id for p in places}
    route_place_ids: Dict[str, List[str]] = {
        route.id: [rp.place_id for rp in route.places if rp.place_id in eligible_ids]
        for route in routes
    }

    buckets: List[tuple[List[str], List[str]]] = []  # (route ids, place ids)
    processed: set[str] = set()

    for route in routes:
        if route.id in processed:
            continue
        processed.add(route.id)
        day_places = list(route_place_ids[route.id])

        if len(day_places) < capacity:
            merged_routes = [route.id]
            total = len(day_places)
            for other in routes:
                if other.id in processed or total >= capacity:
                    continue
                other_places = route_place_ids[other.id]
                if total + len(other_places) <= capacity:
                    merged_routes.append(other.id)
                    day_places.extend(other_places)
                    total += len(other_places)
                    processed.add(other.id)
            buckets.append((merged_routes, _dedupe(day_places)))
        else:
            buckets.append(([route.id], _dedupe(day_places)))

    assigned = {pid for _, day_places in buckets for pid in day_places}
    unassigned = [p.id for p in places if p.id not in assigned]

    if unassigned:
        if buckets and len(buckets[-1][1]) + len(unassigned) <= capacity:
            buckets[-1][1].extend(unassigned)
        else:
            for i in range(0, len(unassigned), capacity):
                buckets.append(([], unassigned[i:i + capacity]))

    while len(buckets) < target_days:
        buckets.append(([], []))

    logger.debug(
        "group_by_routes: %d routes -> %d days (target=%d, capacity=%d, unassigned=%d)",
        len(routes),
        len(buckets),
        target_days,
        capacity,
        len(unassigned),
    )
    return [
        Day(id=id_factory(index), routes=route_ids, places=place_ids)
        for index, (route_ids, place_ids) in enumerate(buckets)
    ]


def cluster_days(
    places: Sequence[Place],
    routes: Sequence[Route] = (),
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    places_per_day: Optional[int] = None,
    id_factory: Optional[IdFactory] = None,
) -> List[Day]:
    """
    Partition the eligible places into day buckets.

    ``places`` may contain unconfirmed or unlocated places; they are ignored.
    Returns an empty list when no place is eligible.
    """
    id_factory = id_factory or _default_id_factory
    confirmed = eligible_places(places)
    if not confirmed:
        logger.info("cluster_days: no confirmed places with coordinates; nothing to plan")
        return []

    target_days = target_day_count(start_date, end_date)
    capacity = day_capacity(len(confirmed), target_days, places_per_day)

    if routes:
        days = group_by_routes(confirmed, routes, target_days, capacity, id_factory)
    else:
        days = distribute_evenly(confirmed, target_days, id_factory)

    logger.info(
        "cluster_days: %d places into %d days (%s mode, capacity=%d)",
        len(confirmed),
        len(days),
        "route" if routes else "even",
        capacity,
    )
    return days
