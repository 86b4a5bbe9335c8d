import pytest

from domain.models import Coordinates, Day, EndDestination, Hotel, Place, RouteStep, Trip
from services.detour import (
    ALONG_ROUTE_RADIUS_M,
    NEARBY_RADIUS_M,
    build_route_places,
    detour_cost_minutes,
    find_places_along_route,
    resolve_search_area,
    score_place,
)
from services.errors import AnchorMissingError

HOTEL = Coordinates(13.7563, 100.5018)
ROUTE_END = Coordinates(13.7466, 100.5347)
STEPS = [RouteStep(start=HOTEL, end=ROUTE_END)]


def _place(pid, lat, lng, confirmed=True):
    return Place(id=pid, name=pid, coordinates=Coordinates(lat, lng), confirmed=confirmed)


def _trip(places=(), days=(), hotel=HOTEL):
    return Trip(
        id="trip1",
        hotel=Hotel(id="h1", name="Riverside Hotel", coordinates=hotel),
        places=list(places),
        days=list(days),
    )


def test_bangkok_candidate_on_route_is_accepted():
    match = score_place(_place("near", 13.7510, 100.5180), STEPS, ALONG_ROUTE_RADIUS_M)
    assert match is not None
    assert match.distance_from_route < ALONG_ROUTE_RADIUS_M
    assert match.order == 0
    assert match.detour_cost >= 0


def test_far_candidate_is_rejected():
    assert score_place(_place("far", 13.9, 100.9), STEPS, ALONG_ROUTE_RADIUS_M) is None


def test_unlocated_place_and_empty_steps_are_rejected():
    assert score_place(Place(id="x", name="x"), STEPS) is None
    assert score_place(_place("near", 13.7510, 100.5180), []) is None


def test_detour_cost_is_two_minutes_per_km_and_monotonic():
    assert detour_cost_minutes(0) == 0
    assert detour_cost_minutes(1000) == 2
    assert detour_cost_minutes(1250) == 3
    costs = [detour_cost_minutes(d) for d in range(0, 5000, 100)]
    assert costs == sorted(costs)


def test_find_places_along_route_orders_by_step_and_keeps_ties_stable():
    a = Coordinates(0.0, 0.0)
    b = Coordinates(0.0, 0.02)
    c = Coordinates(0.0, 0.04)
    steps = [RouteStep(a, b), RouteStep(b, c)]
    late = _place("late", 0.001, 0.035)
    early_1 = _place("early_1", 0.001, 0.005)
    early_2 = _place("early_2", -0.001, 0.008)
    far = _place("far", 1.0, 1.0)

    matches = find_places_along_route([late, early_1, far, early_2], steps, ALONG_ROUTE_RADIUS_M)

    assert [m.place.id for m in matches] == ["early_1", "early_2", "late"]
    assert [m.order for m in matches] == [0, 0, 1]
    assert all(m.distance_from_route < ALONG_ROUTE_RADIUS_M for m in matches)

    route_places = build_route_places(matches)
    assert route_places[2].place_id == "late"
    assert route_places[2].order == 1


def test_wider_radius_accepts_more():
    # About 3 km north of the hotel -> route end segment.
    place = _place("north", 13.7800, 100.5180)
    assert score_place(place, STEPS, ALONG_ROUTE_RADIUS_M) is None

    loose = score_place(place, STEPS, NEARBY_RADIUS_M)
    assert loose is not None
    assert ALONG_ROUTE_RADIUS_M <= loose.distance_from_route < NEARBY_RADIUS_M
    assert loose.detour_cost == detour_cost_minutes(loose.distance_from_route)


def test_same_place_scores_identically_under_both_radii():
    place = _place("near", 13.7510, 100.5180)
    strict = score_place(place, STEPS, ALONG_ROUTE_RADIUS_M)
    loose = score_place(place, STEPS, NEARBY_RADIUS_M)
    assert strict is not None and loose is not None
    assert strict.distance_from_route == pytest.approx(loose.distance_from_route)


def test_closed_loop_day_searches_around_last_place():
    last = _place("last", 13.7400, 100.5600)
    first = _place("first", 13.7500, 100.5100)
    day = Day(id="d1", places=["first", "last"])
    area = resolve_search_area(_trip([first, last], [day]), day)
    assert not area.is_corridor
    assert area.center == last.coordinates
    assert area.radius_m == ALONG_ROUTE_RADIUS_M


def test_closed_loop_empty_day_searches_around_hotel():
    day = Day(id="d1")
    area = resolve_search_area(_trip(days=[day]), day)
    assert area.center == HOTEL


def test_day_with_end_destination_is_a_corridor():
    day = Day(id="d1", end_destination=EndDestination(name="Asiatique", coordinates=ROUTE_END))
    area = resolve_search_area(_trip(days=[day]), day)
    assert area.is_corridor
    assert area.start == HOTEL
    assert area.end == ROUTE_END


def test_missing_hotel_without_places_raises():
    day = Day(id="d1")
    with pytest.raises(AnchorMissingError):
        resolve_search_area(_trip(days=[day], hotel=Coordinates(0.0, 0.0)), day)
