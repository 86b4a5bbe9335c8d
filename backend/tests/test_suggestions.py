from typing import Dict, List, Optional

import pytest

from domain.models import Coordinates, Day, EndDestination, Hotel, Place, Trip
from services.fanout import CancellationToken
from services.places_types import DistanceResult, PlaceResult, ProviderStatus
from services.suggestions import (
    suggest_along_route,
    suggest_for_day,
    suggest_places,
    to_candidate_place,
)

HOTEL = Coordinates(13.7563, 100.5018)
ROUTE_END = Coordinates(13.7466, 100.5347)


def _result(place_id, types, rating=4.5, lat=13.7500, lng=100.5100):
    return PlaceResult(
        provider="google",
        place_id=place_id,
        name=place_id.title(),
        lat=lat,
        lng=lng,
        types=list(types),
        rating=rating,
    )


class FakeClient:
    def __init__(self, by_type: Optional[Dict[Optional[str], List[PlaceResult]]] = None, available=True):
        self.by_type = by_type or {}
        self.available = available
        self.nearby_calls = []
        self.matrix_calls = []
        self.matrix_fails = False

    def nearby_search(self, location, radius_m, place_type=None):
        self.nearby_calls.append((location, radius_m, place_type))
        return list(self.by_type.get(place_type, []))

    def distance_matrix(self, origin, destinations):
        self.matrix_calls.append(list(destinations))
        if self.matrix_fails:
            raise RuntimeError("matrix down")
        return [
            DistanceResult(status=ProviderStatus.OK, distance_meters=1000.0 * (i + 1), duration_seconds=120)
            for i, _ in enumerate(destinations)
        ]


def test_unavailable_provider_returns_nothing():
    client = FakeClient(available=False)
    assert suggest_places(client, HOTEL, ["museum"]) == []
    assert suggest_along_route(client, HOTEL, ROUTE_END) == []
    assert client.nearby_calls == []


def test_rating_thresholds_dedupe_and_exclusions():
    client = FakeClient(
        {
            "restaurant": [
                _result("tasty", ["restaurant"], rating=4.3),
                _result("meh", ["restaurant"], rating=4.1),
                _result("unrated", ["restaurant"], rating=None),
            ],
            "museum": [
                _result("gallery", ["museum"], rating=4.1),
                _result("tasty", ["restaurant"], rating=4.3),
                _result("seen", ["museum"], rating=4.9),
            ],
        }
    )
    suggestions = suggest_places(client, HOTEL, ["restaurant", "museum"], exclude_place_ids=["seen"])
    ids = [s.place.place_id for s in suggestions]
    assert sorted(ids) == ["gallery", "tasty"]
    assert ids == ["tasty", "gallery"]  # by rating


def test_nightlife_context_drops_religious_places_and_prefers_bars():
    client = FakeClient(
        {
            "bar": [_result("pub", ["bar"], rating=4.1)],
            "night_club": [_result("club", ["night_club"], rating=4.0)],
            "tourist_attraction": [
                _result("temple", ["tourist_attraction", "place_of_worship"], rating=4.9),
                _result("tower", ["tourist_attraction"], rating=4.8),
            ],
        }
    )
    suggestions = suggest_places(client, HOTEL, ["bar", "night_club", "bar", "tourist_attraction"])
    ids = [s.place.place_id for s in suggestions]
    assert "temple" not in ids
    assert ids == ["pub", "club", "tower"]
    assert suggestions[0].is_nightlife_place


def test_food_context_keeps_religious_tourist_attractions():
    client = FakeClient(
        {
            "restaurant": [_result("noodles", ["restaurant"], rating=4.4)],
            "tourist_attraction": [
                _result("wat", ["tourist_attraction", "hindu_temple"], rating=4.8),
                _result("shrine", ["place_of_worship"], rating=4.9),
            ],
        }
    )
    types = ["restaurant", "restaurant", "restaurant", "tourist_attraction"]
    ids = [s.place.place_id for s in suggest_places(client, HOTEL, types)]
    assert ids == ["noodles", "wat"]


def test_only_first_eight_types_are_searched_once_each():
    types = ["t%d" % i for i in range(10)] + ["t0"]
    client = FakeClient()
    suggest_places(client, HOTEL, types)
    searched = sorted(call[2] for call in client.nearby_calls)
    assert searched == sorted("t%d" % i for i in range(8))


def test_top_six_with_provider_distances():
    client = FakeClient({"museum": [_result("m%d" % i, ["museum"], rating=4.0 + i / 100) for i in range(9)]})
    suggestions = suggest_places(client, HOTEL, ["museum"], hotel=HOTEL)
    assert len(suggestions) == 6
    assert suggestions[0].place.place_id == "m8"
    assert len(client.matrix_calls) == 1
    assert suggestions[0].distance_meters == 1000.0
    assert not suggestions[0].distance_estimated


def test_failed_distance_matrix_falls_back_to_haversine():
    client = FakeClient({"museum": [_result("m1", ["museum"], lat=13.7563, lng=100.5200)]})
    client.matrix_fails = True
    suggestions = suggest_places(client, HOTEL, ["museum"], hotel=HOTEL)
    s = suggestions[0]
    assert s.distance_estimated
    assert s.distance_meters == pytest.approx(1966, rel=0.01)
    # 30 km/h
    assert s.duration_seconds == pytest.approx(s.distance_meters / (30000 / 3600), abs=1)


def test_cancelled_token_yields_empty_searches():
    client = FakeClient({"museum": [_result("m1", ["museum"])]})
    token = CancellationToken()
    token.cancel()
    assert suggest_places(client, HOTEL, ["museum"], token=token) == []
    assert client.nearby_calls == []


def test_along_route_searches_midpoint_and_filters_corridor():
    client = FakeClient(
        {
            None: [
                _result("on_route", ["cafe"], lat=13.7510, lng=100.5180),
                _result("off_route", ["cafe"], lat=13.7800, lng=100.5180),
                _result("excluded", ["cafe"], lat=13.7512, lng=100.5182),
            ]
        }
    )
    results = suggest_along_route(client, HOTEL, ROUTE_END, exclude_place_ids=["excluded"])
    assert [r.place_id for r in results] == ["on_route"]
    location, radius, place_type = client.nearby_calls[0]
    assert location == Coordinates((HOTEL.lat + ROUTE_END.lat) / 2, (HOTEL.lng + ROUTE_END.lng) / 2)
    assert radius < 5000
    assert place_type is None


def test_suggest_for_closed_loop_day_searches_near_last_place():
    last = Place(id="p1", name="Lumphini Park", coordinates=Coordinates(13.7310, 100.5410), confirmed=True, place_id="gp1")
    trip = Trip(
        id="t1",
        hotel=Hotel(id="h", name="Hotel", coordinates=HOTEL),
        places=[last],
        days=[Day(id="d1", places=["p1"])],
    )
    client = FakeClient({None: [_result("gp1", ["park"]), _result("a", ["cafe"]), _result("b", ["cafe"]), _result("c", ["cafe"]), _result("d", ["cafe"])]})
    results = suggest_for_day(client, trip, trip.days[0])
    assert [r.place_id for r in results] == ["a", "b", "c"]
    assert client.nearby_calls[0][0] == last.coordinates
    assert client.nearby_calls[0][1] == 2000


def test_suggest_for_day_with_end_destination_uses_corridor():
    trip = Trip(
        id="t1",
        hotel=Hotel(id="h", name="Hotel", coordinates=HOTEL),
        days=[Day(id="d1", end_destination=EndDestination(name="Asiatique", coordinates=ROUTE_END))],
    )
    client = FakeClient({None: [_result("on_route", ["cafe"], lat=13.7510, lng=100.5180)]})
    results = suggest_for_day(client, trip, trip.days[0])
    assert [r.place_id for r in results] == ["on_route"]


def test_to_candidate_place_is_unconfirmed():
    place = to_candidate_place(_result("g9", ["museum"]))
    assert place.id == "nearby_g9"
    assert place.place_id == "g9"
    assert not place.confirmed
    assert place.category.value == "museum"
