import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from domain.models import Coordinates, PlaceCategory
from services import google_maps
from services.google_maps import GoogleMapsClient
from services.places_cache_sqlite import PlacesCache
from services.places_types import ProviderStatus

HOTEL = Coordinates(13.7563, 100.5018)
ROUTE_END = Coordinates(13.7466, 100.5347)


def _response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


def _client(payload=None, status_code=200, **kwargs):
    session = MagicMock()
    session.get.return_value = _response(payload or {}, status_code)
    kwargs.setdefault("use_cache", False)
    return GoogleMapsClient(api_key="test-key", session=session, **kwargs), session


DIRECTIONS_OK = {
    "status": "OK",
    "routes": [
        {
            "overview_polyline": {"points": "abc123"},
            "legs": [
                {
                    "distance": {"value": 4200},
                    "duration": {"value": 900},
                    "steps": [
                        {
                            "start_location": {"lat": 13.7563, "lng": 100.5018},
                            "end_location": {"lat": 13.7510, "lng": 100.5150},
                        },
                        {
                            "start_location": {"lat": 13.7510, "lng": 100.5150},
                            "end_location": {"lat": 13.7466, "lng": 100.5347},
                        },
                    ],
                }
            ],
        }
    ],
}

NEARBY_OK = {
    "status": "OK",
    "results": [
        {
            "place_id": "g1",
            "name": "Wat Pho",
            "geometry": {"location": {"lat": 13.7465, "lng": 100.4927}},
            "types": ["tourist_attraction", "place_of_worship"],
            "rating": 4.7,
            "vicinity": "2 Sanamchai Rd",
        },
        {"place_id": "broken", "name": "No geometry"},
    ],
}


def test_missing_api_key_is_unavailable_and_makes_no_request():
    session = MagicMock()
    client = GoogleMapsClient(api_key="", session=session, use_cache=False)
    assert not client.available
    result = client.get_route(HOTEL, ROUTE_END)
    assert result.status == ProviderStatus.UNAVAILABLE
    assert client.nearby_search(HOTEL, 2000) == []
    session.get.assert_not_called()


def test_get_route_parses_steps_and_duration():
    client, session = _client(DIRECTIONS_OK)
    result = client.get_route(HOTEL, ROUTE_END)
    assert result.ok
    assert result.distance_meters == 4200
    assert result.duration_seconds == 900
    assert result.polyline == "abc123"
    assert len(result.steps) == 2
    assert result.steps[1].end == ROUTE_END
    params = session.get.call_args.kwargs["params"]
    assert params["origin"] == "13.7563,100.5018"
    assert params["key"] == "test-key"


@pytest.mark.parametrize(
    "google_status, expected",
    [
        ("REQUEST_DENIED", ProviderStatus.DENIED),
        ("OVER_QUERY_LIMIT", ProviderStatus.QUOTA_EXCEEDED),
        ("ZERO_RESULTS", ProviderStatus.NO_RESULTS),
        ("UNKNOWN_ERROR", ProviderStatus.ERROR),
    ],
)
def test_get_route_maps_provider_status(google_status, expected):
    client, _ = _client({"status": google_status, "error_message": "nope"})
    result = client.get_route(HOTEL, ROUTE_END)
    assert not result.ok
    assert result.status == expected


def test_transport_errors_become_error_status():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("down")
    client = GoogleMapsClient(api_key="k", session=session, use_cache=False)
    assert client.get_route(HOTEL, ROUTE_END).status == ProviderStatus.ERROR

    client, _ = _client({}, status_code=500)
    assert client.get_route(HOTEL, ROUTE_END).status == ProviderStatus.ERROR


def test_nearby_search_parses_results_and_skips_broken_items():
    client, session = _client(NEARBY_OK)
    results = client.nearby_search(HOTEL, 5000, "tourist_attraction")
    assert [r.place_id for r in results] == ["g1"]
    assert results[0].category == PlaceCategory.ATTRACTION
    assert results[0].coordinates == Coordinates(13.7465, 100.4927)
    assert session.get.call_args.kwargs["params"]["type"] == "tourist_attraction"


def test_nearby_search_uses_cache(tmp_path):
    cache = PlacesCache(db_path=str(tmp_path / "places.sqlite"))
    client, session = _client(NEARBY_OK, use_cache=True, cache=cache)
    first = client.nearby_search(HOTEL, 5000, "museum")
    second = client.nearby_search(HOTEL, 5000, "museum")
    assert session.get.call_count == 1
    assert [r.place_id for r in second] == [r.place_id for r in first]


def test_text_search_returns_first_match_first():
    client, _ = _client(
        {
            "status": "OK",
            "results": [
                {"place_id": "a", "name": "Grand Palace", "geometry": {"location": {"lat": 13.75, "lng": 100.49}}},
                {"place_id": "b", "name": "Other", "geometry": {"location": {"lat": 13.7, "lng": 100.4}}},
            ],
        }
    )
    results = client.text_search("Grand Palace Bangkok", location_bias=HOTEL)
    assert results[0].name == "Grand Palace"


def test_distance_matrix_returns_one_result_per_destination():
    client, _ = _client(
        {
            "status": "OK",
            "rows": [
                {
                    "elements": [
                        {"status": "OK", "distance": {"value": 3500}, "duration": {"value": 600}},
                        {"status": "ZERO_RESULTS"},
                    ]
                }
            ],
        }
    )
    results = client.distance_matrix(HOTEL, [ROUTE_END, Coordinates(14.0, 101.0), Coordinates(14.1, 101.1)])
    assert len(results) == 3
    assert results[0].ok
    assert results[0].distance_meters == 3500
    assert results[0].duration_seconds == 600
    assert results[1].status == ProviderStatus.NO_RESULTS
    assert not results[2].ok


def test_distance_matrix_rejects_more_than_25_destinations():
    client, _ = _client({})
    with pytest.raises(ValueError):
        client.distance_matrix(HOTEL, [ROUTE_END] * 26)


def test_default_cache_is_created_once_under_concurrent_access(monkeypatch, tmp_path):
    created = []

    def slow_factory():
        time.sleep(0.05)
        cache = PlacesCache(db_path=str(tmp_path / f"places{len(created)}.sqlite"))
        created.append(cache)
        return cache

    monkeypatch.setattr(google_maps, "get_default_places_cache", slow_factory)
    client = GoogleMapsClient(api_key="k", session=MagicMock(), use_cache=True)
    barrier = threading.Barrier(8)
    seen = []

    def worker():
        barrier.wait()
        seen.append(client.cache)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(created) == 1
    assert all(cache is created[0] for cache in seen)
