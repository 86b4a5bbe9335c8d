import time

from services.places_cache_sqlite import PlacesCache
from services.places_types import PlaceResult


def _result(place_id="g1", name="Chatuchak Market"):
    return PlaceResult(
        provider="google",
        place_id=place_id,
        name=name,
        lat=13.7999,
        lng=100.5500,
        types=["shopping_mall"],
        rating=4.5,
    )


def test_roundtrip_and_quantised_key(tmp_path):
    cache = PlacesCache(db_path=str(tmp_path / "c.sqlite"))
    cache.put_places("google", 13.75631, 100.50181, 5000, "museum", [_result()])

    # ~1m away lands on the same grid cell
    hit = cache.get_places("google", 13.75632, 100.50182, 5000, "museum")
    assert hit is not None
    assert hit[0].place_id == "g1"
    assert hit[0].rating == 4.5

    assert cache.get_places("google", 13.75631, 100.50181, 2000, "museum") is None
    assert cache.get_places("google", 13.75631, 100.50181, 5000, None) is None


def test_empty_list_is_a_cached_answer(tmp_path):
    cache = PlacesCache(db_path=str(tmp_path / "c.sqlite"))
    cache.put_places("google", 1.0, 2.0, 2000, None, [])
    assert cache.get_places("google", 1.0, 2.0, 2000, None) == []


def test_put_replaces_existing_entry(tmp_path):
    cache = PlacesCache(db_path=str(tmp_path / "c.sqlite"))
    cache.put_places("google", 1.0, 2.0, 2000, "bar", [_result("old")])
    cache.put_places("google", 1.0, 2.0, 2000, "bar", [_result("new")])
    assert [r.place_id for r in cache.get_places("google", 1.0, 2.0, 2000, "bar")] == ["new"]


def test_expired_entries_are_misses(tmp_path, monkeypatch):
    cache = PlacesCache(db_path=str(tmp_path / "c.sqlite"), default_ttl_seconds=10)
    cache.put_places("google", 1.0, 2.0, 2000, "bar", [_result()])
    real_time = time.time
    monkeypatch.setattr(time, "time", lambda: real_time() + 60)
    assert cache.get_places("google", 1.0, 2.0, 2000, "bar") is None
