"""
SQLite-backed cache for nearby-place searches.

Nearby results change slowly, and suggestion screens repeat the same search
around the hotel many times, so responses are kept for a TTL keyed on a
quantised location.
"""
from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import time
from typing import List, Optional

from services.places_types import PlaceResult
from settings import settings

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
DATA_DIR = os.path.join(BASE_DIR, "data")
PLACES_CACHE_DB_FILENAME = "places_cache.sqlite"

logger = logging.getLogger(__name__)


def _quantize_coord(value: float, step: float = 0.0005) -> float:
    """Quantize coordinates to reduce cache key diversity (~50m grid)."""
    return round(round(value / step) * step, 6)


class PlacesCache:
    def __init__(self, db_path: Optional[str] = None, default_ttl_seconds: int = 7 * 24 * 3600):
        self.db_path = db_path or os.path.join(DATA_DIR, PLACES_CACHE_DB_FILENAME)
        self.default_ttl_seconds = default_ttl_seconds
        os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
        # Suggestion fan-out searches from worker threads.
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS nearby_cache (
                    id INTEGER PRIMARY KEY,
                    provider TEXT NOT NULL,
                    key_lat REAL NOT NULL,
                    key_lng REAL NOT NULL,
                    radius_m REAL NOT NULL,
                    kind TEXT,
                    response_json TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    ttl_seconds INTEGER NOT NULL
                )
                """
            )
            self._conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_nearby_cache_key
                ON nearby_cache(provider, key_lat, key_lng, radius_m, kind)
                """
            )
            self._conn.commit()

    @staticmethod
    def _decode(response_json: str) -> Optional[List[PlaceResult]]:
        try:
            payload = json.loads(response_json)
        except ValueError:
            return None
        results: List[PlaceResult] = []
        for item in payload or []:
            try:
                results.append(
                    PlaceResult(
                        provider=item.get("provider", ""),
                        place_id=item.get("place_id", ""),
                        name=item.get("name", ""),
                        lat=float(item["lat"]),
                        lng=float(item["lng"]),
                        types=item.get("types", []) or [],
                        rating=item.get("rating"),
                        vicinity=item.get("vicinity"),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return results

    def get_places(
        self,
        provider: str,
        lat: float,
        lng: float,
        radius_m: float,
        kind: Optional[str] = None,
    ) -> Optional[List[PlaceResult]]:
        """
        Return the cached PlaceResult list if a non-expired entry exists for key.
        An empty list is a valid cached answer; None means "not cached".
        """
        key_lat = _quantize_coord(lat)
        key_lng = _quantize_coord(lng)
        try:
            with self._lock:
                row = self._conn.execute(
                    """
                    SELECT response_json, created_at, ttl_seconds FROM nearby_cache
                    WHERE provider=? AND key_lat=? AND key_lng=? AND radius_m=? AND kind IS ?
                    LIMIT 1
                    """,
                    (provider, key_lat, key_lng, radius_m, kind),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("places cache read failed: %s", exc)
            return None
        if not row:
            return None
        response_json, created_at, ttl_seconds = row
        if ttl_seconds > 0 and (time.time() - created_at) > ttl_seconds:
            logger.debug("places cache expired %s,%s r=%s kind=%s", key_lat, key_lng, radius_m, kind)
            return None
        return self._decode(response_json)

    def put_places(
        self,
        provider: str,
        lat: float,
        lng: float,
        radius_m: float,
        kind: Optional[str],
        places: List[PlaceResult],
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """Store PlaceResult list in cache for key."""
        key_lat = _quantize_coord(lat)
        key_lng = _quantize_coord(lng)
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        payload = [
            {
                "provider": p.provider,
                "place_id": p.place_id,
                "name": p.name,
                "lat": p.lat,
                "lng": p.lng,
                "types": p.types,
                "rating": p.rating,
                "vicinity": p.vicinity,
            }
            for p in places
        ]
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT OR REPLACE INTO nearby_cache
                    (id, provider, key_lat, key_lng, radius_m, kind, response_json, created_at, ttl_seconds)
                    VALUES (
                        (SELECT id FROM nearby_cache WHERE provider=? AND key_lat=? AND key_lng=? AND radius_m=? AND kind IS ?),
                        ?, ?, ?, ?, ?, ?, ?, ?
                    )
                    """,
                    (
                        provider,
                        key_lat,
                        key_lng,
                        radius_m,
                        kind,
                        provider,
                        key_lat,
                        key_lng,
                        radius_m,
                        kind,
                        json.dumps(payload),
                        int(time.time()),
                        ttl,
                    ),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            logger.warning("places cache write failed: %s", exc)


_default_places_cache: Optional[PlacesCache] = None
_default_places_cache_lock = threading.Lock()


def get_default_places_cache() -> PlacesCache:
    global _default_places_cache
    with _default_places_cache_lock:
        if _default_places_cache is None:
            _default_places_cache = PlacesCache(
                db_path=settings.PLACES_CACHE_PATH,
                default_ttl_seconds=settings.PLACES_CACHE_TTL_SECONDS,
            )
    return _default_places_cache
