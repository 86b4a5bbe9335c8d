"""Thin Google Maps web-service client (Directions, Places, Distance Matrix).

Every call degrades instead of raising: a missing API key yields an
``UNAVAILABLE`` status and empty results, and provider errors are reported
through ``ProviderStatus`` so callers can keep planning with what they have.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Optional, Sequence

import requests

from domain.models import Coordinates, RouteStep
from services.places_cache_sqlite import PlacesCache, get_default_places_cache
from services.places_types import (
    DirectionsResult,
    DistanceResult,
    PlaceResult,
    ProviderStatus,
)
from settings import settings

GOOGLE_MAPS_BASE_URL = "https://maps.googleapis.com/maps/api"
DISTANCE_MATRIX_MAX_DESTINATIONS = 25
PROVIDER_NAME = "google"

logger = logging.getLogger(__name__)


def _latlng(coords: Coordinates) -> str:
    return f"{coords.lat},{coords.lng}"


def _place_from_raw(item: dict) -> Optional[PlaceResult]:
    try:
        location = item["geometry"]["location"]
        return PlaceResult(
            provider=PROVIDER_NAME,
            place_id=str(item.get("place_id", "")),
            name=item.get("name", ""),
            lat=float(location["lat"]),
            lng=float(location["lng"]),
            types=list(item.get("types") or []),
            rating=item.get("rating"),
            vicinity=item.get("vicinity") or item.get("formatted_address"),
            raw=item,
        )
    except (KeyError, TypeError, ValueError):
        return None


class GoogleMapsClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[PlacesCache] = None,
        timeout: Optional[float] = None,
        use_cache: Optional[bool] = None,
    ):
        self.api_key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key
        self.base_url = (base_url or GOOGLE_MAPS_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or settings.PROVIDER_TIMEOUT_SECONDS
        self.use_cache = settings.PLACES_CACHE_ENABLED if use_cache is None else use_cache
        self._cache = cache
        self._cache_lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    @property
    def cache(self) -> Optional[PlacesCache]:
        if not self.use_cache:
            return None
        with self._cache_lock:
            if self._cache is None:
                self._cache = get_default_places_cache()
        return self._cache

    def _get(self, path: str, params: dict[str, Any]) -> tuple[ProviderStatus, dict]:
        """GET a JSON endpoint and map transport failures onto ProviderStatus."""
        if not self.available:
            return ProviderStatus.UNAVAILABLE, {}
        query = dict(params)
        query["key"] = self.api_key
        try:
            resp = self.session.get(f"{self.base_url}/{path}", params=query, timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.warning("Google %s request failed: %s", path, exc)
            return ProviderStatus.ERROR, {}
        if resp.status_code != 200:
            self.logger.warning("Google %s HTTP error: %s", path, resp.status_code)
            return ProviderStatus.ERROR, {}
        try:
            data = resp.json()
        except ValueError as exc:
            self.logger.warning("Google %s JSON error: %s", path, exc)
            return ProviderStatus.ERROR, {}
        status = ProviderStatus.from_google(data.get("status"))
        if status not in (ProviderStatus.OK, ProviderStatus.NO_RESULTS):
            self.logger.warning(
                "Google %s returned %s: %s", path, data.get("status"), data.get("error_message", "")
            )
        return status, data

    def get_route(self, start: Coordinates, end: Coordinates) -> DirectionsResult:
        """Driving directions from start to end, flattened into route steps."""
        self.logger.debug("Calculating route from %s to %s", _latlng(start), _latlng(end))
        status, data = self._get(
            "directions/json",
            {"origin": _latlng(start), "destination": _latlng(end)},
        )
        if status == ProviderStatus.NO_RESULTS:
            return DirectionsResult(status=status, error_message="No route found between these locations.")
        if status != ProviderStatus.OK:
            return DirectionsResult(status=status, error_message=data.get("error_message"))

        routes = data.get("routes") or []
        if not routes or not routes[0].get("legs"):
            return DirectionsResult(status=ProviderStatus.NO_RESULTS, error_message="No routes found")

        route = routes[0]
        leg = route["legs"][0]
        try:
            steps = [
                RouteStep(
                    start=Coordinates(lat=s["start_location"]["lat"], lng=s["start_location"]["lng"]),
                    end=Coordinates(lat=s["end_location"]["lat"], lng=s["end_location"]["lng"]),
                )
                for s in leg.get("steps") or []
            ]
            return DirectionsResult(
                status=ProviderStatus.OK,
                distance_meters=int(leg["distance"]["value"]),
                duration_seconds=int(leg["duration"]["value"]),
                polyline=(route.get("overview_polyline") or {}).get("points"),
                steps=steps,
            )
        except (KeyError, TypeError, ValueError) as exc:
            self.logger.warning("Malformed directions response: %s", exc)
            return DirectionsResult(status=ProviderStatus.ERROR, error_message=str(exc))

    def nearby_search(
        self,
        location: Coordinates,
        radius_m: float,
        place_type: Optional[str] = None,
    ) -> List[PlaceResult]:
        cache = self.cache
        if cache is not None:
            cached = cache.get_places(PROVIDER_NAME, location.lat, location.lng, radius_m, place_type)
            if cached is not None:
                return cached

        params: dict[str, Any] = {"location": _latlng(location), "radius": radius_m}
        if place_type:
            params["type"] = place_type
        status, data = self._get("place/nearbysearch/json", params)
        if status not in (ProviderStatus.OK, ProviderStatus.NO_RESULTS):
            return []

        results = [r for r in (_place_from_raw(item) for item in data.get("results") or []) if r]
        if cache is not None:
            cache.put_places(PROVIDER_NAME, location.lat, location.lng, radius_m, place_type, results)
        self.logger.debug(
            "nearby_search: lat=%.6f lng=%.6f radius_m=%.1f type=%s got %d results",
            location.lat,
            location.lng,
            radius_m,
            place_type,
            len(results),
        )
        return results

    def text_search(self, query: str, location_bias: Optional[Coordinates] = None) -> List[PlaceResult]:
        """Free-text search; callers treat the first result as the best match."""
        params: dict[str, Any] = {"query": query}
        if location_bias is not None:
            params["location"] = _latlng(location_bias)
        status, data = self._get("place/textsearch/json", params)
        if status != ProviderStatus.OK:
            return []
        return [r for r in (_place_from_raw(item) for item in data.get("results") or []) if r]

    def distance_matrix(
        self,
        origin: Coordinates,
        destinations: Sequence[Coordinates],
    ) -> List[DistanceResult]:
        """
        Driving distance from origin to up to 25 destinations.

        Always returns one DistanceResult per destination; failed elements
        carry a non-OK status.
        """
        if len(destinations) > DISTANCE_MATRIX_MAX_DESTINATIONS:
            raise ValueError(
                f"distance_matrix accepts at most {DISTANCE_MATRIX_MAX_DESTINATIONS} destinations"
            )
        if not destinations:
            return []
        status, data = self._get(
            "distancematrix/json",
            {
                "origins": _latlng(origin),
                "destinations": "|".join(_latlng(d) for d in destinations),
                "mode": "driving",
            },
        )
        if status != ProviderStatus.OK:
            return [DistanceResult(status=status) for _ in destinations]

        rows = data.get("rows") or [{}]
        elements = rows[0].get("elements") or []
        results: List[DistanceResult] = []
        for idx in range(len(destinations)):
            element = elements[idx] if idx < len(elements) else {}
            element_status = ProviderStatus.from_google(element.get("status"))
            distance = (element.get("distance") or {}).get("value")
            duration = (element.get("duration") or {}).get("value")
            if element_status == ProviderStatus.OK and distance is not None:
                results.append(
                    DistanceResult(
                        status=ProviderStatus.OK,
                        distance_meters=float(distance),
                        duration_seconds=int(duration) if duration is not None else None,
                    )
                )
            else:
                results.append(DistanceResult(status=element_status))
        return results


_default_client: Optional[GoogleMapsClient] = None


def get_default_client() -> GoogleMapsClient:
    global _default_client
    if _default_client is None:
        _default_client = GoogleMapsClient()
        if not _default_client.available:
            logger.warning("GOOGLE_MAPS_API_KEY not set; provider calls will return empty results")
    return _default_client
