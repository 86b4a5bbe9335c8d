from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from domain.models import Coordinates, PlaceCategory, RouteStep


class ProviderStatus(str, Enum):
    OK = "OK"
    UNAVAILABLE = "UNAVAILABLE"  # no API key configured
    DENIED = "REQUEST_DENIED"
    QUOTA_EXCEEDED = "OVER_QUERY_LIMIT"
    NO_RESULTS = "ZERO_RESULTS"
    ERROR = "ERROR"  # transport or parsing failure

    @classmethod
    def from_google(cls, status: Optional[str]) -> "ProviderStatus":
        mapping = {
            "OK": cls.OK,
            "REQUEST_DENIED": cls.DENIED,
            "OVER_QUERY_LIMIT": cls.QUOTA_EXCEEDED,
            "OVER_DAILY_LIMIT": cls.QUOTA_EXCEEDED,
            "ZERO_RESULTS": cls.NO_RESULTS,
            "NOT_FOUND": cls.NO_RESULTS,
        }
        return mapping.get(status or "", cls.ERROR)


@dataclass
class PlaceResult:
    provider: str  # e.g. "google"
    place_id: str  # provider-specific place id
    name: str
    lat: float
    lng: float
    types: List[str]
    rating: Optional[float] = None
    vicinity: Optional[str] = None
    raw: Optional[dict] = None

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)

    @property
    def category(self) -> PlaceCategory:
        return infer_category(self.types)


@dataclass
class DirectionsResult:
    status: ProviderStatus
    distance_meters: int = 0
    duration_seconds: int = 0
    polyline: Optional[str] = None
    steps: List[RouteStep] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ProviderStatus.OK


@dataclass
class DistanceResult:
    """Driving distance from one origin to one destination."""
    status: ProviderStatus
    distance_meters: Optional[float] = None
    duration_seconds: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == ProviderStatus.OK and self.distance_meters is not None


# Google place types -> itinerary category; first matching type wins.
_TYPE_CATEGORIES = {
    "restaurant": PlaceCategory.FOOD,
    "food": PlaceCategory.FOOD,
    "cafe": PlaceCategory.FOOD,
    "bakery": PlaceCategory.FOOD,
    "meal_takeaway": PlaceCategory.FOOD,
    "meal_delivery": PlaceCategory.FOOD,
    "bar": PlaceCategory.NIGHTLIFE,
    "night_club": PlaceCategory.NIGHTLIFE,
    "park": PlaceCategory.NATURE,
    "zoo": PlaceCategory.NATURE,
    "aquarium": PlaceCategory.NATURE,
    "natural_feature": PlaceCategory.NATURE,
    "shopping_mall": PlaceCategory.SHOPPING,
    "department_store": PlaceCategory.SHOPPING,
    "store": PlaceCategory.SHOPPING,
    "clothing_store": PlaceCategory.SHOPPING,
    "jewelry_store": PlaceCategory.SHOPPING,
    "shoe_store": PlaceCategory.SHOPPING,
    "movie_theater": PlaceCategory.ENTERTAINMENT,
    "amusement_park": PlaceCategory.ENTERTAINMENT,
    "bowling_alley": PlaceCategory.ENTERTAINMENT,
    "casino": PlaceCategory.ENTERTAINMENT,
    "museum": PlaceCategory.MUSEUM,
    "art_gallery": PlaceCategory.MUSEUM,
    "tourist_attraction": PlaceCategory.ATTRACTION,
    "point_of_interest": PlaceCategory.ATTRACTION,
    "landmark": PlaceCategory.ATTRACTION,
    "church": PlaceCategory.RELIGIOUS,
    "mosque": PlaceCategory.RELIGIOUS,
    "synagogue": PlaceCategory.RELIGIOUS,
    "hindu_temple": PlaceCategory.RELIGIOUS,
    "place_of_worship": PlaceCategory.RELIGIOUS,
    "spa": PlaceCategory.WELLNESS,
    "beauty_salon": PlaceCategory.WELLNESS,
    "gym": PlaceCategory.WELLNESS,
    "beach": PlaceCategory.BEACH,
    "campground": PlaceCategory.ADVENTURE,
    "rv_park": PlaceCategory.ADVENTURE,
}


def infer_category(types: Iterable[str]) -> PlaceCategory:
    for place_type in types or []:
        category = _TYPE_CATEGORIES.get(place_type)
        if category is not None:
            return category
    return PlaceCategory.OTHER
