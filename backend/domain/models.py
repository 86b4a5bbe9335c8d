"""
Core domain models for the trip itinerary engine.
These are framework-agnostic and can be used across all services.

The JSON shape exchanged with the client is camelCase (``placeId``,
``detourCost``...), so each model carries a ``from_dict`` parser.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid


def _optional_int(value: Any) -> Optional[int]:
    # Raises ValueError/TypeError on junk so API callers can answer 400.
    if value is None or value == "":
        return None
    return int(value)


class PlaceCategory(str, Enum):
    """Category of a place, as shown on the itinerary."""
    FOOD = "food"
    ATTRACTION = "attraction"
    NIGHTLIFE = "nightlife"
    NATURE = "nature"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    WELLNESS = "wellness"
    RELIGIOUS = "religious"
    MUSEUM = "museum"
    ADVENTURE = "adventure"
    BEACH = "beach"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlaceCategory":
        try:
            return cls(value or "other")
        except ValueError:
            return cls.OTHER


class TravelerType(str, Enum):
    COUPLE = "couple"
    FRIENDS = "friends"
    FAMILY = "family"
    SOLO = "solo"


@dataclass(frozen=True)
class Coordinates:
    """A WGS-84 point in decimal degrees."""
    lat: float
    lng: float

    @property
    def is_unset(self) -> bool:
        # {0, 0} is the placeholder for a location that was never geocoded.
        return self.lat == 0 and self.lng == 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Coordinates"]:
        if not data:
            return None
        lat = data.get("lat")
        lng = data.get("lng") if "lng" in data else data.get("lon")
        if lat is None or lng is None:
            return None
        return cls(lat=float(lat), lng=float(lng))


@dataclass
class Place:
    """
    A place the traveller might visit.

    Places are created upstream (extraction, search) and only become eligible
    for day planning once they are confirmed and carry usable coordinates.
    """
    id: str
    name: str
    category: PlaceCategory = PlaceCategory.OTHER
    coordinates: Optional[Coordinates] = None
    place_id: Optional[str] = None  # external provider id (Google place_id)
    confirmed: bool = False
    validated: bool = False
    vibe: Optional[str] = None  # "romantic" | "party" | "chill" | "cultural"
    area: Optional[str] = None
    confidence: float = 0.0
    source: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Place":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            category=PlaceCategory.parse(data.get("category")),
            coordinates=Coordinates.from_dict(data.get("coordinates")),
            place_id=data.get("placeId"),
            confirmed=bool(data.get("confirmed", False)),
            validated=bool(data.get("validated", False)),
            vibe=data.get("vibe"),
            area=data.get("area"),
            confidence=float(data.get("confidence", 0.0) or 0.0),
            source=data.get("source", "") or "",
        )


@dataclass
class Hotel:
    """The trip's anchor. Coordinates may still be unset ({0, 0})."""
    id: str
    name: str
    address: str = ""
    coordinates: Coordinates = field(default_factory=lambda: Coordinates(0.0, 0.0))
    place_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Hotel":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            address=data.get("address", "") or "",
            coordinates=Coordinates.from_dict(data.get("coordinates")) or Coordinates(0.0, 0.0),
            place_id=data.get("placeId"),
        )


@dataclass(frozen=True)
class RouteStep:
    """One leg of a planned route, as returned by the directions provider."""
    start: Coordinates
    end: Coordinates

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RouteStep":
        return cls(
            start=Coordinates.from_dict(data["start"]),
            end=Coordinates.from_dict(data["end"]),
        )


@dataclass(frozen=True)
class RoutePlace:
    """A place matched to a route; ``order`` is the index of the matched step."""
    place_id: str
    order: int
    detour_cost: int  # minutes, >= 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoutePlace":
        return cls(
            place_id=data["placeId"],
            order=int(data.get("order", 0)),
            detour_cost=int(data.get("detourCost", 0)),
        )


@dataclass
class Route:
    """A planned drive between two points with the places matched along it."""
    id: str
    start: Coordinates
    end: Coordinates
    places: List[RoutePlace] = field(default_factory=list)
    steps: List[RouteStep] = field(default_factory=list)
    base_duration: int = 0  # minutes
    polyline: Optional[str] = None  # encoded polyline for map visualisation
    start_label: Optional[str] = None
    end_label: Optional[str] = None

    @property
    def is_closed_loop(self) -> bool:
        return self.start == self.end

    @staticmethod
    def generate_id() -> str:
        return f"route_{uuid.uuid4().hex}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Route":
        return cls(
            id=data["id"],
            start=Coordinates.from_dict(data["start"]),
            end=Coordinates.from_dict(data["end"]),
            places=[RoutePlace.from_dict(p) for p in data.get("places") or []],
            steps=[RouteStep.from_dict(s) for s in data.get("steps") or []],
            base_duration=int(data.get("baseDuration", 0) or 0),
            polyline=data.get("polyline"),
            start_label=data.get("startLabel"),
            end_label=data.get("endLabel"),
        )


@dataclass(frozen=True)
class EndDestination:
    """Where a day ends when it does not end back at the hotel."""
    name: str
    coordinates: Coordinates

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["EndDestination"]:
        if not data:
            return None
        coords = Coordinates.from_dict(data.get("coordinates"))
        if coords is None:
            return None
        return cls(name=data.get("name", ""), coordinates=coords)


@dataclass
class Day:
    """
    A day in the trip: an ordered visiting sequence of place ids.

    Every id in ``places`` must reference a confirmed Place of the trip.
    """
    id: str
    places: List[str] = field(default_factory=list)
    routes: List[str] = field(default_factory=list)
    date: Optional[str] = None
    end_destination: Optional[EndDestination] = None

    @staticmethod
    def generate_id() -> str:
        return f"day_{uuid.uuid4().hex}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Day":
        return cls(
            id=data["id"],
            places=list(data.get("places") or []),
            routes=list(data.get("routes") or []),
            date=data.get("date"),
            end_destination=EndDestination.from_dict(data.get("endDestination")),
        )


@dataclass
class TravelerContext:
    type: TravelerType = TravelerType.COUPLE
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TravelerContext":
        data = data or {}
        try:
            traveler_type = TravelerType(data.get("type") or "couple")
        except ValueError:
            traveler_type = TravelerType.COUPLE
        return cls(type=traveler_type, tags=list(data.get("tags") or []))


@dataclass
class Trip:
    """
    The trip aggregate. Owned by the caller; services read it as a snapshot
    and hand back new Day / Route collections instead of mutating it.
    """
    id: str
    hotel: Hotel
    destination: str = ""
    traveler_context: TravelerContext = field(default_factory=TravelerContext)
    start_date: Optional[str] = None  # ISO date string
    end_date: Optional[str] = None  # ISO date string
    places_per_day: Optional[int] = None  # user pace preference (1-10)
    places: List[Place] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)
    days: List[Day] = field(default_factory=list)

    @property
    def confirmed_places(self) -> List[Place]:
        return [p for p in self.places if p.confirmed]

    def place_by_id(self, place_id: str) -> Optional[Place]:
        for place in self.places:
            if place.id == place_id:
                return place
        return None

    def day_by_id(self, day_id: str) -> Optional[Day]:
        for day in self.days:
            if day.id == day_id:
                return day
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trip":
        return cls(
            id=data["id"],
            hotel=Hotel.from_dict(data.get("hotel") or {}),
            destination=data.get("destination", "") or "",
            traveler_context=TravelerContext.from_dict(data.get("travelerContext")),
            start_date=data.get("startDate"),
            end_date=data.get("endDate"),
            places_per_day=_optional_int(data.get("placesPerDay")),
            places=[Place.from_dict(p) for p in data.get("places") or []],
            routes=[Route.from_dict(r) for r in data.get("routes") or []],
            days=[Day.from_dict(d) for d in data.get("days") or []],
        )
