"""
Request/response models shared by the trips and places routers.

The trip itself travels as the client's camelCase JSON and is parsed with the
domain ``from_dict`` helpers; everything else is a plain pydantic model.
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pydantic import BaseModel

from domain.models import Coordinates, Day, Place, Trip
from services.places_types import PlaceResult


class CoordinatesModel(BaseModel):
    lat: float
    lng: float

    def to_domain(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class TripRequest(BaseModel):
    trip: Dict[str, Any]


class PlaceResponse(BaseModel):
    id: str
    name: str
    category: str
    coordinates: Optional[CoordinatesModel] = None
    place_id: Optional[str] = None
    confirmed: bool
    source: str = ""


class DayResponse(BaseModel):
    id: str
    date: Optional[str] = None
    places: List[str]
    routes: List[str]


class PlaceResultResponse(BaseModel):
    place_id: str
    name: str
    lat: float
    lng: float
    types: List[str]
    category: str
    rating: Optional[float] = None
    vicinity: Optional[str] = None


def parse_trip(data: Dict[str, Any]) -> Trip:
    try:
        return Trip.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid trip payload: {exc}")


def place_to_response(place: Place) -> PlaceResponse:
    coords = place.coordinates
    return PlaceResponse(
        id=place.id,
        name=place.name,
        category=place.category.value,
        coordinates=CoordinatesModel(lat=coords.lat, lng=coords.lng) if coords else None,
        place_id=place.place_id,
        confirmed=place.confirmed,
        source=place.source,
    )


def day_to_response(day: Day) -> DayResponse:
    return DayResponse(id=day.id, date=day.date, places=list(day.places), routes=list(day.routes))


def place_result_to_response(result: PlaceResult) -> PlaceResultResponse:
    return PlaceResultResponse(
        place_id=result.place_id,
        name=result.name,
        lat=result.lat,
        lng=result.lng,
        types=list(result.types),
        category=result.category.value,
        rating=result.rating,
        vicinity=result.vicinity,
    )
