"""
Trip planning API routes: day clustering, reoptimisation and route building.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from api.schemas import (
    CoordinatesModel,
    DayResponse,
    TripRequest,
    day_to_response,
    parse_trip,
)
from domain.models import RouteStep
from services.detour import ALONG_ROUTE_RADIUS_M, find_places_along_route
from services.google_maps import get_default_client
from services.itinerary import build_route, plan_trip_days, reoptimize_day

router = APIRouter()
logger = logging.getLogger(__name__)


class PlanDaysResponse(BaseModel):
    trip_id: str
    days: List[DayResponse]


class ReoptimizeRequest(TripRequest):
    completed_ids: List[str] = []
    skipped_ids: List[str] = []


class BuildRouteRequest(TripRequest):
    start: CoordinatesModel
    end: CoordinatesModel
    start_label: Optional[str] = None
    end_label: Optional[str] = None


class RouteStepModel(BaseModel):
    start: CoordinatesModel
    end: CoordinatesModel


class RoutePlaceResponse(BaseModel):
    place_id: str
    order: int
    detour_cost: int


class RouteResponse(BaseModel):
    id: str
    start: CoordinatesModel
    end: CoordinatesModel
    start_label: Optional[str] = None
    end_label: Optional[str] = None
    base_duration: int
    polyline: Optional[str] = None
    places: List[RoutePlaceResponse]
    steps: List[RouteStepModel]


class MatchRouteRequest(TripRequest):
    steps: List[RouteStepModel]
    radius_m: float = ALONG_ROUTE_RADIUS_M


class PlaceAlongRouteResponse(BaseModel):
    place_id: str
    name: str
    detour_cost: int
    distance_from_route: float
    order: int


def _coords(c) -> CoordinatesModel:
    return CoordinatesModel(lat=c.lat, lng=c.lng)


@router.post("/days/plan", response_model=PlanDaysResponse)
def plan_days(data: TripRequest):
    """Split the trip's confirmed places into days (existing days are returned as-is)."""
    trip = parse_trip(data.trip)
    days = plan_trip_days(trip)
    return PlanDaysResponse(trip_id=trip.id, days=[day_to_response(d) for d in days])


@router.post("/days/{day_id}/reoptimize", response_model=DayResponse)
def reoptimize(day_id: str, data: ReoptimizeRequest):
    """Re-order the unvisited stops of a day from the hotel."""
    trip = parse_trip(data.trip)
    try:
        day = reoptimize_day(trip, day_id, data.completed_ids, data.skipped_ids)
    except KeyError:
        raise HTTPException(status_code=404, detail="Day not found")
    return day_to_response(day)


@router.post("/routes", response_model=RouteResponse)
def create_route(data: BuildRouteRequest):
    """Fetch driving directions and match the trip's places along them."""
    trip = parse_trip(data.trip)
    start = data.start.to_domain()
    end = data.end.to_domain()
    directions = get_default_client().get_route(start, end)
    route, status = build_route(trip, start, end, directions, data.start_label, data.end_label)
    if route is None:
        raise HTTPException(
            status_code=502,
            detail=f"Route calculation failed: {status.value}",
        )
    return RouteResponse(
        id=route.id,
        start=_coords(route.start),
        end=_coords(route.end),
        start_label=route.start_label,
        end_label=route.end_label,
        base_duration=route.base_duration,
        polyline=route.polyline,
        places=[
            RoutePlaceResponse(place_id=p.place_id, order=p.order, detour_cost=p.detour_cost)
            for p in route.places
        ],
        steps=[RouteStepModel(start=_coords(s.start), end=_coords(s.end)) for s in route.steps],
    )


@router.post("/routes/match", response_model=List[PlaceAlongRouteResponse])
def match_route(data: MatchRouteRequest):
    """Score the trip's confirmed places against already known route steps."""
    trip = parse_trip(data.trip)
    steps = [RouteStep(start=s.start.to_domain(), end=s.end.to_domain()) for s in data.steps]
    matches = find_places_along_route(trip.confirmed_places, steps, data.radius_m)
    return [
        PlaceAlongRouteResponse(
            place_id=m.place.id,
            name=m.place.name,
            detour_cost=m.detour_cost,
            distance_from_route=m.distance_from_route,
            order=m.order,
        )
        for m in matches
    ]
