"""
Place suggestion API routes.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from api.schemas import (
    CoordinatesModel,
    PlaceResponse,
    PlaceResultResponse,
    TripRequest,
    parse_trip,
    place_result_to_response,
    place_to_response,
)
from domain.models import Place
from services.errors import AnchorMissingError
from services.google_maps import get_default_client
from services.itinerary import find_nearby_alternatives, rank_next_stop_candidates
from services.suggestions import suggest_along_route, suggest_for_day, suggest_places

router = APIRouter()
logger = logging.getLogger(__name__)


class SuggestRequest(BaseModel):
    center: CoordinatesModel
    search_types: List[str]
    exclude_place_ids: List[str] = []
    hotel: Optional[CoordinatesModel] = None


class SuggestionResponse(PlaceResultResponse):
    is_food_place: bool
    is_nightlife_place: bool
    distance_meters: Optional[float] = None
    duration_seconds: Optional[int] = None
    distance_estimated: bool = False


class AlongRouteRequest(BaseModel):
    start: CoordinatesModel
    end: CoordinatesModel
    exclude_place_ids: List[str] = []


class DayRecommendationsRequest(TripRequest):
    day_id: Optional[str] = None


class AlternativesRequest(TripRequest):
    place_id: str
    day_id: Optional[str] = None
    excluded_ids: List[str] = []


class NextStopsRequest(TripRequest):
    day_id: Optional[str] = None
    candidates: List[Dict[str, Any]]


@router.post("/suggest", response_model=List[SuggestionResponse])
def suggest(data: SuggestRequest):
    """Highly rated places of the requested types around a point."""
    suggestions = suggest_places(
        get_default_client(),
        data.center.to_domain(),
        data.search_types,
        exclude_place_ids=data.exclude_place_ids,
        hotel=data.hotel.to_domain() if data.hotel else None,
    )
    return [
        SuggestionResponse(
            place_id=s.place.place_id,
            name=s.place.name,
            lat=s.place.lat,
            lng=s.place.lng,
            types=list(s.place.types),
            category=s.place.category.value,
            rating=s.place.rating,
            vicinity=s.place.vicinity,
            is_food_place=s.is_food_place,
            is_nightlife_place=s.is_nightlife_place,
            distance_meters=s.distance_meters,
            duration_seconds=s.duration_seconds,
            distance_estimated=s.distance_estimated,
        )
        for s in suggestions
    ]


@router.post("/along-route", response_model=List[PlaceResultResponse])
def along_route(data: AlongRouteRequest):
    """Places close to the straight line between two points."""
    results = suggest_along_route(
        get_default_client(),
        data.start.to_domain(),
        data.end.to_domain(),
        exclude_place_ids=data.exclude_place_ids,
    )
    return [place_result_to_response(r) for r in results]


@router.post("/day-recommendations", response_model=List[PlaceResultResponse])
def day_recommendations(data: DayRecommendationsRequest):
    """Recommendations for a day, around its last stop or along its corridor."""
    trip = parse_trip(data.trip)
    day = None
    if data.day_id:
        day = trip.day_by_id(data.day_id)
        if day is None:
            raise HTTPException(status_code=404, detail="Day not found")
    try:
        results = suggest_for_day(get_default_client(), trip, day)
    except AnchorMissingError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return [place_result_to_response(r) for r in results]


@router.post("/alternatives", response_model=List[PlaceResponse])
def alternatives(data: AlternativesRequest):
    """Same-category confirmed places near a stop, for swapping it out."""
    trip = parse_trip(data.trip)
    place = trip.place_by_id(data.place_id)
    if place is None:
        raise HTTPException(status_code=404, detail="Place not found")
    day = trip.day_by_id(data.day_id) if data.day_id else None
    found = find_nearby_alternatives(trip, place, day, data.excluded_ids)
    return [place_to_response(p) for p in found]


@router.post("/next-stops", response_model=List[PlaceResponse])
def next_stops(data: NextStopsRequest):
    """Rank candidate places as the day's next stop."""
    trip = parse_trip(data.trip)
    day = None
    if data.day_id:
        day = trip.day_by_id(data.day_id)
        if day is None:
            raise HTTPException(status_code=404, detail="Day not found")
    try:
        candidates = [Place.from_dict(c) for c in data.candidates]
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid candidate: {exc}")
    try:
        ranked = rank_next_stop_candidates(trip, day, candidates)
    except AnchorMissingError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return [place_to_response(p) for p in ranked]
