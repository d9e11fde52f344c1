"""Response schemas for API endpoints"""
from datetime import date
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from ..models.catalog import Attraction, City
from ..models.itinerary import Itinerary, PlannedVisit


class DayStop(BaseModel):
    """A visit as shown inside a day, with the hop to the next stop"""
    visit: PlannedVisit
    distance_to_next_km: Optional[float] = Field(
        None,
        description="Distance to the next stop on the same day (null for the last stop)"
    )


class DayPlan(BaseModel):
    """Plan for a single day"""
    day_number: int = Field(..., description="Day number (1, 2, 3, etc.)")
    date: date
    weather: Optional[str] = Field(None, description="Weather label for this day (e.g., 'Sunny')")
    stop_count: int
    total_duration_hours: float
    label: str = Field(..., description="'No activities planned' or e.g. '2 stops • 5.0h'")
    stops: List[DayStop] = Field(default_factory=list)


class TripSummary(BaseModel):
    """Trip-level aggregates"""
    stop_count: int
    total_duration_hours: float
    total_distance_km: float = Field(
        ...,
        description="Distance across all stops in list order, spanning day boundaries"
    )


class ItineraryView(BaseModel):
    """Assembled itinerary for the detail screen"""
    itinerary: Itinerary
    city: Optional[City] = None
    days: List[DayPlan]
    summary: TripSummary
    available_attractions: List[Attraction] = Field(
        default_factory=list,
        description="City attractions not yet placed anywhere in the itinerary"
    )


class ItineraryListResponse(BaseModel):
    """Saved itineraries for the current user"""
    itineraries: List[Itinerary]
    count: int


class AttractionGroups(BaseModel):
    """Attractions grouped by category label"""
    city_id: str
    categories: Dict[str, List[Attraction]]


class ErrorResponse(BaseModel):
    """Error response"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[dict] = Field(None, description="Additional error details")
